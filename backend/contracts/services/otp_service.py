"""
One-time security code gate for signature invites.

A gated invite only discloses its contract once the holder of the link
has supplied the matching login id and code.
"""

import logging

from django.utils import timezone

from ..exceptions import InvalidRequest, TerminalState
from ..models import InviteStatus
from .hashing import HashingService
from .invite_service import InviteService
from .token_utils import is_deadline_passed

logger = logging.getLogger(__name__)


class OtpService:
    """Service for verifying invite security codes."""

    @staticmethod
    def verify_otp(token, login_id, code, now=None):
        """
        Verify the one-time code for an invite and unlock it.

        Checks run in a fixed order and the first failure wins:
        missing invite, not pending, gate not configured, code expired,
        login id mismatch, code mismatch.

        Args:
            token: str, invite token
            login_id: str, must equal the stored login id exactly
            code: str, the one-time code in clear text
            now: datetime, defaults to timezone.now()

        Returns:
            dict: {'ok': True}

        Raises:
            NotFound, TerminalState, InvalidRequest
        """
        now = now or timezone.now()
        invite = InviteService.get_invite(token)

        if invite.status != InviteStatus.PENDING:
            raise TerminalState('already_used')

        if not invite.otp_hash or not invite.otp_expires_at:
            raise InvalidRequest('otp_not_configured')

        if is_deadline_passed(invite.otp_expires_at, now):
            raise TerminalState('otp_expired')

        if not invite.login_id or invite.login_id != login_id:
            logger.warning("OTP login id mismatch for invite %s...", token[:8])
            raise InvalidRequest('login_invalid')

        candidate = HashingService.compute_text_sha256(code)
        if not HashingService.digests_match(candidate, invite.otp_hash):
            logger.warning("Invalid OTP submitted for invite %s...", token[:8])
            raise InvalidRequest('otp_invalid')

        if not InviteService.mark_otp_verified(token, now):
            # Signed between our read and this write
            raise TerminalState('already_used')

        logger.info("OTP verified for invite %s...", token[:8])
        return {'ok': True}


# Singleton instance
_otp_service = None


def get_otp_service() -> OtpService:
    """Get singleton instance of OTP service."""
    global _otp_service
    if _otp_service is None:
        _otp_service = OtpService()
    return _otp_service
