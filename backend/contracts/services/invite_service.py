"""
Signature invite persistence boundary.

Responsibilities:
- Look up invites by exact token
- Record OTP verification and signing as conditional updates
- Issue new invites for the sending step

No business rules live here; the OTP gate and the signing process own
all validation. The two transitions only touch invites that are still
pending and report how many rows they changed, so callers can treat
zero as "already transitioned".
"""

import logging
from datetime import timedelta

from django.conf import settings
from django.core.exceptions import ValidationError
from django.utils import timezone

from ..exceptions import NotFound
from ..models import InviteStatus, SignatureInvite, SignerRole
from .hashing import HashingService
from .token_utils import calculate_expiry, generate_secure_token

logger = logging.getLogger(__name__)


class InviteService:
    """Service for signature invite storage."""

    @staticmethod
    def get_invite(token):
        """
        Load an invite by exact token match.

        Raises:
            NotFound('invalid_or_expired'): no invite carries this token
        """
        if not token:
            raise NotFound('invalid_or_expired')
        try:
            return SignatureInvite.objects.get(token__exact=token)
        except SignatureInvite.DoesNotExist:
            raise NotFound('invalid_or_expired')

    @staticmethod
    def mark_otp_verified(token, at):
        """
        Set otp_verified_at on a pending invite.

        Returns:
            int: rows updated (0 if the invite is no longer pending)
        """
        return SignatureInvite.objects.filter(
            token__exact=token,
            status=InviteStatus.PENDING,
        ).update(otp_verified_at=at)

    @staticmethod
    def mark_signed(token, name, title, at):
        """
        Transition a pending invite to signed.

        Returns:
            int: rows updated (0 if another request signed it first)
        """
        return SignatureInvite.objects.filter(
            token__exact=token,
            status=InviteStatus.PENDING,
        ).update(
            status=InviteStatus.SIGNED,
            used_at=at,
            name=name,
            title=title or '',
        )

    @staticmethod
    def issue_invite(contract, role, email, name='', title='', expires_in_days=None,
                     otp_code=None, otp_ttl_minutes=None, login_id=None):
        """
        Create a new signature invite.

        Only the SHA256 digest of `otp_code` is stored. When a code is
        given the invite is gated until the code is verified.

        Raises:
            ValidationError: unknown role, or OTP without a login id
        """
        if role not in SignerRole.values:
            raise ValidationError(f'Unknown signer role: {role}')

        now = timezone.now()
        otp_hash = None
        otp_expires_at = None
        if otp_code:
            if not login_id:
                raise ValidationError('A login id is required when an OTP is set')
            if otp_ttl_minutes is None:
                otp_ttl_minutes = settings.SIGNATURE_INVITE_OTP_TTL_MINUTES
            otp_hash = HashingService.compute_text_sha256(otp_code)
            otp_expires_at = now + timedelta(minutes=otp_ttl_minutes)

        invite = SignatureInvite.objects.create(
            token=generate_secure_token(),
            contract=contract,
            role=role,
            email=email,
            name=name or '',
            title=title or '',
            expires_at=calculate_expiry(expires_in_days, now=now),
            otp_hash=otp_hash,
            otp_expires_at=otp_expires_at,
            login_id=login_id,
            created_at=now,
        )
        logger.info(
            "Issued %s invite %s... for contract %s (otp=%s)",
            role, invite.token[:8], contract.pk, bool(otp_hash)
        )
        return invite

    @staticmethod
    def public_url(invite):
        """Public signing URL handed to the signer."""
        return f'{settings.FRONTEND_BASE_URL}/sign/{invite.token}'

