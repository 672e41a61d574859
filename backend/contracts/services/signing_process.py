"""
Signing process service layer.

Responsibilities:
- Validate invites (status, expiry, OTP gate, role)
- Build the invite view with progressive disclosure of the contract
- Apply a signature: contract patch, audit append, invite transition,
  execution check, all inside one transaction

The contract write happens before the invite transition, and the
transition is conditional on the invite still being pending. If another
request signed the same invite first, the whole transaction rolls back
and the caller gets `already_used`.
"""

import logging

from django.db import DatabaseError, transaction
from django.utils import timezone

from ..exceptions import InfrastructureFailure, InvalidRequest, NotFound, TerminalState
from ..models import Contract, InviteStatus, SignerRole
from ..serializers import serialize_contract_for_signing
from .audit_service import AuditService
from .execution_service import ExecutionService
from .invite_service import InviteService
from .token_utils import is_deadline_passed

logger = logging.getLogger(__name__)

# Contract fields each signer role is allowed to populate
ROLE_SIGNATURE_FIELDS = {
    SignerRole.CUSTOMER: ('signed_by_customer', 'signed_at_customer'),
    SignerRole.PROVIDER: ('signed_by_provider', 'signed_at_provider'),
}


class SigningProcessService:
    """Service for the public invite view and signature submission."""

    @staticmethod
    def validate_invite(invite, now):
        """
        Raise if the invite can no longer be used.

        Raises:
            TerminalState('already_used'): invite is not pending
            TerminalState('expired'): invite deadline has passed
        """
        if invite.status != InviteStatus.PENDING:
            raise TerminalState('already_used')

        if is_deadline_passed(invite.expires_at, now):
            raise TerminalState('expired')

    @staticmethod
    def signature_fields_for_role(role):
        """
        Map a signer role to its (signed_by, signed_at) contract fields.

        Raises:
            InvalidRequest('invalid_role'): role is not a known signer role
        """
        try:
            return ROLE_SIGNATURE_FIELDS[SignerRole(role)]
        except (ValueError, KeyError):
            raise InvalidRequest('invalid_role')

    @staticmethod
    def signer_metadata(invite):
        return {
            'email': invite.email,
            'name': invite.name or '',
            'title': invite.title or '',
        }

    @staticmethod
    def get_invite_view(token, now=None):
        """
        Build the public view of an invite.

        While the OTP gate is locked only the role and signer hints are
        returned; the contract is neither loaded nor disclosed.

        Returns:
            dict: {'requiresOtp', 'role', 'signer'} plus 'contract' once unlocked

        Raises:
            NotFound, TerminalState
        """
        now = now or timezone.now()
        invite = InviteService.get_invite(token)
        SigningProcessService.validate_invite(invite, now)

        signer = SigningProcessService.signer_metadata(invite)

        if invite.otp_locked:
            return {
                'requiresOtp': True,
                'role': invite.role,
                'signer': signer,
            }

        try:
            contract = Contract.objects.get(pk=invite.contract_id)
        except Contract.DoesNotExist:
            raise NotFound('contract_not_found')

        return {
            'requiresOtp': False,
            'contract': serialize_contract_for_signing(contract),
            'role': invite.role,
            'signer': signer,
        }

    @staticmethod
    def submit_signature(token, name, email, title=None, ip_address=None, user_agent='', now=None):
        """
        Process a signature submission for an invite.

        Args:
            token: str, invite token
            name: str, signer's full name (recorded as the signature)
            email: str, signer's e-mail (recorded in the audit details)
            title: str or None, falls back to the invite's title
            ip_address: str or None, client address
            user_agent: str, client user agent
            now: datetime, defaults to timezone.now()

        Returns:
            dict: {'contract': redacted contract view, 'role': invite role}

        Raises:
            NotFound, TerminalState, InvalidRequest, InfrastructureFailure
        """
        now = now or timezone.now()

        # Phase 1: validate everything before any write
        invite = InviteService.get_invite(token)
        SigningProcessService.validate_invite(invite, now)

        if invite.otp_locked:
            raise InvalidRequest('otp_required')

        signed_by_field, signed_at_field = SigningProcessService.signature_fields_for_role(invite.role)

        if not Contract.objects.filter(pk=invite.contract_id).exists():
            raise NotFound('contract_not_found')

        # Phase 2: persist as one transaction, contract first
        try:
            with transaction.atomic():
                patched = Contract.objects.filter(pk=invite.contract_id).update(**{
                    signed_by_field: name,
                    signed_at_field: now,
                    'updated_at': now,
                })
                if not patched:
                    raise NotFound('contract_not_found')

                AuditService.append(
                    invite.contract_id,
                    event=f'signed_{invite.role}',
                    actor=name,
                    ip=ip_address,
                    user_agent=user_agent,
                    details=f'Email: {email}',
                    at=now,
                )

                signer_title = invite.title if title is None else title
                if not InviteService.mark_signed(token, name, signer_title, now):
                    raise TerminalState('already_used')

                contract = Contract.objects.select_for_update().get(pk=invite.contract_id)
                ExecutionService.on_signature(contract, now=now)
                contract.refresh_from_db()
        except DatabaseError:
            logger.exception("Failed to record signature for invite %s...", token[:8])
            raise InfrastructureFailure('update_failed')

        logger.info(
            "Contract %s signed by %s (%s)", invite.contract_id, invite.role, name
        )

        return {
            'contract': serialize_contract_for_signing(contract),
            'role': invite.role,
        }


# Singleton instance
_signing_process_service = None


def get_signing_process_service() -> SigningProcessService:
    """Get singleton instance of signing process service."""
    global _signing_process_service
    if _signing_process_service is None:
        _signing_process_service = SigningProcessService()
    return _signing_process_service
