"""
Execution trigger for signed contracts.

Decides after each signature whether a contract is fully executed,
moves it to `active` exactly once and queues the finalize action.

Two acceptance policies are supported, selected by the
CONTRACT_EXECUTION_POLICY setting:
- "both": customer and provider signatures are both present
- "any": at least one signature is present
"""

import logging

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.utils import timezone

from ..models import Contract, ContractStatus
from .audit_service import AuditService
from .finalize_service import FinalizeService

logger = logging.getLogger(__name__)

POLICY_BOTH = 'both'
POLICY_ANY = 'any'

POLICY_DETAILS = {
    POLICY_BOTH: 'Both parties have signed',
    POLICY_ANY: 'Contract signed by at least one party',
}


class ExecutionService:
    """Service deciding when a contract becomes fully executed."""

    @staticmethod
    def get_policy():
        policy = getattr(settings, 'CONTRACT_EXECUTION_POLICY', POLICY_BOTH)
        if policy not in POLICY_DETAILS:
            raise ImproperlyConfigured(
                f"CONTRACT_EXECUTION_POLICY must be one of {sorted(POLICY_DETAILS)}, got {policy!r}"
            )
        return policy

    @staticmethod
    def is_policy_satisfied(contract, policy):
        customer_signed = contract.signed_at_customer is not None
        provider_signed = contract.signed_at_provider is not None
        if policy == POLICY_ANY:
            return customer_signed or provider_signed
        return customer_signed and provider_signed

    @staticmethod
    def on_signature(contract, now=None):
        """
        Evaluate a freshly reloaded contract after a signature.

        Must run inside the signing transaction. The `executed_date`
        claim is a conditional update, so concurrent signatures for the
        two roles produce exactly one `fully_executed` event.

        Args:
            contract: Contract reloaded after the signature was applied
            now: datetime, defaults to timezone.now()

        Returns:
            bool: True if this call executed the contract
        """
        now = now or timezone.now()
        policy = ExecutionService.get_policy()

        if not ExecutionService.is_policy_satisfied(contract, policy):
            return False

        claimed = Contract.objects.filter(
            pk=contract.pk,
            executed_date__isnull=True,
        ).update(
            status=ContractStatus.ACTIVE,
            executed_date=now,
            updated_at=now,
        )

        if claimed:
            AuditService.append(
                contract.pk,
                event='fully_executed',
                details=POLICY_DETAILS[policy],
                at=now,
            )
            logger.info("Contract %s fully executed (policy=%s)", contract.pk, policy)
            FinalizeService.schedule(contract.pk, reason='executed')
            return True

        # Already executed: re-render so the snapshot carries the new signature
        logger.info("Contract %s already executed; refreshing final copy", contract.pk)
        FinalizeService.schedule(contract.pk, reason='resigned')
        return False
