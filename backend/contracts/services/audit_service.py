"""
Signature audit trail service layer.

Responsibilities:
- Append audit events to a contract's trail
- Verify the trail has not been tampered with
"""

from django.utils import timezone

from ..models import SignatureAuditEvent
from .hashing import HashingService


class AuditService:
    """Service for the append-only signature audit trail."""

    @staticmethod
    def append(contract_id, event, actor='', ip=None, user_agent='', details='', at=None):
        """
        Append one audit event. The event hash is computed on insert.

        Returns:
            SignatureAuditEvent: the created event
        """
        return SignatureAuditEvent.objects.create(
            contract_id=contract_id,
            at=at or timezone.now(),
            actor=actor or '',
            event=event,
            ip=ip or None,
            user_agent=user_agent or '',
            details=details or '',
        )

    @staticmethod
    def verify_trail(contract):
        """
        Recompute every event hash of a contract's trail.

        Returns:
            dict: {
                'valid': bool,
                'events': int,
                'tampered_event_ids': list of ids whose hash no longer matches
            }
        """
        events = list(contract.signature_audit.all())
        tampered = [
            event.id for event in events
            if not HashingService.is_audit_event_intact(event)
        ]
        return {
            'valid': not tampered,
            'events': len(events),
            'tampered_event_ids': tampered,
        }
