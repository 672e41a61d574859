"""
Unified hashing service for the signing workflow.

Single source of truth for one-time code digests and audit event
integrity hashes.
"""

import hashlib
import hmac
import json


class HashingService:
    """Service for code and audit event hashing."""

    @staticmethod
    def compute_text_sha256(value):
        """
        Compute the SHA256 hex digest of a text value (UTF-8 encoded).

        Args:
            value: str

        Returns:
            str: Hexadecimal SHA256 hash
        """
        return hashlib.sha256(value.encode('utf-8')).hexdigest()

    @staticmethod
    def compute_json_sha256(data_dict):
        """
        Compute SHA256 hash of a dictionary (stable JSON serialization).

        Uses sorted keys so the same data always produces the same hash.
        """
        json_str = json.dumps(data_dict, sort_keys=True, default=str)
        return hashlib.sha256(json_str.encode()).hexdigest()

    @staticmethod
    def digests_match(candidate, expected):
        """Constant-time comparison of two hex digests."""
        if not candidate or not expected:
            return False
        return hmac.compare_digest(candidate.encode(), expected.encode())

    @staticmethod
    def compute_audit_event_hash(audit_event):
        """
        Compute tamper-evident hash for a signature audit event.

        Covers contract id, timestamp, actor, event name, ip,
        user agent and details.

        Args:
            audit_event: SignatureAuditEvent instance

        Returns:
            str: Hexadecimal SHA256 hash
        """
        hash_input = {
            'contract_id': str(audit_event.contract_id),
            'at': audit_event.at.isoformat() if audit_event.at else None,
            'actor': audit_event.actor,
            'event': audit_event.event,
            'ip': audit_event.ip,
            'user_agent': audit_event.user_agent,
            'details': audit_event.details,
        }
        return HashingService.compute_json_sha256(hash_input)

    @staticmethod
    def is_audit_event_intact(audit_event):
        """True if the stored event_hash matches a recomputed hash."""
        if not audit_event.event_hash:
            return False
        return HashingService.compute_audit_event_hash(audit_event) == audit_event.event_hash
