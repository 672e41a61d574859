from rest_framework import serializers

from .models import Contract, ContractAttachment, SignatureAuditEvent


class ContractAttachmentSerializer(serializers.ModelSerializer):
    """Serializer for contract attachments (metadata only)."""

    class Meta:
        model = ContractAttachment
        fields = ['id', 'name', 'url', 'created_at']
        read_only_fields = fields


class SignatureAuditEventSerializer(serializers.ModelSerializer):
    """Serializer for SignatureAuditEvent with verification data."""
    is_verified = serializers.SerializerMethodField()

    class Meta:
        model = SignatureAuditEvent
        fields = [
            'id', 'at', 'actor', 'event', 'ip', 'user_agent',
            'details', 'event_hash', 'is_verified'
        ]
        read_only_fields = fields

    def get_is_verified(self, obj):
        """Check if event hash is still valid."""
        if not obj.event_hash:
            return None
        return obj.compute_event_hash() == obj.event_hash


class ContractSerializer(serializers.ModelSerializer):
    """Full internal representation of a contract."""
    signature_audit = SignatureAuditEventSerializer(many=True, read_only=True)
    attachments = ContractAttachmentSerializer(many=True, read_only=True)

    class Meta:
        model = Contract
        fields = [
            'id', 'name', 'status', 'terms', 'start_date', 'end_date',
            'signed_by_customer', 'signed_at_customer',
            'signed_by_provider', 'signed_at_provider',
            'executed_date', 'email_sends', 'internal_owner_user_id',
            'signature_audit', 'attachments',
            'created_at', 'updated_at'
        ]
        read_only_fields = fields


# Internal fields never disclosed to an external signer
REDACTED_FIELDS = (
    'email_sends',
    'signature_audit',
    'attachments',
    'internal_owner_user_id',
)


def serialize_contract_for_signing(contract):
    """Contract view shown to a signer: the internal view minus REDACTED_FIELDS."""
    data = dict(ContractSerializer(contract).data)
    for field in REDACTED_FIELDS:
        data.pop(field, None)
    return data


class SignPayloadSerializer(serializers.Serializer):
    """Serializer for public signing payload."""
    name = serializers.CharField(min_length=1, max_length=255)
    title = serializers.CharField(max_length=255, required=False, allow_blank=True, allow_null=True)
    email = serializers.EmailField()


class OtpPayloadSerializer(serializers.Serializer):
    """Serializer for the one-time code payload."""
    loginId = serializers.CharField(min_length=3, max_length=100, trim_whitespace=False)
    otpCode = serializers.CharField(min_length=4, max_length=64, trim_whitespace=False)
