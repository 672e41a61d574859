import uuid

from django.db import models
from django.core.exceptions import ValidationError
from django.utils import timezone
from django.utils.ipv6 import clean_ipv6_address


class ContractStatus(models.TextChoices):
    DRAFT = 'draft', 'Draft'
    SENT = 'sent', 'Sent for signature'
    ACTIVE = 'active', 'Active'
    EXPIRED = 'expired', 'Expired'
    CANCELLED = 'cancelled', 'Cancelled'


class SignerRole(models.TextChoices):
    CUSTOMER = 'customerSigner', 'Customer signer'
    PROVIDER = 'providerSigner', 'Provider signer'


class InviteStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    SIGNED = 'signed', 'Signed'


class Contract(models.Model):
    """
    Contract record as far as the signing workflow is concerned.
    Signature fields are written per role by signature invites.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    status = models.CharField(
        max_length=20,
        choices=ContractStatus.choices,
        default=ContractStatus.DRAFT
    )
    terms = models.TextField(blank=True)
    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)

    signed_by_customer = models.CharField(max_length=255, blank=True, null=True)
    signed_at_customer = models.DateTimeField(null=True, blank=True)
    signed_by_provider = models.CharField(max_length=255, blank=True, null=True)
    signed_at_provider = models.DateTimeField(null=True, blank=True)

    executed_date = models.DateTimeField(
        null=True,
        blank=True,
        help_text="Set once, the first time the contract is judged fully executed"
    )

    # Internal-only data, never shown to signers
    email_sends = models.JSONField(default=list, blank=True)
    internal_owner_user_id = models.CharField(max_length=64, blank=True)

    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return self.name


class SignatureAuditEvent(models.Model):
    """
    Append-only audit trail entry for a contract.
    Rows are written once and never modified or removed.
    """
    contract = models.ForeignKey(
        Contract,
        on_delete=models.PROTECT,
        related_name='signature_audit'
    )
    at = models.DateTimeField(default=timezone.now)
    actor = models.CharField(max_length=255, blank=True)
    event = models.CharField(max_length=64)
    ip = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.TextField(blank=True)
    details = models.TextField(blank=True)
    event_hash = models.CharField(
        max_length=64,
        blank=True,
        help_text="SHA256 hash of this audit event for tamper detection"
    )

    class Meta:
        ordering = ['at', 'id']
        indexes = [
            models.Index(fields=['contract', 'at'], name='audit_contract_at_idx'),
        ]

    def __str__(self):
        return f"{self.event} on {self.contract_id} at {self.at}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError('Signature audit events are append-only')
        if self.ip and ':' in self.ip:
            # Hash the address in the form the column stores it
            self.ip = clean_ipv6_address(self.ip)
        if not self.event_hash:
            self.event_hash = self.compute_event_hash()
        super().save(*args, **kwargs)

    def compute_event_hash(self):
        from .services.hashing import HashingService
        return HashingService.compute_audit_event_hash(self)

    def delete(self, *args, **kwargs):
        raise ValidationError('Signature audit events cannot be deleted')


class ContractAttachment(models.Model):
    """
    A file attached to a contract. `url` is either an inline
    data: URL (final signed copies) or an external location.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    contract = models.ForeignKey(
        Contract,
        on_delete=models.CASCADE,
        related_name='attachments'
    )
    name = models.CharField(max_length=255, blank=True)
    url = models.TextField(blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['created_at']

    def __str__(self):
        return self.name or str(self.id)


class SignatureInvite(models.Model):
    """
    Single-use grant for one named signer to view and sign one
    contract in one role. Invites are never deleted.
    """
    token = models.CharField(max_length=64, unique=True, db_index=True)
    contract = models.ForeignKey(
        Contract,
        on_delete=models.PROTECT,
        related_name='signature_invites'
    )
    role = models.CharField(max_length=32, choices=SignerRole.choices)
    email = models.EmailField()
    name = models.CharField(max_length=255, blank=True)
    title = models.CharField(max_length=255, blank=True)
    status = models.CharField(
        max_length=20,
        choices=InviteStatus.choices,
        default=InviteStatus.PENDING
    )
    expires_at = models.DateTimeField(null=True, blank=True)

    # One-time security code gate
    otp_hash = models.CharField(
        max_length=64,
        blank=True,
        null=True,
        help_text="SHA256 hex digest of the one-time code; presence enables the gate"
    )
    otp_expires_at = models.DateTimeField(null=True, blank=True)
    otp_verified_at = models.DateTimeField(null=True, blank=True)
    login_id = models.CharField(max_length=100, blank=True, null=True)

    used_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"Invite {self.token[:8]}... ({self.role} for {self.email})"

    @property
    def requires_otp(self):
        return bool(self.otp_hash)

    @property
    def otp_locked(self):
        return self.requires_otp and self.otp_verified_at is None


class FinalizeTask(models.Model):
    """
    Outbox record for the post-commit finalize action of an executed
    contract. Tracks delivery attempts so failures can be retried.
    """
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('delivered', 'Delivered'),
        ('running', 'Running'),
        ('retrying', 'Retrying'),
        ('failed', 'Failed'),
    ]

    contract = models.ForeignKey(
        Contract,
        on_delete=models.CASCADE,
        related_name='finalize_tasks'
    )
    reason = models.CharField(max_length=32, default='executed')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')
    attempt_count = models.PositiveIntegerField(default=0)
    last_error = models.TextField(blank=True)

    created_at = models.DateTimeField(default=timezone.now)
    completed_at = models.DateTimeField(null=True, blank=True)
    next_retry_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['status', 'created_at'], name='finalize_status_created_idx'),
        ]

    def __str__(self):
        return f"Finalize {self.contract_id} - {self.status}"
