from django.contrib import admin

from .models import (
    Contract, ContractAttachment, FinalizeTask,
    SignatureAuditEvent, SignatureInvite
)
from .services.audit_service import AuditService
from .services.invite_service import InviteService


class SignatureAuditEventInline(admin.TabularInline):
    model = SignatureAuditEvent
    extra = 0
    can_delete = False
    readonly_fields = ('at', 'event', 'actor', 'ip', 'user_agent', 'details', 'event_hash')
    fields = readonly_fields

    def has_add_permission(self, request, obj=None):
        return False


class ContractAttachmentInline(admin.TabularInline):
    model = ContractAttachment
    extra = 0
    fields = ('name', 'url', 'created_at')
    readonly_fields = ('created_at',)


@admin.register(Contract)
class ContractAdmin(admin.ModelAdmin):
    list_display = ('name', 'status', 'signed_by_customer', 'signed_by_provider', 'executed_date', 'created_at')
    list_filter = ('status', 'created_at')
    search_fields = ('name', 'signed_by_customer', 'signed_by_provider')
    readonly_fields = ('id', 'executed_date', 'audit_trail_status', 'created_at', 'updated_at')
    inlines = [ContractAttachmentInline, SignatureAuditEventInline]
    fieldsets = (
        ('Contract Info', {
            'fields': ('id', 'name', 'status', 'terms', 'start_date', 'end_date')
        }),
        ('Signatures', {
            'fields': (
                'signed_by_customer', 'signed_at_customer',
                'signed_by_provider', 'signed_at_provider',
                'executed_date', 'audit_trail_status'
            )
        }),
        ('Internal', {
            'fields': ('internal_owner_user_id', 'email_sends'),
            'classes': ('collapse',)
        }),
        ('Metadata', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def audit_trail_status(self, obj):
        """Recompute every audit event hash."""
        if obj.pk is None:
            return '-'
        report = AuditService.verify_trail(obj)
        if report['valid']:
            return f"Intact ({report['events']} events)"
        return f"TAMPERED: events {report['tampered_event_ids']}"
    audit_trail_status.short_description = 'Audit trail'


@admin.register(SignatureInvite)
class SignatureInviteAdmin(admin.ModelAdmin):
    list_display = ('token_short', 'contract', 'role', 'email', 'status', 'expires_at', 'created_at')
    list_filter = ('role', 'status', 'created_at')
    search_fields = ('token', 'contract__name', 'email', 'name')
    readonly_fields = (
        'token', 'public_url', 'otp_hash', 'otp_verified_at', 'used_at', 'created_at'
    )
    fieldsets = (
        ('Invite Info', {
            'fields': ('token', 'public_url', 'contract', 'role', 'email', 'name', 'title')
        }),
        ('Settings', {
            'fields': ('expires_at',)
        }),
        ('Security Code', {
            'fields': ('login_id', 'otp_hash', 'otp_expires_at', 'otp_verified_at'),
            'classes': ('collapse',)
        }),
        ('Status', {
            'fields': ('status', 'used_at')
        }),
        ('Metadata', {
            'fields': ('created_at',),
            'classes': ('collapse',)
        }),
    )

    def token_short(self, obj):
        """Display shortened token."""
        return f"{obj.token[:16]}..."
    token_short.short_description = 'Token'

    def public_url(self, obj):
        if not obj.token:
            return '-'
        return InviteService.public_url(obj)
    public_url.short_description = 'Signing link'

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(SignatureAuditEvent)
class SignatureAuditEventAdmin(admin.ModelAdmin):
    list_display = ('event', 'contract', 'actor', 'at', 'ip')
    list_filter = ('event', 'at')
    search_fields = ('actor', 'details', 'contract__name', 'ip')

    def get_readonly_fields(self, request, obj=None):
        return [f.name for f in self.model._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(FinalizeTask)
class FinalizeTaskAdmin(admin.ModelAdmin):
    list_display = ('contract', 'reason', 'status', 'attempt_count', 'created_at', 'completed_at')
    list_filter = ('status', 'reason', 'created_at')
    search_fields = ('contract__name', 'last_error')
    readonly_fields = ('attempt_count', 'last_error', 'created_at', 'completed_at', 'next_retry_at')
