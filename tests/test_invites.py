import pytest
from django.core.exceptions import ValidationError

from contracts.exceptions import NotFound
from contracts.models import InviteStatus, SignerRole
from contracts.services.hashing import HashingService
from contracts.services.invite_service import InviteService

pytestmark = pytest.mark.django_db


def test_issue_plain_invite(contract, settings):
    settings.FRONTEND_BASE_URL = 'https://app.example.com'

    invite = InviteService.issue_invite(contract, SignerRole.PROVIDER, 'paul@example.com',
                                        name='Paul Provider', expires_in_days=3)

    assert invite.status == InviteStatus.PENDING
    assert len(invite.token) >= 40
    assert invite.expires_at is not None
    assert invite.otp_hash is None
    assert not invite.otp_locked
    assert InviteService.public_url(invite) == f'https://app.example.com/sign/{invite.token}'


def test_tokens_are_unique(contract):
    tokens = {
        InviteService.issue_invite(contract, SignerRole.CUSTOMER, 'jane@example.com').token
        for _ in range(5)
    }
    assert len(tokens) == 5


def test_no_expiry_when_days_missing(contract):
    invite = InviteService.issue_invite(contract, SignerRole.CUSTOMER, 'jane@example.com')
    assert invite.expires_at is None


def test_issue_gated_invite_stores_digest(contract, settings):
    settings.SIGNATURE_INVITE_OTP_TTL_MINUTES = 10

    invite = InviteService.issue_invite(contract, SignerRole.CUSTOMER, 'jane@example.com',
                                        otp_code='123456', login_id='jane')

    assert invite.otp_hash == HashingService.compute_text_sha256('123456')
    assert invite.otp_locked
    assert (invite.otp_expires_at - invite.created_at).total_seconds() == 600


def test_unknown_role_rejected(contract):
    with pytest.raises(ValidationError):
        InviteService.issue_invite(contract, 'witness', 'w@example.com')


def test_code_requires_login_id(contract):
    with pytest.raises(ValidationError):
        InviteService.issue_invite(contract, SignerRole.CUSTOMER, 'jane@example.com', otp_code='123456')


def test_token_lookup_is_exact(invite):
    with pytest.raises(NotFound):
        InviteService.get_invite(invite.token.upper() + 'x')
    assert InviteService.get_invite(invite.token).pk == invite.pk


def test_mark_signed_only_once(invite):
    first = InviteService.mark_signed(invite.token, 'Jane Doe', 'Director', invite.created_at)
    second = InviteService.mark_signed(invite.token, 'Jane Doe', 'Director', invite.created_at)

    assert (first, second) == (1, 0)
