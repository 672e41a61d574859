from datetime import timedelta
from unittest.mock import Mock

import pytest
from django.utils import timezone
from rest_framework.test import APIClient

from contracts.models import Contract, ContractStatus, SignatureInvite, SignerRole
from contracts.services.finalize_service import FinalizeService
from contracts.services.invite_service import InviteService
from contracts.services.token_utils import generate_secure_token

OTP_CODE = '482913'
OTP_LOGIN = 'jane.doe'


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture(autouse=True)
def finalizer(monkeypatch):
    """Stand-in for the configured finalize collaborator."""
    mock = Mock(name='finalizer', return_value=None)
    monkeypatch.setattr(FinalizeService, 'get_finalizer', staticmethod(lambda: mock))
    return mock


@pytest.fixture
def contract(db):
    return Contract.objects.create(
        name='Master Services Agreement',
        status=ContractStatus.SENT,
        terms='The provider delivers the services described in Schedule A.',
        email_sends=[{'to': 'jane@example.com', 'at': '2024-01-01T00:00:00Z'}],
        internal_owner_user_id='owner-42',
    )


@pytest.fixture
def make_invite(contract):
    """Create a pending invite without a security code."""
    def _make(role=SignerRole.CUSTOMER, **kwargs):
        fields = {
            'token': generate_secure_token(),
            'contract': contract,
            'role': role,
            'email': 'jane@example.com',
            'name': 'Jane Doe',
            'title': 'Director',
            'expires_at': timezone.now() + timedelta(hours=1),
        }
        fields.update(kwargs)
        return SignatureInvite.objects.create(**fields)
    return _make


@pytest.fixture
def invite(make_invite):
    return make_invite()


@pytest.fixture
def otp_invite(contract):
    return InviteService.issue_invite(
        contract,
        SignerRole.CUSTOMER,
        'jane@example.com',
        name='Jane Doe',
        expires_in_days=7,
        otp_code=OTP_CODE,
        login_id=OTP_LOGIN,
    )
