from datetime import timedelta

import pytest
from django.utils import timezone

from contracts.exceptions import InvalidRequest, NotFound, TerminalState
from contracts.models import InviteStatus, SignatureInvite
from contracts.services.otp_service import OtpService

from .conftest import OTP_CODE, OTP_LOGIN

pytestmark = pytest.mark.django_db


def otp_url(token):
    return f'/api/public/contracts/sign/{token}/otp/'


class TestVerifyOtp:

    def test_correct_code_unlocks_invite(self, otp_invite):
        result = OtpService.verify_otp(otp_invite.token, OTP_LOGIN, OTP_CODE)

        assert result == {'ok': True}
        otp_invite.refresh_from_db()
        assert otp_invite.otp_verified_at is not None
        assert otp_invite.status == InviteStatus.PENDING

    def test_only_digest_is_stored(self, otp_invite):
        assert otp_invite.otp_hash != OTP_CODE
        assert len(otp_invite.otp_hash) == 64

    def test_unknown_token(self, db):
        with pytest.raises(NotFound) as exc:
            OtpService.verify_otp('no-such-token', OTP_LOGIN, OTP_CODE)
        assert exc.value.code == 'invalid_or_expired'

    def test_signed_invite_is_already_used(self, otp_invite):
        SignatureInvite.objects.filter(pk=otp_invite.pk).update(status=InviteStatus.SIGNED)

        with pytest.raises(TerminalState) as exc:
            OtpService.verify_otp(otp_invite.token, OTP_LOGIN, OTP_CODE)
        assert exc.value.code == 'already_used'

    def test_invite_without_code(self, invite):
        with pytest.raises(InvalidRequest) as exc:
            OtpService.verify_otp(invite.token, OTP_LOGIN, OTP_CODE)
        assert exc.value.code == 'otp_not_configured'

    def test_expired_code_rejected_even_when_correct(self, otp_invite):
        SignatureInvite.objects.filter(pk=otp_invite.pk).update(
            otp_expires_at=timezone.now() - timedelta(minutes=1)
        )

        with pytest.raises(TerminalState) as exc:
            OtpService.verify_otp(otp_invite.token, OTP_LOGIN, OTP_CODE)
        assert exc.value.code == 'otp_expired'

    def test_expiry_is_inclusive(self, otp_invite):
        result = OtpService.verify_otp(
            otp_invite.token, OTP_LOGIN, OTP_CODE, now=otp_invite.otp_expires_at
        )
        assert result == {'ok': True}

    def test_login_must_match_exactly(self, otp_invite):
        with pytest.raises(InvalidRequest) as exc:
            OtpService.verify_otp(otp_invite.token, OTP_LOGIN.upper(), OTP_CODE)
        assert exc.value.code == 'login_invalid'

    def test_wrong_code(self, otp_invite):
        with pytest.raises(InvalidRequest) as exc:
            OtpService.verify_otp(otp_invite.token, OTP_LOGIN, '000000')
        assert exc.value.code == 'otp_invalid'

        otp_invite.refresh_from_db()
        assert otp_invite.otp_verified_at is None

    def test_expiry_checked_before_login(self, otp_invite):
        SignatureInvite.objects.filter(pk=otp_invite.pk).update(
            otp_expires_at=timezone.now() - timedelta(minutes=1)
        )

        with pytest.raises(TerminalState) as exc:
            OtpService.verify_otp(otp_invite.token, 'someone-else', 'bad-code')
        assert exc.value.code == 'otp_expired'


class TestVerifyOtpEndpoint:

    def test_success_envelope(self, api_client, otp_invite):
        response = api_client.post(
            otp_url(otp_invite.token),
            {'loginId': OTP_LOGIN, 'otpCode': OTP_CODE},
            format='json'
        )

        assert response.status_code == 200
        assert response.json() == {'data': {'ok': True}, 'error': None}

    def test_short_code_is_invalid_payload(self, api_client, otp_invite):
        response = api_client.post(
            otp_url(otp_invite.token),
            {'loginId': OTP_LOGIN, 'otpCode': '12'},
            format='json'
        )

        body = response.json()
        assert response.status_code == 400
        assert body['error'] == 'invalid_payload'
        assert 'otpCode' in body['details']

    def test_wrong_code_is_400(self, api_client, otp_invite):
        response = api_client.post(
            otp_url(otp_invite.token),
            {'loginId': OTP_LOGIN, 'otpCode': '999999'},
            format='json'
        )

        assert response.status_code == 400
        assert response.json() == {'data': None, 'error': 'otp_invalid'}

    def test_expired_code_is_410(self, api_client, otp_invite):
        SignatureInvite.objects.filter(pk=otp_invite.pk).update(
            otp_expires_at=timezone.now() - timedelta(seconds=1)
        )

        response = api_client.post(
            otp_url(otp_invite.token),
            {'loginId': OTP_LOGIN, 'otpCode': OTP_CODE},
            format='json'
        )

        assert response.status_code == 410
        assert response.json()['error'] == 'otp_expired'

    def test_unknown_token_is_404(self, api_client, db):
        response = api_client.post(
            otp_url('missing'),
            {'loginId': OTP_LOGIN, 'otpCode': OTP_CODE},
            format='json'
        )

        assert response.status_code == 404
        assert response.json()['error'] == 'invalid_or_expired'
