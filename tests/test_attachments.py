import base64
import uuid

import pytest

from contracts.exceptions import AttachmentDecodeError, InfrastructureFailure, InvalidRequest, NotFound
from contracts.models import ContractAttachment
from contracts.services.attachment_service import AttachmentService, build_data_url, parse_data_url

pytestmark = pytest.mark.django_db


def attachment_url(contract_id, attachment_id):
    return f'/api/contracts/attachments/{contract_id}/{attachment_id}/'


@pytest.fixture
def attach(contract):
    def _attach(url, name='file'):
        return ContractAttachment.objects.create(contract=contract, url=url, name=name)
    return _attach


class TestParseDataUrl:

    def test_base64_payload(self):
        payload = bytes(range(256))
        url = f'data:application/octet-stream;base64,{base64.b64encode(payload).decode()}'

        assert parse_data_url(url) == ('application/octet-stream', payload)

    def test_percent_encoded_text(self):
        assert parse_data_url('data:text/csv,a%2Cb%0A1%2C2') == ('text/csv', b'a,b\n1,2')

    def test_default_mime_type(self):
        assert parse_data_url('data:,hello') == ('text/plain', b'hello')

    def test_parameters_are_ignored(self):
        mime_type, content = parse_data_url('data:text/plain;charset=utf-8,caf%C3%A9')
        assert mime_type == 'text/plain'
        assert content.decode('utf-8') == 'café'

    def test_wrapped_base64(self):
        assert parse_data_url('data:text/plain;base64,aGVs\nbG8=') == ('text/plain', b'hello')

    def test_invalid_base64(self):
        with pytest.raises(AttachmentDecodeError):
            parse_data_url('data:application/pdf;base64,@@not-base64@@')

    def test_missing_separator(self):
        with pytest.raises(AttachmentDecodeError):
            parse_data_url('data:text/plain;base64')

    def test_build_round_trip(self):
        payload = b'%PDF-1.4 fake'
        assert parse_data_url(build_data_url(payload, 'application/pdf')) == ('application/pdf', payload)


class TestResolve:

    def test_invalid_ids(self, contract):
        with pytest.raises(InvalidRequest) as exc:
            AttachmentService.resolve('not-a-uuid', uuid.uuid4())
        assert exc.value.code == 'invalid_id'

    def test_unknown_contract(self, db):
        with pytest.raises(NotFound) as exc:
            AttachmentService.resolve(uuid.uuid4(), uuid.uuid4())
        assert exc.value.code == 'not_found'

    def test_contract_without_attachments(self, contract):
        with pytest.raises(NotFound) as exc:
            AttachmentService.resolve(contract.pk, uuid.uuid4())
        assert exc.value.code == 'not_found'

    def test_unknown_attachment(self, contract, attach):
        attach('https://files.example.com/x.pdf')

        with pytest.raises(NotFound) as exc:
            AttachmentService.resolve(contract.pk, uuid.uuid4())
        assert exc.value.code == 'attachment_not_found'

    def test_attachment_without_url(self, contract, attach):
        attachment = attach('')

        with pytest.raises(NotFound) as exc:
            AttachmentService.resolve(contract.pk, attachment.pk)
        assert exc.value.code == 'attachment_not_found'

    def test_undecodable_payload(self, contract, attach):
        attachment = attach('data:application/pdf;base64,@@@')

        with pytest.raises(InfrastructureFailure) as exc:
            AttachmentService.resolve(contract.pk, attachment.pk)
        assert exc.value.code == 'attachment_decode_failed'

    def test_unsupported_scheme(self, contract, attach):
        attachment = attach('file:///etc/passwd')

        with pytest.raises(NotFound) as exc:
            AttachmentService.resolve(contract.pk, attachment.pk)
        assert exc.value.code == 'attachment_not_found'

    def test_malformed_location(self, contract, attach):
        attachment = attach('http://[bad')

        with pytest.raises(NotFound) as exc:
            AttachmentService.resolve(contract.pk, attachment.pk)
        assert exc.value.code == 'attachment_not_found'

    def test_external_url_is_redirect(self, contract, attach):
        attachment = attach('https://files.example.com/x.pdf')

        resolved = AttachmentService.resolve(contract.pk, attachment.pk)

        assert resolved.is_redirect
        assert resolved.redirect_url == 'https://files.example.com/x.pdf'
        assert resolved.content is None


class TestAttachmentEndpoint:

    def test_inline_bytes_round_trip(self, api_client, contract, attach):
        payload = bytes(range(256)) * 4
        attachment = attach(build_data_url(payload, 'image/png'))

        response = api_client.get(attachment_url(contract.pk, attachment.pk))

        assert response.status_code == 200
        assert response.content == payload
        assert response['Content-Type'] == 'image/png'
        assert response['X-Content-Type-Options'] == 'nosniff'

    def test_redirect_never_fetches(self, api_client, contract, attach):
        attachment = attach('https://files.example.com/x.pdf')

        response = api_client.get(attachment_url(contract.pk, attachment.pk))

        assert response.status_code == 302
        assert response['Location'] == 'https://files.example.com/x.pdf'

    def test_invalid_id_is_400(self, api_client, contract):
        response = api_client.get(attachment_url('nope', uuid.uuid4()))

        assert response.status_code == 400
        assert response.json() == {'data': None, 'error': 'invalid_id'}

    def test_missing_attachment_is_404(self, api_client, contract, attach):
        attach('https://files.example.com/x.pdf')

        response = api_client.get(attachment_url(contract.pk, uuid.uuid4()))

        assert response.status_code == 404
        assert response.json()['error'] == 'attachment_not_found'

    def test_decode_failure_is_500(self, api_client, contract, attach):
        attachment = attach('data:application/pdf;base64,%%%')

        response = api_client.get(attachment_url(contract.pk, attachment.pk))

        assert response.status_code == 500
        assert response.json() == {'data': None, 'error': 'attachment_decode_failed'}
