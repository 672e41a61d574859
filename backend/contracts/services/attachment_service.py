"""
Attachment retrieval for contracts.

A stored attachment URL is either an inline `data:` URL, decoded and
served directly, or an external location the client is redirected to.
External locations are never fetched server-side.
"""

import base64
import binascii
import logging
import re
import uuid
from dataclasses import dataclass
from urllib.parse import unquote_to_bytes, urlsplit

from ..exceptions import AttachmentDecodeError, InfrastructureFailure, InvalidRequest, NotFound
from ..models import Contract

logger = logging.getLogger(__name__)

DEFAULT_DATA_MIME = 'text/plain'
REDIRECT_SCHEMES = ('http', 'https')
MIME_TYPE_RE = re.compile(r"^[\w.+-]+/[\w.+-]+$")


@dataclass
class ResolvedAttachment:
    """Either inline content (with its mime type) or a redirect target."""
    content: bytes = None
    content_type: str = None
    redirect_url: str = None
    name: str = ''

    @property
    def is_redirect(self):
        return self.redirect_url is not None


def parse_data_url(url):
    """
    Decode a `data:<mime>[;param]*[;base64],<payload>` URL.

    Returns:
        tuple: (mime_type, bytes)

    Raises:
        AttachmentDecodeError: malformed URL or undecodable payload
    """
    if not url.startswith('data:'):
        raise AttachmentDecodeError('Not a data URL')

    header, sep, payload = url[len('data:'):].partition(',')
    if not sep:
        raise AttachmentDecodeError('Data URL has no payload separator')

    params = [p.strip() for p in header.split(';')]
    is_base64 = bool(params) and params[-1].lower() == 'base64'
    if is_base64:
        params = params[:-1]
    mime_type = params[0] if params and params[0] else DEFAULT_DATA_MIME
    if not MIME_TYPE_RE.match(mime_type):
        raise AttachmentDecodeError(f"Invalid mime type in data URL: {mime_type!r}")

    try:
        if is_base64:
            # Tolerate percent-encoded and whitespace-wrapped base64
            raw = unquote_to_bytes(payload)
            raw = b''.join(raw.split())
            content = base64.b64decode(raw, validate=True)
        else:
            content = unquote_to_bytes(payload)
    except (binascii.Error, ValueError) as e:
        raise AttachmentDecodeError(str(e)) from e

    return mime_type, content


def build_data_url(content, mime_type):
    """Encode bytes as a base64 `data:` URL."""
    encoded = base64.b64encode(content).decode('ascii')
    return f'data:{mime_type};base64,{encoded}'


class AttachmentService:
    """Service resolving stored contract attachments."""

    @staticmethod
    def parse_id(value):
        try:
            return uuid.UUID(str(value))
        except (ValueError, AttributeError, TypeError):
            raise InvalidRequest('invalid_id')

    @staticmethod
    def resolve(contract_id, attachment_id):
        """
        Find an attachment and decide how to serve it.

        Returns:
            ResolvedAttachment

        Raises:
            InvalidRequest('invalid_id'), NotFound('not_found'),
            NotFound('attachment_not_found'),
            InfrastructureFailure('attachment_decode_failed')
        """
        contract_uuid = AttachmentService.parse_id(contract_id)
        attachment_uuid = AttachmentService.parse_id(attachment_id)

        try:
            contract = Contract.objects.get(pk=contract_uuid)
        except Contract.DoesNotExist:
            raise NotFound('not_found')

        attachments = contract.attachments.all()
        if not attachments.exists():
            raise NotFound('not_found')

        attachment = attachments.filter(pk=attachment_uuid).first()
        if attachment is None or not attachment.url:
            raise NotFound('attachment_not_found')

        url = attachment.url.strip()

        if url.startswith('data:'):
            try:
                mime_type, content = parse_data_url(url)
            except AttachmentDecodeError:
                logger.exception(
                    "Failed to decode attachment %s of contract %s",
                    attachment.pk, contract.pk
                )
                raise InfrastructureFailure('attachment_decode_failed')
            return ResolvedAttachment(
                content=content,
                content_type=mime_type,
                name=attachment.name,
            )

        try:
            scheme = urlsplit(url).scheme.lower()
        except ValueError:
            scheme = ''

        if scheme not in REDIRECT_SCHEMES:
            logger.warning(
                "Attachment %s of contract %s has unsupported location scheme",
                attachment.pk, contract.pk
            )
            raise NotFound('attachment_not_found')

        return ResolvedAttachment(redirect_url=url, name=attachment.name)


# Singleton instance
_attachment_service = None


def get_attachment_service() -> AttachmentService:
    """Get singleton instance of attachment service."""
    global _attachment_service
    if _attachment_service is None:
        _attachment_service = AttachmentService()
    return _attachment_service
