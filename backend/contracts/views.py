import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import validate_ipv46_address
from django.db import DatabaseError
from django.http import HttpResponse, HttpResponseRedirect
from rest_framework import status, viewsets
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from .exceptions import SigningError
from .serializers import OtpPayloadSerializer, SignPayloadSerializer
from .services.attachment_service import get_attachment_service
from .services.otp_service import get_otp_service
from .services.signing_process import get_signing_process_service

logger = logging.getLogger(__name__)


def envelope(data=None, error=None, details=None, status_code=status.HTTP_200_OK):
    """Wrap a result in the `{data, error}` response envelope."""
    body = {'data': data, 'error': error}
    if details is not None:
        body['details'] = details
    return Response(body, status=status_code)


def error_response(exc):
    return envelope(error=exc.code, details=exc.details, status_code=exc.status_code)


def get_client_ip(request):
    """First X-Forwarded-For hop, else REMOTE_ADDR. None if not an IP address."""
    forwarded = request.META.get('HTTP_X_FORWARDED_FOR', '')
    candidate = forwarded.split(',')[0].strip() if forwarded else request.META.get('REMOTE_ADDR')
    if not candidate:
        return None
    try:
        validate_ipv46_address(candidate)
    except DjangoValidationError:
        return None
    return candidate


def run_protocol(operation):
    """
    Call a service operation and map its outcome onto the envelope.

    Expected failures carry their own code and status; database errors
    become `db_unavailable`, anything else `internal_error`. Details of
    unexpected failures are logged, never returned.
    """
    try:
        return envelope(data=operation())
    except SigningError as exc:
        return error_response(exc)
    except DatabaseError:
        logger.exception("Database unavailable while handling signing request")
        return envelope(error='db_unavailable', status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
    except Exception:
        logger.exception("Unexpected error while handling signing request")
        return envelope(error='internal_error', status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


class PublicSignViewSet(viewsets.ViewSet):
    """ViewSet for public signing endpoints (no auth required)."""
    permission_classes = [AllowAny]
    authentication_classes = []

    def get_invite(self, request, token=None):
        """Invite metadata, plus the redacted contract once the OTP gate is open."""
        service = get_signing_process_service()
        return run_protocol(lambda: service.get_invite_view(token))

    def submit_signature(self, request, token=None):
        """Apply the caller's signature for the invite's role."""
        serializer = SignPayloadSerializer(data=request.data)
        if not serializer.is_valid():
            return envelope(
                error='invalid_payload',
                details=serializer.errors,
                status_code=status.HTTP_400_BAD_REQUEST
            )

        payload = serializer.validated_data
        service = get_signing_process_service()
        return run_protocol(lambda: service.submit_signature(
            token,
            name=payload['name'],
            email=payload['email'],
            title=payload.get('title'),
            ip_address=get_client_ip(request),
            user_agent=request.META.get('HTTP_USER_AGENT', ''),
        ))

    def verify_otp(self, request, token=None):
        """Check the login id and one-time code, then unlock the invite."""
        serializer = OtpPayloadSerializer(data=request.data)
        if not serializer.is_valid():
            return envelope(
                error='invalid_payload',
                details=serializer.errors,
                status_code=status.HTTP_400_BAD_REQUEST
            )

        payload = serializer.validated_data
        service = get_otp_service()
        return run_protocol(lambda: service.verify_otp(
            token,
            login_id=payload['loginId'],
            code=payload['otpCode'],
        ))


class ContractAttachmentView(APIView):
    """Serve an inline attachment or redirect to its external location."""
    permission_classes = [AllowAny]

    def get(self, request, contract_id=None, attachment_id=None):
        service = get_attachment_service()
        try:
            resolved = service.resolve(contract_id, attachment_id)
        except SigningError as exc:
            return error_response(exc)
        except DatabaseError:
            logger.exception("Database unavailable while resolving attachment %s", attachment_id)
            return envelope(error='db_unavailable', status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
        except Exception:
            logger.exception("Unexpected error while resolving attachment %s", attachment_id)
            return envelope(error='internal_error', status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

        if resolved.is_redirect:
            return HttpResponseRedirect(resolved.redirect_url)

        response = HttpResponse(resolved.content, content_type=resolved.content_type)
        response['X-Content-Type-Options'] = 'nosniff'
        return response
