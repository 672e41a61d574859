from .hashing import HashingService
from .token_utils import generate_secure_token, calculate_expiry
from .invite_service import InviteService
from .otp_service import OtpService, get_otp_service
from .audit_service import AuditService
from .finalize_service import FinalizeService
from .execution_service import ExecutionService
from .signing_process import SigningProcessService, get_signing_process_service
from .attachment_service import AttachmentService, get_attachment_service

__all__ = [
    'HashingService',
    'generate_secure_token',
    'calculate_expiry',
    'InviteService',
    'OtpService',
    'get_otp_service',
    'AuditService',
    'FinalizeService',
    'ExecutionService',
    'SigningProcessService',
    'get_signing_process_service',
    'AttachmentService',
    'get_attachment_service',
]
