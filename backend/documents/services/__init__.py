from .token_utils import generate_secure_token, build_signing_url
from .token_service import SignerTokenService, get_token_service
from .audit_service import AuditLogService, get_audit_service
from .document_service import DocumentService, get_document_service
from .signer_service import SignerService, get_signer_service
from .field_service import FieldService, get_field_service, pointer_to_percent
from .signing_process import SigningProcessService, get_signing_process_service

__all__ = [
    'generate_secure_token',
    'build_signing_url',
    'SignerTokenService',
    'get_token_service',
    'AuditLogService',
    'get_audit_service',
    'DocumentService',
    'get_document_service',
    'SignerService',
    'get_signer_service',
    'FieldService',
    'get_field_service',
    'pointer_to_percent',
    'SigningProcessService',
    'get_signing_process_service',
]
