"""
Signing process service layer.

Responsibilities:
- Resolve a signer token to the signing payload (and record the first view)
- Process field submissions from signers (validation -> field updates -> audit)
- Process declines, which terminate the whole document
- Trigger completion detection after every successful submission

Why:
- Signers are independent, token-only sessions; the only coordination
  between them is the shared document row, so every status write here is
  either done under a row lock or as a conditional update.
"""

import logging

from django.db import DatabaseError, transaction
from django.utils import timezone

from ..config import get_signing_config
from ..exceptions import AlreadySigned, DependencyFailure, InvalidState, ValidationError
from ..request_context import RequestContext
from .audit_service import AuditLogService
from .document_service import DocumentService
from .token_service import SignerTokenService
from .token_utils import mask_token

logger = logging.getLogger(__name__)


def normalize_field_values(field_values):
    """
    Normalize a submission into {field_id: value}.

    Accepts a list of {'id' or 'field_id', 'value'} dicts or a plain mapping.
    Entries whose id is not an integer are dropped. Booleans (checkboxes)
    become 'true'/'false'; None stays None.
    """
    if not field_values:
        return {}

    if isinstance(field_values, dict):
        items = field_values.items()
    else:
        items = []
        for fv in field_values:
            if not isinstance(fv, dict):
                raise ValidationError('Each field value must be an object with id and value')
            items.append((fv.get('id', fv.get('field_id')), fv.get('value')))

    values = {}
    for field_id, value in items:
        try:
            field_id = int(field_id)
        except (TypeError, ValueError):
            logger.warning("Dropping field value with non-integer id %r", field_id)
            continue
        if isinstance(value, bool):
            value = 'true' if value else 'false'
        elif value is not None:
            value = str(value)
        values[field_id] = value
    return values


def validate_required_fields(fields, field_values):
    """
    Return ids of required fields left empty once field_values are applied.

    Args:
        fields: iterable of Field owned by one signer
        field_values: {field_id: value} as returned by normalize_field_values
    """
    missing = []
    for field in fields:
        if not field.required:
            continue
        value = field_values.get(field.id, field.value)
        if value is None or str(value).strip() == '':
            missing.append(field.id)
    return missing


class SigningProcessService:
    """Service for the signer-facing flow."""

    @staticmethod
    def check_sign_order(signer, config):
        """
        Reject out-of-order access when sequential signing is enabled.

        With enforcement off (the default) signers act in any order.
        """
        from ..models import Signer

        if not config.enforce_sign_order or signer.is_final:
            return

        waiting_on = (
            Signer.objects.filter(document_id=signer.document_id, sign_order__lt=signer.sign_order)
            .exclude(status=Signer.STATUS_SIGNED)
        )
        if waiting_on.exists():
            raise InvalidState('Waiting for earlier signers to sign first')

    @staticmethod
    def resolve_by_token(token, context=None, config=None):
        """
        Load everything a signer needs to view and fill the document.

        The first view of a 'sent' signer on a 'sent' document moves it to
        'viewed' and writes one audit entry. Later views, and any view of a
        completed or declined document, are pure reads.

        Returns:
            dict: {'signer', 'document', 'fields'}

        Raises:
            NotFound: unknown token
            InvalidState: out-of-order access with sequential signing enabled
        """
        from ..models import Document, Signer

        config = config or get_signing_config()
        context = context or RequestContext()

        signer = SignerTokenService.get_signer_by_token(token)
        if signer.document.is_terminal:
            return SigningProcessService._signing_payload(signer)

        SigningProcessService.check_sign_order(signer, config)

        if signer.status == Signer.STATUS_SENT:
            with transaction.atomic():
                updated = Signer.objects.filter(
                    pk=signer.pk,
                    status=Signer.STATUS_SENT,
                    document__status=Document.STATUS_SENT,
                ).update(status=Signer.STATUS_VIEWED)

                if updated:
                    AuditLogService.record(
                        signer.document,
                        AuditLogService.ACTION_VIEWED,
                        details=f"{AuditLogService.describe_signer(signer)} viewed the document",
                        signer=signer,
                        context=context,
                    )
                    logger.info("Signer %s viewed document %s", signer.pk, signer.document_id)

            signer.refresh_from_db(fields=['status'])

        return SigningProcessService._signing_payload(signer)

    @staticmethod
    def _signing_payload(signer):
        document = signer.document
        return {
            'signer': signer,
            'document': document,
            'fields': list(document.fields.select_related('signer').all()),
        }

    @staticmethod
    def submit(token, field_values, context=None, config=None):
        """
        Process a signer's submission.

        Phase 1 (one transaction, signer row locked): validate state and
        required fields, write the signer's field values, mark the signer
        signed, record the audit entry.
        Phase 2: completion detection. A failure here is logged and does not
        fail the submission; reconciliation promotes the document later.

        Args:
            token: str, signer token
            field_values: list of {'id', 'value'} (or {field_id: value})
            context: RequestContext

        Returns:
            dict: {'completed': bool}

        Raises:
            NotFound, AlreadySigned, InvalidState, ValidationError
        """
        from ..models import Document, Field, Signer

        config = config or get_signing_config()
        context = context or RequestContext()
        values = normalize_field_values(field_values)

        with transaction.atomic():
            signer = SignerTokenService.get_signer_by_token(token, for_update=True)
            document = signer.document

            if signer.status == Signer.STATUS_SIGNED:
                raise AlreadySigned()
            if signer.status == Signer.STATUS_DECLINED:
                raise InvalidState('You have declined this document')
            if document.status not in (Document.STATUS_SENT, Document.STATUS_DECLINED):
                raise InvalidState(f'Document is {document.status} and cannot be signed')
            SigningProcessService.check_sign_order(signer, config)

            own_fields = list(signer.fields.all())

            missing = validate_required_fields(own_fields, values)
            if missing:
                raise ValidationError(
                    'All required fields must be filled',
                    details={'missing_fields': missing}
                )

            ignored = sorted(set(values) - {f.id for f in own_fields})
            if ignored:
                logger.warning(
                    "Ignoring field ids %s not owned by signer %s (%s)",
                    ignored, signer.pk, mask_token(token)
                )

            fields_to_update = []
            for field in own_fields:
                if field.id in values:
                    field.value = values[field.id]
                    fields_to_update.append(field)

            # Bulk update fields (efficient, avoids N+1)
            if fields_to_update:
                Field.objects.bulk_update(fields_to_update, ['value'])

            signer.status = Signer.STATUS_SIGNED
            signer.signed_at = timezone.now()
            signer.ip_address = context.ip_address
            signer.user_agent = context.user_agent
            signer.save(update_fields=['status', 'signed_at', 'ip_address', 'user_agent'])

            AuditLogService.record(
                document,
                AuditLogService.ACTION_SIGNED,
                details=f"{AuditLogService.describe_signer(signer)} signed the document",
                signer=signer,
                context=context,
            )

        logger.info(
            "Signer %s signed document %s (%d field(s) filled)",
            signer.pk, document.pk, len(fields_to_update)
        )

        completed = False
        if document.status == Document.STATUS_SENT:
            completed = SigningProcessService._try_complete(document.pk)

        return {'completed': completed}

    @staticmethod
    def _try_complete(document_id):
        """Run completion detection; never lets a failure escape."""
        try:
            return DocumentService.complete_if_all_signed(document_id)
        except (DatabaseError, DependencyFailure) as e:
            logger.error(
                "Completion check failed for document %s, left for reconciliation: %s",
                document_id, e
            )
            return False

    @staticmethod
    def decline(token, reason=None, context=None):
        """
        Decline on behalf of a signer; the whole document becomes declined.

        Raises:
            NotFound: unknown token
            AlreadySigned: the signer has already signed
            InvalidState: the signer already declined or the document is no longer out for signing
        """
        from ..models import Document, Signer

        context = context or RequestContext()
        reason = (reason or '').strip()

        with transaction.atomic():
            signer = SignerTokenService.get_signer_by_token(token, for_update=True)
            document = signer.document

            if signer.status == Signer.STATUS_SIGNED:
                raise AlreadySigned('You have already signed this document')
            if signer.status == Signer.STATUS_DECLINED:
                raise InvalidState('You have already declined this document')
            if document.status != Document.STATUS_SENT:
                raise InvalidState(f'Document is already {document.status}')

            signer.status = Signer.STATUS_DECLINED
            signer.save(update_fields=['status'])

            Document.objects.filter(pk=document.pk, status=Document.STATUS_SENT).update(
                status=Document.STATUS_DECLINED,
                updated_at=timezone.now(),
            )

            details = f"{AuditLogService.describe_signer(signer)} declined to sign"
            if reason:
                details = f"{details}: {reason}"
            AuditLogService.record(
                document,
                AuditLogService.ACTION_DECLINED,
                details=details,
                signer=signer,
                context=context,
            )

        logger.info("Signer %s declined document %s", signer.pk, document.pk)
        return {'ok': True}


# Singleton instance
_signing_process_service = None


def get_signing_process_service() -> SigningProcessService:
    """Get singleton instance of signing process service."""
    global _signing_process_service
    if _signing_process_service is None:
        _signing_process_service = SigningProcessService()
    return _signing_process_service
