"""
Signer registry service layer.

Responsibilities:
- Add and remove signers on draft documents
- Hand out sign_order numbers (monotonic per document, never reused)
"""

import logging

from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import validate_email
from django.db import transaction
from django.db.models import F

from ..exceptions import NotFound, ValidationError
from .document_service import DocumentService

logger = logging.getLogger(__name__)


class SignerService:
    """Service for signer registry logic."""

    @staticmethod
    def add_signer(document_id, actor, name, email):
        """
        Add a signer to a draft document.

        The document row is locked while the next sign_order is taken, so
        concurrent adds never share a number.

        Returns:
            Signer
        """
        from ..models import Document, Signer

        name = (name or '').strip()
        email = (email or '').strip()
        if not name or not email:
            raise ValidationError('Signer name and email are required')
        try:
            validate_email(email)
        except DjangoValidationError:
            raise ValidationError(f'Invalid email address: {email}')

        with transaction.atomic():
            document = DocumentService.get_owned_document(document_id, actor, for_update=True)
            DocumentService.require_draft(document, 'Signers can only be added to draft documents')

            Document.objects.filter(pk=document.pk).update(last_sign_order=F('last_sign_order') + 1)
            document.refresh_from_db(fields=['last_sign_order'])

            signer = Signer.objects.create(
                document=document,
                name=name,
                email=email,
                sign_order=document.last_sign_order,
                status=Signer.STATUS_PENDING,
            )

        logger.info("Signer %s added to document %s (order %d)", signer.pk, document.pk, signer.sign_order)
        return signer

    @staticmethod
    def get_owned_signer(signer_id, actor, document_id=None):
        from ..models import Signer

        DocumentService.require_actor(actor)

        filters = {'pk': signer_id, 'document__owner': actor}
        if document_id is not None:
            filters['document_id'] = document_id

        try:
            return Signer.objects.select_related('document').get(**filters)
        except (Signer.DoesNotExist, ValueError, TypeError):
            raise NotFound('Signer not found')

    @staticmethod
    def remove_signer(signer_id, actor, document_id=None):
        """Remove a signer and every field assigned to it (draft only)."""
        with transaction.atomic():
            signer = SignerService.get_owned_signer(signer_id, actor, document_id)
            document = DocumentService.get_owned_document(signer.document_id, actor, for_update=True)
            DocumentService.require_draft(document, 'Signers can only be removed from draft documents')

            removed_fields = signer.fields.count()
            # Field.signer cascades
            signer.delete()

        logger.info(
            "Signer %s removed from document %s (%d field(s) removed)",
            signer_id, document.pk, removed_fields
        )

    @staticmethod
    def list_signers(document):
        return document.signers.order_by('sign_order')


# Singleton instance
_signer_service = None


def get_signer_service() -> SignerService:
    """Get singleton instance of signer service."""
    global _signer_service
    if _signer_service is None:
        _signer_service = SignerService()
    return _signer_service
