"""
Document business logic service layer.

Responsibilities:
- Create documents from uploaded PDFs
- Scope document access to the owner
- Run the draft -> sent transition (tokens, signer statuses, links)
- Own the sent -> completed transition and its reconciliation
"""

import logging
import os

from django.db import transaction
from django.db.models import Count, Exists, OuterRef
from django.utils import timezone
from PyPDF2 import PdfReader
from PyPDF2.errors import PdfReadError

from ..config import get_signing_config
from ..exceptions import InvalidState, NotFound, Unauthorized, ValidationError
from ..permissions import CompletionGrant
from .audit_service import AuditLogService
from .token_service import SignerTokenService
from .token_utils import build_signing_url

logger = logging.getLogger(__name__)


class DocumentService:
    """Service for document lifecycle logic."""

    @staticmethod
    def require_actor(actor):
        """Raise Unauthorized unless actor is an authenticated user."""
        if actor is None or not getattr(actor, 'is_authenticated', False):
            raise Unauthorized('Authentication required')
        return actor

    @staticmethod
    def count_pages(file_obj):
        """
        Read the page count of an uploaded PDF.

        Raises:
            ValidationError: if the file is not a readable PDF
        """
        try:
            file_obj.seek(0)
            reader = PdfReader(file_obj)
            page_count = len(reader.pages)
        except (PdfReadError, ValueError, OSError) as e:
            raise ValidationError(f'Uploaded file is not a readable PDF: {e}')
        finally:
            file_obj.seek(0)

        if page_count < 1:
            raise ValidationError('Uploaded PDF has no pages')
        return page_count

    @staticmethod
    def create_document(actor, title, file):
        """
        Create a draft document from an uploaded PDF.

        Args:
            actor: owning user
            title: str
            file: uploaded file object

        Returns:
            Document
        """
        from ..models import Document

        DocumentService.require_actor(actor)

        if not title or not title.strip():
            raise ValidationError('Please provide a title')
        if file is None:
            raise ValidationError('Please upload a PDF')

        page_count = DocumentService.count_pages(file)
        document = Document.objects.create(
            owner=actor,
            title=title.strip(),
            file=file,
            file_name=os.path.basename(getattr(file, 'name', '') or ''),
            page_count=page_count,
        )
        logger.info("Document %s created by user %s (%d page(s))", document.pk, actor.pk, page_count)
        return document

    @staticmethod
    def get_owned_document(document_id, actor, for_update=False):
        """
        Fetch a document owned by actor.

        Missing and not-owned are indistinguishable to the caller.
        """
        from ..models import Document

        DocumentService.require_actor(actor)

        queryset = Document.objects.all()
        if for_update:
            queryset = queryset.select_for_update()

        try:
            return queryset.get(pk=document_id, owner=actor)
        except (Document.DoesNotExist, ValueError, TypeError):
            raise NotFound('Document not found')

    @staticmethod
    def require_draft(document, message=None):
        if not document.is_draft:
            raise InvalidState(message or 'Document is no longer a draft')

    @staticmethod
    def list_documents(actor):
        from ..models import Document

        DocumentService.require_actor(actor)
        return Document.objects.filter(owner=actor).prefetch_related('signers').order_by('-created_at')

    @staticmethod
    def status_summary(actor):
        """
        Count the actor's documents per status.

        Returns:
            dict: {status: count, ..., 'total': int}
        """
        from ..models import Document

        DocumentService.require_actor(actor)

        summary = {value: 0 for value, _ in Document.STATUS_CHOICES}
        rows = Document.objects.filter(owner=actor).values('status').annotate(count=Count('id'))
        for row in rows:
            summary[row['status']] = row['count']
        summary['total'] = sum(summary.values())
        return summary

    @staticmethod
    def delete_document(document_id, actor):
        """Delete a draft document together with its signers and fields."""
        with transaction.atomic():
            document = DocumentService.get_owned_document(document_id, actor, for_update=True)
            DocumentService.require_draft(document, 'Only draft documents can be deleted')
            document.delete()
        logger.info("Document %s deleted by user %s", document_id, actor.pk)

    @staticmethod
    def send(document_id, actor, origin=None, context=None, config=None):
        """
        Send a draft document for signing.

        Mints a token for every signer and moves the document and all
        signers to 'sent' in one transaction.

        Args:
            document_id: Document primary key
            actor: requesting user (must own the document)
            origin: str, origin for signing links (defaults to config)
            context: RequestContext of the request
            config: SigningConfig

        Returns:
            list: [{'name', 'email', 'url'}] ordered by sign_order

        Raises:
            NotFound, InvalidState, ValidationError, DependencyFailure
        """
        from ..models import Document, Signer

        config = config or get_signing_config()
        origin = origin or config.default_origin

        with transaction.atomic():
            document = DocumentService.get_owned_document(document_id, actor, for_update=True)
            DocumentService.require_draft(document, 'Document already sent')

            signers = list(document.signers.order_by('sign_order'))
            if not signers:
                raise ValidationError('Add at least one signer')
            if not document.fields.exists():
                raise ValidationError('Add at least one field')

            for signer in signers:
                signer.token = SignerTokenService.mint_token(config)
                signer.status = Signer.STATUS_SENT
                # Persisted per signer so mint_token sees tokens minted earlier in this loop
                signer.save(update_fields=['token', 'status'])

            document.status = Document.STATUS_SENT
            document.save(update_fields=['status', 'updated_at'])

            AuditLogService.record(
                document,
                AuditLogService.ACTION_SENT,
                details=f"Sent to {len(signers)} signer(s): {', '.join(s.email for s in signers)}",
                context=context,
            )

        logger.info("Document %s sent to %d signer(s)", document.pk, len(signers))

        return [
            {
                'name': signer.name,
                'email': signer.email,
                'url': build_signing_url(origin, signer.token),
            }
            for signer in signers
        ]

    @staticmethod
    def fully_signed_conditions():
        """Filter expressions matching documents whose signers have all signed (at least one)."""
        from ..models import Signer

        signers = Signer.objects.filter(document=OuterRef('pk'))
        unsigned = signers.exclude(status=Signer.STATUS_SIGNED)
        return Exists(signers), ~Exists(unsigned)

    @staticmethod
    def complete_if_all_signed(document_id, grant=None):
        """
        Promote a sent document to completed if no unsigned signer remains.

        The check and the write are one conditional UPDATE under the document
        row lock, so concurrent submissions produce exactly one transition.

        Returns:
            bool: True only for the call that performed the transition
        """
        from ..models import Document

        grant = grant or CompletionGrant(document_id)

        with transaction.atomic():
            # Row lock serializes concurrent completion attempts
            locked = list(grant.scope().select_for_update().values_list('pk', flat=True))
            if not locked:
                return False

            updated = (
                grant.scope()
                .filter(*DocumentService.fully_signed_conditions())
                .update(status=grant.to_status, updated_at=timezone.now())
            )
            if not updated:
                return False

            document = Document.objects.get(pk=document_id)
            AuditLogService.record(
                document,
                AuditLogService.ACTION_COMPLETED,
                details='All signers have signed the document',
            )

        logger.info("Document %s completed", document_id)
        return True

    @staticmethod
    def reconcile_completions():
        """
        Complete every sent document whose signers have all signed.

        Retry path for submissions whose completion step failed.

        Returns:
            list: ids of documents completed by this run
        """
        from ..models import Document

        candidates = (
            Document.objects.filter(status=Document.STATUS_SENT)
            .filter(*DocumentService.fully_signed_conditions())
            .values_list('pk', flat=True)
        )

        completed = [pk for pk in list(candidates) if DocumentService.complete_if_all_signed(pk)]
        if completed:
            logger.info("Reconciled %d document(s) to completed: %s", len(completed), completed)
        return completed


# Singleton instance
_document_service = None


def get_document_service() -> DocumentService:
    """Get singleton instance of document service."""
    global _document_service
    if _document_service is None:
        _document_service = DocumentService()
    return _document_service
