"""
Capabilities used by the signing flow.

Signers hold no grant on the document itself. The final sent -> completed
write runs under CompletionGrant, which can perform that one transition
and nothing else.
"""

from rest_framework import permissions

from .models import Document


class CompletionGrant:
    """Permission to move a sent document to completed, and only that."""

    from_status = Document.STATUS_SENT
    to_status = Document.STATUS_COMPLETED

    def __init__(self, document_id):
        self.document_id = document_id

    def scope(self):
        """Queryset the grant may write to."""
        return Document.objects.filter(pk=self.document_id, status=self.from_status)

    def __repr__(self):
        return f"<CompletionGrant document={self.document_id}>"


class IsDocumentOwner(permissions.BasePermission):
    """Object-level check for owner-only document endpoints."""

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated)

    def has_object_permission(self, request, view, obj):
        document = obj if isinstance(obj, Document) else getattr(obj, 'document', None)
        return document is not None and document.owner_id == request.user.id
