"""
Audit log service layer.

Responsibilities:
- Append one entry per lifecycle transition
- Serve the trail for display, newest first

Recording is fire-and-forget relative to the operation it describes: the
write runs in its own savepoint and a failure is logged, never raised.
"""

import logging

from django.db import DatabaseError, transaction

logger = logging.getLogger('documents.audit')


class AuditLogService:
    """Service for audit trail entries."""

    ACTION_SENT = 'Document sent for signing'
    ACTION_VIEWED = 'Document viewed'
    ACTION_SIGNED = 'Document signed'
    ACTION_COMPLETED = 'Document completed'
    ACTION_DECLINED = 'Document declined'

    @staticmethod
    def record(document, action, details='', signer=None, context=None):
        """
        Append an audit entry.

        Args:
            document: Document instance
            action: str, one of the ACTION_* constants
            details: str, human readable description
            signer: Signer instance or None for document-level events
            context: RequestContext or None (no client meta, e.g. system actions)

        Returns:
            AuditLogEntry or None if the write failed
        """
        from ..models import AuditLogEntry

        try:
            with transaction.atomic():
                entry = AuditLogEntry.objects.create(
                    document=document,
                    signer=signer,
                    action=action,
                    details=details,
                    ip_address=context.ip_address if context else '',
                    user_agent=context.user_agent if context else '',
                )
        except DatabaseError as e:
            logger.error(
                "Failed to record audit entry %r for document %s: %s",
                action, document.pk, e
            )
            return None

        logger.info("Audit: %s (document=%s, signer=%s)", action, document.pk, signer.pk if signer else None)
        return entry

    @staticmethod
    def trail(document):
        """Entries for a document, newest first, with signer preloaded."""
        return document.audit_logs.select_related('signer').order_by('-created_at', '-id')

    @staticmethod
    def describe_signer(signer):
        return f"{signer.name} ({signer.email})"


# Singleton instance
_audit_service = None


def get_audit_service() -> AuditLogService:
    """Get singleton instance of audit service."""
    global _audit_service
    if _audit_service is None:
        _audit_service = AuditLogService()
    return _audit_service

