"""
Field store service layer.

Responsibilities:
- Place and remove fields on draft documents
- Apply default sizes per field type
- Convert editor pointer positions into page percentages
"""

import logging

from django.db import transaction

from ..exceptions import NotFound, ValidationError
from .document_service import DocumentService

logger = logging.getLogger(__name__)

# (width, height) in device-independent units
DEFAULT_FIELD_SIZES = {
    'checkbox': (30, 30),
    'signature': (200, 60),
}
FALLBACK_FIELD_SIZE = (200, 35)


def default_size(field_type):
    return DEFAULT_FIELD_SIZES.get(field_type, FALLBACK_FIELD_SIZE)


def pointer_to_percent(pointer_x, pointer_y, natural_width, natural_height):
    """
    Convert a pointer position on a page raster to percentage coordinates.

    The pointer must already be expressed against the raster's natural
    (intrinsic) size, not its scaled on-screen size. Results are clamped
    to [0, 100].

    Example:
        >>> pointer_to_percent(306, 396, 612, 792)
        (50.0, 50.0)
    """
    if natural_width <= 0 or natural_height <= 0:
        raise ValidationError('Page dimensions must be positive')

    x = pointer_x / natural_width * 100
    y = pointer_y / natural_height * 100
    return min(max(x, 0.0), 100.0), min(max(y, 0.0), 100.0)


class FieldService:
    """Service for field placement logic."""

    @staticmethod
    def validate_position(document, page_number, x, y):
        try:
            page_number = int(page_number)
            x = float(x)
            y = float(y)
        except (TypeError, ValueError):
            raise ValidationError('Page and coordinates must be numeric')

        if not 1 <= page_number <= document.page_count:
            raise ValidationError(f'Page must be between 1 and {document.page_count}')
        if not (0 <= x <= 100 and 0 <= y <= 100):
            raise ValidationError('Coordinates must be between 0 and 100')
        return page_number, x, y

    @staticmethod
    def place_field(document_id, actor, signer_id, field_type, page_number, x, y,
                    width=None, height=None, required=True):
        """
        Place a field for a signer on a draft document.

        Args:
            signer_id: the selected signer; every field must be attributable
            field_type: one of Field.FIELD_TYPES
            page_number: 1-based page
            x, y: position as a percentage of the page size
            width, height: optional explicit size; defaults by type

        Returns:
            Field
        """
        from ..models import Field, Signer

        if field_type not in dict(Field.FIELD_TYPES):
            raise ValidationError(f'Unknown field type: {field_type}')
        if signer_id in (None, ''):
            raise ValidationError('Select a signer before placing a field')

        with transaction.atomic():
            document = DocumentService.get_owned_document(document_id, actor, for_update=True)
            DocumentService.require_draft(document, 'Fields can only be placed on draft documents')

            try:
                signer = document.signers.get(pk=signer_id)
            except (Signer.DoesNotExist, ValueError, TypeError):
                raise ValidationError('Signer does not belong to this document')

            page_number, x, y = FieldService.validate_position(document, page_number, x, y)

            default_width, default_height = default_size(field_type)
            try:
                width = default_width if width in (None, '') else float(width)
                height = default_height if height in (None, '') else float(height)
            except (TypeError, ValueError):
                raise ValidationError('Field size must be numeric')
            if width <= 0 or height <= 0:
                raise ValidationError('Field size must be positive')

            field = Field.objects.create(
                document=document,
                signer=signer,
                field_type=field_type,
                page_number=page_number,
                x=x,
                y=y,
                width=width,
                height=height,
                required=bool(required),
            )

        logger.info(
            "Field %s (%s) placed on document %s page %d for signer %s",
            field.pk, field_type, document.pk, page_number, signer.pk
        )
        return field

    @staticmethod
    def remove_field(field_id, actor, document_id=None):
        """Delete a field (draft only)."""
        from ..models import Field

        DocumentService.require_actor(actor)

        filters = {'pk': field_id, 'document__owner': actor}
        if document_id is not None:
            filters['document_id'] = document_id

        with transaction.atomic():
            try:
                field = Field.objects.get(**filters)
            except (Field.DoesNotExist, ValueError, TypeError):
                raise NotFound('Field not found')

            document = DocumentService.get_owned_document(field.document_id, actor, for_update=True)
            DocumentService.require_draft(document, 'Fields can only be removed from draft documents')
            field.delete()

        logger.info("Field %s removed from document %s", field_id, document.pk)


# Singleton instance
_field_service = None


def get_field_service() -> FieldService:
    """Get singleton instance of field service."""
    global _field_service
    if _field_service is None:
        _field_service = FieldService()
    return _field_service
