import os
from django.conf import settings
from django.db import models
from django.core.validators import MinValueValidator, MaxValueValidator


def document_upload_path(instance, filename):
    """
    Generate upload path for document PDFs.
    Uses the owner id so files of different owners never share a directory.
    """
    return f'documents/{instance.owner_id}/{os.path.basename(filename)}'


class Document(models.Model):
    """
    Document is a PDF routed to one or more signers.
    Mutable by its owner while draft, by the signing flow after send.
    """
    STATUS_DRAFT = 'draft'
    STATUS_SENT = 'sent'
    STATUS_COMPLETED = 'completed'
    STATUS_DECLINED = 'declined'
    STATUS_EXPIRED = 'expired'

    STATUS_CHOICES = [
        (STATUS_DRAFT, 'Draft'),
        (STATUS_SENT, 'Sent for signing'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_DECLINED, 'Declined'),
        (STATUS_EXPIRED, 'Expired'),
    ]

    TERMINAL_STATUSES = (STATUS_COMPLETED, STATUS_DECLINED, STATUS_EXPIRED)

    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='documents'
    )
    title = models.CharField(max_length=255)
    file = models.FileField(upload_to=document_upload_path)
    file_name = models.CharField(max_length=255, blank=True)
    page_count = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_DRAFT)

    # Last sign_order handed out; only ever incremented under the row lock
    last_sign_order = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['owner', 'status'], name='document_owner_status_idx'),
        ]

    def __str__(self):
        return self.title

    @property
    def is_draft(self):
        return self.status == self.STATUS_DRAFT

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES


class Signer(models.Model):
    """
    Signer is a named recipient who acts on the document through a token.
    The token is minted at send time and is the only credential a signer has.
    """
    STATUS_PENDING = 'pending'
    STATUS_SENT = 'sent'
    STATUS_VIEWED = 'viewed'
    STATUS_SIGNED = 'signed'
    STATUS_DECLINED = 'declined'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_SENT, 'Sent'),
        (STATUS_VIEWED, 'Viewed'),
        (STATUS_SIGNED, 'Signed'),
        (STATUS_DECLINED, 'Declined'),
    ]

    FINAL_STATUSES = (STATUS_SIGNED, STATUS_DECLINED)

    document = models.ForeignKey(
        Document,
        on_delete=models.CASCADE,
        related_name='signers'
    )
    name = models.CharField(max_length=255)
    email = models.EmailField()
    sign_order = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    token = models.CharField(
        max_length=64,
        unique=True,
        null=True,
        blank=True,
        help_text="Access token minted at send time (null while pending)"
    )
    signed_at = models.DateTimeField(null=True, blank=True)

    # Client meta captured at submit
    ip_address = models.CharField(max_length=255, blank=True)
    user_agent = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['sign_order']
        constraints = [
            models.UniqueConstraint(
                fields=['document', 'sign_order'],
                name='unique_sign_order_per_document'
            )
        ]

    def __str__(self):
        return f"{self.name} <{self.email}> ({self.status})"

    @property
    def is_final(self):
        return self.status in self.FINAL_STATUSES


class Field(models.Model):
    """
    Field is a typed input region on a page, owned by one signer.
    Position is stored as a percentage (0-100) of the rendered page size.
    """
    TYPE_SIGNATURE = 'signature'
    TYPE_INITIALS = 'initials'
    TYPE_TEXT = 'text'
    TYPE_DATE = 'date'
    TYPE_CHECKBOX = 'checkbox'

    FIELD_TYPES = [
        (TYPE_SIGNATURE, 'Signature'),
        (TYPE_INITIALS, 'Initials'),
        (TYPE_TEXT, 'Text'),
        (TYPE_DATE, 'Date'),
        (TYPE_CHECKBOX, 'Checkbox'),
    ]

    document = models.ForeignKey(
        Document,
        on_delete=models.CASCADE,
        related_name='fields'
    )
    signer = models.ForeignKey(
        Signer,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='fields'
    )
    field_type = models.CharField(max_length=20, choices=FIELD_TYPES)

    # Page and position
    page_number = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    x = models.FloatField(validators=[MinValueValidator(0.0), MaxValueValidator(100.0)])
    y = models.FloatField(validators=[MinValueValidator(0.0), MaxValueValidator(100.0)])
    width = models.FloatField(validators=[MinValueValidator(0.0)])
    height = models.FloatField(validators=[MinValueValidator(0.0)])

    value = models.TextField(null=True, blank=True)
    required = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['page_number', 'y', 'x']

    def __str__(self):
        return f"{self.field_type} p{self.page_number} ({self.signer_id}) - {self.document}"

    @property
    def has_value(self):
        return self.value is not None and str(self.value).strip() != ''


class AuditLogEntry(models.Model):
    """
    Append-only record of a lifecycle transition.
    Rows are never updated or deleted once written.
    """
    document = models.ForeignKey(
        Document,
        on_delete=models.CASCADE,
        related_name='audit_logs'
    )
    signer = models.ForeignKey(
        Signer,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='audit_logs'
    )
    action = models.CharField(max_length=100)
    details = models.TextField(blank=True)
    ip_address = models.CharField(max_length=255, blank=True)
    user_agent = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']
        verbose_name_plural = 'audit log entries'

    def __str__(self):
        return f"{self.action} - {self.document} ({self.created_at})"

    def save(self, *args, **kwargs):
        if self.pk is not None and not self._state.adding:
            raise ValueError("Audit log entries are append-only")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Audit log entries are append-only")
