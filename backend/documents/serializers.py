from rest_framework import serializers

from .models import Document, Signer, Field, AuditLogEntry


class FieldSerializer(serializers.ModelSerializer):
    """Serializer for Field with owning signer id."""
    signer_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = Field
        fields = [
            'id', 'signer_id', 'field_type', 'page_number',
            'x', 'y', 'width', 'height', 'value', 'required', 'created_at'
        ]
        read_only_fields = fields


class SignerSerializer(serializers.ModelSerializer):
    """Owner-facing signer view. The token is never exposed here."""

    class Meta:
        model = Signer
        fields = [
            'id', 'name', 'email', 'sign_order', 'status',
            'signed_at', 'ip_address', 'user_agent', 'created_at'
        ]
        read_only_fields = fields


class PublicSignerSerializer(serializers.ModelSerializer):
    """Signer-facing view of the signer addressed by the token."""

    class Meta:
        model = Signer
        fields = ['id', 'name', 'email', 'sign_order', 'status', 'signed_at']
        read_only_fields = fields


class DocumentListSerializer(serializers.ModelSerializer):
    """Serializer for Document list view."""
    signer_count = serializers.SerializerMethodField()
    signed_count = serializers.SerializerMethodField()

    class Meta:
        model = Document
        fields = [
            'id', 'title', 'file_name', 'status', 'page_count',
            'signer_count', 'signed_count', 'created_at', 'updated_at'
        ]
        read_only_fields = fields

    def get_signer_count(self, obj):
        return len(obj.signers.all())

    def get_signed_count(self, obj):
        return len([s for s in obj.signers.all() if s.status == Signer.STATUS_SIGNED])


class FileUrlMixin:
    def get_file_url(self, obj):
        """Return the correct file URL."""
        if obj.file:
            request = self.context.get('request')
            if request:
                return request.build_absolute_uri(obj.file.url)
            return obj.file.url
        return None


class DocumentDetailSerializer(FileUrlMixin, serializers.ModelSerializer):
    """Serializer for Document detail with signers and fields."""
    file_url = serializers.SerializerMethodField()
    signers = SignerSerializer(many=True, read_only=True)
    fields = FieldSerializer(many=True, read_only=True)

    class Meta:
        model = Document
        fields = [
            'id', 'title', 'file_name', 'file_url', 'status', 'page_count',
            'signers', 'fields', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


class PublicDocumentSerializer(FileUrlMixin, serializers.ModelSerializer):
    """Document as seen by a signer: no signer list, no owner data."""
    file_url = serializers.SerializerMethodField()

    class Meta:
        model = Document
        fields = ['id', 'title', 'file_name', 'file_url', 'status', 'page_count', 'created_at']
        read_only_fields = fields


class DocumentCreateSerializer(serializers.Serializer):
    """Serializer for creating a document from an uploaded PDF."""
    title = serializers.CharField(max_length=255)
    file = serializers.FileField()


class SignerCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    email = serializers.EmailField()


class FieldCreateSerializer(serializers.Serializer):
    """Serializer for placing a field. Coordinates are page percentages."""
    signer_id = serializers.IntegerField(required=False, allow_null=True)
    field_type = serializers.ChoiceField(choices=Field.FIELD_TYPES)
    page_number = serializers.IntegerField(min_value=1)
    x = serializers.FloatField(min_value=0, max_value=100)
    y = serializers.FloatField(min_value=0, max_value=100)
    width = serializers.FloatField(required=False, allow_null=True, min_value=0)
    height = serializers.FloatField(required=False, allow_null=True, min_value=0)
    required = serializers.BooleanField(required=False, default=True)


class SigningLinkSerializer(serializers.Serializer):
    name = serializers.CharField()
    email = serializers.EmailField()
    url = serializers.CharField()


class FieldValueSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    value = serializers.JSONField(allow_null=True)


class PublicSignPayloadSerializer(serializers.Serializer):
    """Serializer for public signing payload."""
    fields = FieldValueSerializer(many=True, required=False, default=list)


class DeclinePayloadSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, allow_null=True, max_length=2000)


class AuditLogEntrySerializer(serializers.ModelSerializer):
    """Serializer for the audit trail, with the acting signer's identity."""
    signer_name = serializers.CharField(source='signer.name', read_only=True, default=None)
    signer_email = serializers.CharField(source='signer.email', read_only=True, default=None)

    class Meta:
        model = AuditLogEntry
        fields = [
            'id', 'action', 'details', 'signer_id', 'signer_name', 'signer_email',
            'ip_address', 'user_agent', 'created_at'
        ]
        read_only_fields = fields
