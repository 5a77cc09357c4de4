import logging

from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.parsers import MultiPartParser, FormParser, JSONParser
from rest_framework.permissions import AllowAny
from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response

from .config import get_signing_config
from .permissions import IsDocumentOwner
from .request_context import RequestContext, resolve_origin
from .serializers import (
    DocumentListSerializer, DocumentDetailSerializer, DocumentCreateSerializer,
    PublicDocumentSerializer, SignerSerializer, PublicSignerSerializer,
    SignerCreateSerializer, FieldSerializer, FieldCreateSerializer,
    SigningLinkSerializer, PublicSignPayloadSerializer, DeclinePayloadSerializer,
    AuditLogEntrySerializer,
)
from .services import (
    AuditLogService, DocumentService, FieldService, SignerService, SigningProcessService,
)

logger = logging.getLogger(__name__)


class StandardResultsSetPagination(PageNumberPagination):
    page_size = 50
    page_size_query_param = 'page_size'
    max_page_size = 1000


class DocumentViewSet(viewsets.ViewSet):
    """Owner endpoints: documents, signers, fields, send and audit trail."""
    permission_classes = [IsDocumentOwner]
    parser_classes = (JSONParser, MultiPartParser, FormParser)

    def get_document(self, request, pk):
        document = DocumentService.get_owned_document(pk, request.user)
        self.check_object_permissions(request, document)
        return document

    def list(self, request):
        """List the caller's documents, newest first."""
        documents = DocumentService.list_documents(request.user)
        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(documents, request, view=self)
        serializer = DocumentListSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    def create(self, request):
        """Create a draft document from an uploaded PDF."""
        serializer = DocumentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        document = DocumentService.create_document(
            request.user,
            serializer.validated_data['title'],
            serializer.validated_data['file'],
        )
        output = DocumentDetailSerializer(document, context={'request': request})
        return Response(output.data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        document = self.get_document(request, pk)
        serializer = DocumentDetailSerializer(document, context={'request': request})
        return Response(serializer.data)

    def destroy(self, request, pk=None):
        """Delete a draft document (signers and fields go with it)."""
        DocumentService.delete_document(pk, request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=['get'])
    def summary(self, request):
        """Document counts per status for the dashboard."""
        return Response(DocumentService.status_summary(request.user))

    @action(detail=True, methods=['post'])
    def send(self, request, pk=None):
        """Send a draft for signing; returns one signing link per signer."""
        config = get_signing_config()
        links = DocumentService.send(
            pk,
            request.user,
            origin=resolve_origin(request, config.default_origin),
            context=RequestContext.from_request(request),
            config=config,
        )
        return Response({'signingLinks': SigningLinkSerializer(links, many=True).data})

    @action(detail=True, methods=['get'])
    def audit(self, request, pk=None):
        """Audit trail, newest first."""
        document = self.get_document(request, pk)
        entries = AuditLogService.trail(document)
        return Response(AuditLogEntrySerializer(entries, many=True).data)

    @action(detail=True, methods=['get', 'post'], url_path='signers')
    def signers(self, request, pk=None):
        """List signers (GET) or add one (POST, draft only)."""
        if request.method == 'GET':
            document = self.get_document(request, pk)
            return Response(SignerSerializer(SignerService.list_signers(document), many=True).data)

        serializer = SignerCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        signer = SignerService.add_signer(
            pk,
            request.user,
            serializer.validated_data['name'],
            serializer.validated_data['email'],
        )
        return Response(SignerSerializer(signer).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['delete'], url_path=r'signers/(?P<signer_id>[0-9]+)')
    def remove_signer(self, request, pk=None, signer_id=None):
        """Remove a signer and its fields (draft only)."""
        SignerService.remove_signer(signer_id, request.user, document_id=pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['post'], url_path='fields')
    def place_field(self, request, pk=None):
        """Place a field for the selected signer (draft only)."""
        serializer = FieldCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        field = FieldService.place_field(
            pk,
            request.user,
            signer_id=data.get('signer_id'),
            field_type=data['field_type'],
            page_number=data['page_number'],
            x=data['x'],
            y=data['y'],
            width=data.get('width'),
            height=data.get('height'),
            required=data.get('required', True),
        )
        return Response(FieldSerializer(field).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['delete'], url_path=r'fields/(?P<field_id>[0-9]+)')
    def remove_field(self, request, pk=None, field_id=None):
        """Delete a field (draft only)."""
        FieldService.remove_field(field_id, request.user, document_id=pk)
        return Response(status=status.HTTP_204_NO_CONTENT)


class PublicSignViewSet(viewsets.ViewSet):
    """ViewSet for public signing endpoints (no auth, guarded by token)."""
    permission_classes = [AllowAny]
    authentication_classes = []

    def retrieve(self, request, token=None):
        """Signing page payload; the first view marks the signer as viewed."""
        result = SigningProcessService.resolve_by_token(
            token, context=RequestContext.from_request(request)
        )
        return Response({
            'signer': PublicSignerSerializer(result['signer']).data,
            'document': PublicDocumentSerializer(result['document'], context={'request': request}).data,
            'fields': FieldSerializer(result['fields'], many=True).data,
        })

    def submit(self, request, token=None):
        """Submit the signer's field values."""
        serializer = PublicSignPayloadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = SigningProcessService.submit(
            token,
            serializer.validated_data['fields'],
            context=RequestContext.from_request(request),
        )
        return Response({'success': True, 'completed': result['completed']})

    def decline(self, request, token=None):
        """Decline to sign; terminates the document for everyone."""
        serializer = DeclinePayloadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = SigningProcessService.decline(
            token,
            reason=serializer.validated_data.get('reason'),
            context=RequestContext.from_request(request),
        )
        return Response(result)
