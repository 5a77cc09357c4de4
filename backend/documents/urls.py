"""
backend/documents/urls.py

"""

# ----------------------------
# Django imports
# ----------------------------
from django.urls import path

# ----------------------------
# Local view imports
# ----------------------------
from .views import DocumentViewSet, PublicSignViewSet

# App namespace for reverse() lookups
app_name = 'documents'

# ----------------------------
# Owner routes (authenticated)
# ----------------------------
urlpatterns = [
    path('documents/', DocumentViewSet.as_view({
        'get': 'list',
        'post': 'create'
    }), name='document-list'),
    # List the caller's documents or create one from an uploaded PDF.

    path('documents/summary/', DocumentViewSet.as_view({
        'get': 'summary'
    }), name='document-summary'),
    # Per-status document counts for the dashboard.

    path('documents/<int:pk>/', DocumentViewSet.as_view({
        'get': 'retrieve',
        'delete': 'destroy'
    }), name='document-detail'),
    # Document detail with signers and fields; delete is draft-only.

    path('documents/<int:pk>/send/', DocumentViewSet.as_view({
        'post': 'send'
    }), name='document-send'),
    # Mint tokens, move document and signers to 'sent', return signing links.

    path('documents/<int:pk>/audit/', DocumentViewSet.as_view({
        'get': 'audit'
    }), name='document-audit'),
    # Audit trail, newest first.

    path('documents/<int:pk>/signers/', DocumentViewSet.as_view({
        'get': 'signers',
        'post': 'signers'
    }), name='document-signers'),
    path('documents/<int:pk>/signers/<int:signer_id>/', DocumentViewSet.as_view({
        'delete': 'remove_signer'
    }), name='document-signer-detail'),
    # Signer registry (draft only for writes). Removing a signer removes its fields.

    path('documents/<int:pk>/fields/', DocumentViewSet.as_view({
        'post': 'place_field'
    }), name='document-fields'),
    path('documents/<int:pk>/fields/<int:field_id>/', DocumentViewSet.as_view({
        'delete': 'remove_field'
    }), name='document-field-detail'),
    # Field placement (draft only).
]

# ----------------------------
# Public signing routes (no auth, guarded by token)
# ----------------------------
public_urls = [
    path('sign/<str:token>/', PublicSignViewSet.as_view({
        'get': 'retrieve',
        'post': 'submit'
    }), name='public-sign'),
    # GET returns {signer, document, fields} and records the first view.
    # POST submits field values and may complete the document.

    path('sign/<str:token>/decline/', PublicSignViewSet.as_view({
        'post': 'decline'
    }), name='public-decline'),
    # Declining terminates the document for every signer.
]

urlpatterns += public_urls
