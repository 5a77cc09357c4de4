# tests/conftest.py
from io import BytesIO

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile
from PyPDF2 import PdfWriter
from rest_framework.test import APIClient

from documents.models import Field, Signer
from documents.services import DocumentService, FieldService, SignerService


def build_pdf_upload(pages=2, name="contract.pdf"):
    """Build an in-memory PDF upload with blank US Letter pages"""
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=612, height=792)
    buffer = BytesIO()
    writer.write(buffer)
    return SimpleUploadedFile(name, buffer.getvalue(), content_type="application/pdf")


@pytest.fixture(autouse=True)
def media_root(settings, tmp_path):
    """Keep uploaded PDFs out of the source tree"""
    settings.MEDIA_ROOT = str(tmp_path / "media")
    return settings.MEDIA_ROOT


@pytest.fixture
def owner(django_user_model):
    return django_user_model.objects.create_user(username="owner", password="owner-pass-123")


@pytest.fixture
def other_user(django_user_model):
    return django_user_model.objects.create_user(username="intruder", password="intruder-pass-123")


@pytest.fixture
def make_pdf_upload():
    return build_pdf_upload


@pytest.fixture
def pdf_upload():
    return build_pdf_upload()


@pytest.fixture
def draft_document(owner, pdf_upload):
    """A two-page draft with no signers yet"""
    return DocumentService.create_document(owner, "Lease agreement", pdf_upload)


@pytest.fixture
def alice(owner, draft_document):
    return SignerService.add_signer(draft_document.pk, owner, "Alice", "alice@example.com")


@pytest.fixture
def bob(owner, draft_document, alice):
    return SignerService.add_signer(draft_document.pk, owner, "Bob", "bob@example.com")


@pytest.fixture
def prepared_document(owner, draft_document, alice, bob):
    """Draft with two signers, each owning one required signature field"""
    FieldService.place_field(draft_document.pk, owner, alice.pk, Field.TYPE_SIGNATURE, 1, 10, 80)
    FieldService.place_field(draft_document.pk, owner, bob.pk, Field.TYPE_SIGNATURE, 1, 60, 80)
    draft_document.refresh_from_db()
    return draft_document


@pytest.fixture
def sent_document(owner, prepared_document):
    DocumentService.send(prepared_document.pk, owner)
    prepared_document.refresh_from_db()
    return prepared_document


@pytest.fixture
def tokens(sent_document):
    """Signer name -> token for the sent document"""
    return {s.name: s.token for s in Signer.objects.filter(document=sent_document)}


@pytest.fixture
def fill_values():
    """Build a submission payload filling every field the named signer owns"""
    def _fill(signer_name):
        signer = Signer.objects.get(name=signer_name)
        return [{"id": f.id, "value": f"{signer_name} signature"} for f in signer.fields.all()]
    return _fill


@pytest.fixture
def api_client():
    """Unauthenticated client (public signing endpoints)"""
    return APIClient()


@pytest.fixture
def owner_client(owner):
    client = APIClient()
    client.force_authenticate(user=owner)
    return client
