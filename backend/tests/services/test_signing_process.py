# tests/services/test_signing_process.py
from io import StringIO

import pytest
from django.core.management import call_command
from django.db import DatabaseError

from documents.config import SigningConfig
from documents.exceptions import AlreadySigned, InvalidState, NotFound, ValidationError
from documents.models import AuditLogEntry, Document, Field, Signer
from documents.request_context import RequestContext
from documents.services import AuditLogService, DocumentService, FieldService, SigningProcessService
from documents.services.signing_process import normalize_field_values, validate_required_fields

pytestmark = pytest.mark.django_db


def audit_actions(document):
    return list(
        AuditLogEntry.objects.filter(document=document).order_by("id").values_list("action", flat=True)
    )


class TestResolveByToken:
    def test_unknown_token_is_not_found(self, sent_document):
        with pytest.raises(NotFound):
            SigningProcessService.resolve_by_token("no-such-token")

    def test_blank_token_is_not_found(self, sent_document):
        with pytest.raises(NotFound):
            SigningProcessService.resolve_by_token("")

    def test_first_view_marks_signer_viewed_once(self, sent_document, tokens):
        context = RequestContext(ip_address="203.0.113.7", user_agent="Firefox")

        first = SigningProcessService.resolve_by_token(tokens["Alice"], context=context)
        second = SigningProcessService.resolve_by_token(tokens["Alice"], context=context)

        assert first["signer"].status == Signer.STATUS_VIEWED
        assert second["signer"].status == Signer.STATUS_VIEWED
        assert audit_actions(sent_document).count(AuditLogService.ACTION_VIEWED) == 1

        entry = AuditLogEntry.objects.get(action=AuditLogService.ACTION_VIEWED)
        assert entry.signer.name == "Alice"
        assert entry.ip_address == "203.0.113.7"

    def test_payload_contains_every_field_of_the_document(self, sent_document, tokens):
        result = SigningProcessService.resolve_by_token(tokens["Bob"])

        assert result["document"].pk == sent_document.pk
        assert len(result["fields"]) == 2
        assert {f.signer.name for f in result["fields"]} == {"Alice", "Bob"}

    def test_viewing_a_signed_signer_is_a_pure_read(self, sent_document, tokens, fill_values):
        SigningProcessService.submit(tokens["Alice"], fill_values("Alice"))
        before = audit_actions(sent_document)

        result = SigningProcessService.resolve_by_token(tokens["Alice"])

        assert result["signer"].status == Signer.STATUS_SIGNED
        assert audit_actions(sent_document) == before

    def test_viewing_a_declined_document_leaves_signer_untouched(self, sent_document, tokens):
        SigningProcessService.decline(tokens["Bob"])
        before = audit_actions(sent_document)

        result = SigningProcessService.resolve_by_token(tokens["Alice"])

        assert result["document"].status == Document.STATUS_DECLINED
        assert result["signer"].status == Signer.STATUS_SENT
        assert Signer.objects.get(name="Alice").status == Signer.STATUS_SENT
        assert audit_actions(sent_document) == before

    def test_terminal_document_is_readable_with_enforced_order(self, sent_document, tokens):
        SigningProcessService.decline(tokens["Alice"])

        result = SigningProcessService.resolve_by_token(
            tokens["Bob"], config=SigningConfig(enforce_sign_order=True)
        )

        assert result["signer"].status == Signer.STATUS_SENT
        assert AuditLogService.ACTION_VIEWED not in audit_actions(sent_document)


class TestSubmit:
    def test_submit_marks_signer_signed_and_records_client_meta(self, sent_document, tokens, fill_values):
        context = RequestContext(ip_address="198.51.100.2", user_agent="Safari")

        result = SigningProcessService.submit(tokens["Alice"], fill_values("Alice"), context=context)

        alice = Signer.objects.get(name="Alice")
        assert result == {"completed": False}
        assert alice.status == Signer.STATUS_SIGNED
        assert alice.signed_at is not None
        assert alice.ip_address == "198.51.100.2"
        assert alice.user_agent == "Safari"
        assert alice.fields.get().value == "Alice signature"

        sent_document.refresh_from_db()
        assert sent_document.status == Document.STATUS_SENT

    def test_submit_without_view_goes_straight_to_signed(self, sent_document, tokens, fill_values):
        SigningProcessService.submit(tokens["Bob"], fill_values("Bob"))

        assert Signer.objects.get(name="Bob").status == Signer.STATUS_SIGNED
        assert AuditLogService.ACTION_VIEWED not in audit_actions(sent_document)

    def test_missing_client_meta_is_recorded_as_unknown(self, sent_document, tokens, fill_values):
        SigningProcessService.submit(tokens["Alice"], fill_values("Alice"))

        alice = Signer.objects.get(name="Alice")
        assert alice.ip_address == "unknown"
        assert alice.user_agent == "unknown"

    def test_missing_required_field_rejects_without_writes(self, sent_document, tokens):
        alice_field = Field.objects.get(signer__name="Alice")

        with pytest.raises(ValidationError) as exc:
            SigningProcessService.submit(tokens["Alice"], [{"id": alice_field.id, "value": "   "}])

        assert exc.value.details == {"missing_fields": [alice_field.id]}
        alice_field.refresh_from_db()
        assert alice_field.value is None
        assert Signer.objects.get(name="Alice").status == Signer.STATUS_SENT
        assert AuditLogService.ACTION_SIGNED not in audit_actions(sent_document)

    def test_optional_fields_may_stay_empty(self, owner, draft_document, alice):
        FieldService.place_field(draft_document.pk, owner, alice.pk, Field.TYPE_TEXT, 1, 5, 5, required=False)
        DocumentService.send(draft_document.pk, owner)
        alice.refresh_from_db()

        result = SigningProcessService.submit(alice.token, [])

        assert result == {"completed": True}

    def test_values_for_other_signers_fields_are_ignored(self, sent_document, tokens, fill_values):
        bob_field = Field.objects.get(signer__name="Bob")
        payload = fill_values("Alice") + [{"id": bob_field.id, "value": "forged"}]

        SigningProcessService.submit(tokens["Alice"], payload)

        bob_field.refresh_from_db()
        assert bob_field.value is None
        assert Signer.objects.get(name="Bob").status == Signer.STATUS_SENT

    def test_submit_twice_is_already_signed(self, sent_document, tokens, fill_values):
        SigningProcessService.submit(tokens["Alice"], fill_values("Alice"))

        with pytest.raises(AlreadySigned) as exc:
            SigningProcessService.submit(tokens["Alice"], fill_values("Alice"))

        assert exc.value.message == "Already signed"
        assert audit_actions(sent_document).count(AuditLogService.ACTION_SIGNED) == 1

    def test_checkbox_values_are_stored_as_text(self, owner, draft_document, alice):
        checkbox = FieldService.place_field(
            draft_document.pk, owner, alice.pk, Field.TYPE_CHECKBOX, 2, 50, 50
        )
        DocumentService.send(draft_document.pk, owner)
        alice.refresh_from_db()

        SigningProcessService.submit(alice.token, [{"id": checkbox.id, "value": True}])

        checkbox.refresh_from_db()
        assert checkbox.value == "true"

    def test_unknown_token_is_not_found(self, sent_document):
        with pytest.raises(NotFound):
            SigningProcessService.submit("missing", [])


class TestCompletion:
    def test_last_signer_completes_the_document(self, sent_document, tokens, fill_values):
        # Scenario: A views, A signs, B signs -> completed
        SigningProcessService.resolve_by_token(tokens["Alice"])
        assert Signer.objects.get(name="Alice").status == Signer.STATUS_VIEWED

        first = SigningProcessService.submit(tokens["Alice"], fill_values("Alice"))
        sent_document.refresh_from_db()
        assert first == {"completed": False}
        assert sent_document.status == Document.STATUS_SENT

        second = SigningProcessService.submit(tokens["Bob"], fill_values("Bob"))
        sent_document.refresh_from_db()
        assert second == {"completed": True}
        assert sent_document.status == Document.STATUS_COMPLETED

        assert audit_actions(sent_document) == [
            AuditLogService.ACTION_SENT,
            AuditLogService.ACTION_VIEWED,
            AuditLogService.ACTION_SIGNED,
            AuditLogService.ACTION_SIGNED,
            AuditLogService.ACTION_COMPLETED,
        ]

    def test_submit_after_completion_is_already_signed(self, sent_document, tokens, fill_values):
        SigningProcessService.submit(tokens["Alice"], fill_values("Alice"))
        SigningProcessService.submit(tokens["Bob"], fill_values("Bob"))

        with pytest.raises(AlreadySigned):
            SigningProcessService.submit(tokens["Bob"], fill_values("Bob"))

    def test_interleaved_submissions_complete_exactly_once(
        self, monkeypatch, sent_document, tokens, fill_values
    ):
        # Both signer transactions commit before either completion check runs
        with monkeypatch.context() as m:
            m.setattr(SigningProcessService, "_try_complete", staticmethod(lambda document_id: False))
            SigningProcessService.submit(tokens["Alice"], fill_values("Alice"))
            SigningProcessService.submit(tokens["Bob"], fill_values("Bob"))

        sent_document.refresh_from_db()
        assert sent_document.status == Document.STATUS_SENT

        outcomes = [
            DocumentService.complete_if_all_signed(sent_document.pk),
            DocumentService.complete_if_all_signed(sent_document.pk),
        ]

        sent_document.refresh_from_db()
        assert outcomes == [True, False]
        assert sent_document.status == Document.STATUS_COMPLETED
        assert audit_actions(sent_document).count(AuditLogService.ACTION_COMPLETED) == 1

    def test_completion_failure_does_not_fail_submission(
        self, monkeypatch, sent_document, tokens, fill_values
    ):
        SigningProcessService.submit(tokens["Alice"], fill_values("Alice"))

        def broken(document_id, grant=None):
            raise DatabaseError("database is locked")

        with monkeypatch.context() as m:
            m.setattr(DocumentService, "complete_if_all_signed", staticmethod(broken))
            result = SigningProcessService.submit(tokens["Bob"], fill_values("Bob"))

        sent_document.refresh_from_db()
        assert result == {"completed": False}
        assert Signer.objects.get(name="Bob").status == Signer.STATUS_SIGNED
        assert sent_document.status == Document.STATUS_SENT

        assert DocumentService.reconcile_completions() == [sent_document.pk]
        assert DocumentService.reconcile_completions() == []

        sent_document.refresh_from_db()
        assert sent_document.status == Document.STATUS_COMPLETED
        assert audit_actions(sent_document).count(AuditLogService.ACTION_COMPLETED) == 1

    def test_reconcile_command_reports_completed_documents(
        self, monkeypatch, sent_document, tokens, fill_values
    ):
        with monkeypatch.context() as m:
            m.setattr(SigningProcessService, "_try_complete", staticmethod(lambda document_id: False))
            SigningProcessService.submit(tokens["Alice"], fill_values("Alice"))
            SigningProcessService.submit(tokens["Bob"], fill_values("Bob"))

        out = StringIO()
        call_command("reconcile_completions", stdout=out)

        sent_document.refresh_from_db()
        assert sent_document.status == Document.STATUS_COMPLETED
        assert f"Completed 1 document(s): {sent_document.pk}" in out.getvalue()

    def test_document_with_unsigned_signer_is_not_completed(self, sent_document, tokens, fill_values):
        SigningProcessService.submit(tokens["Alice"], fill_values("Alice"))

        assert DocumentService.complete_if_all_signed(sent_document.pk) is False
        assert DocumentService.reconcile_completions() == []


class TestDecline:
    def test_decline_terminates_document(self, sent_document, tokens):
        context = RequestContext(ip_address="192.0.2.44", user_agent="Edge")

        result = SigningProcessService.decline(tokens["Bob"], reason="not applicable", context=context)

        sent_document.refresh_from_db()
        assert result == {"ok": True}
        assert sent_document.status == Document.STATUS_DECLINED
        assert Signer.objects.get(name="Bob").status == Signer.STATUS_DECLINED
        assert Signer.objects.get(name="Alice").status == Signer.STATUS_SENT

        entry = AuditLogEntry.objects.get(action=AuditLogService.ACTION_DECLINED)
        assert entry.details.endswith("not applicable")
        assert entry.ip_address == "192.0.2.44"

    def test_submit_after_decline_never_revives_document(self, sent_document, tokens, fill_values):
        # Scenario: B declines, then A's own submission still succeeds
        SigningProcessService.decline(tokens["Bob"], reason="not applicable")

        result = SigningProcessService.submit(tokens["Alice"], fill_values("Alice"))

        sent_document.refresh_from_db()
        assert result == {"completed": False}
        assert Signer.objects.get(name="Alice").status == Signer.STATUS_SIGNED
        assert sent_document.status == Document.STATUS_DECLINED
        assert AuditLogService.ACTION_COMPLETED not in audit_actions(sent_document)

    def test_decline_wins_over_earlier_signatures(self, sent_document, tokens, fill_values):
        SigningProcessService.submit(tokens["Alice"], fill_values("Alice"))

        SigningProcessService.decline(tokens["Bob"])

        sent_document.refresh_from_db()
        assert sent_document.status == Document.STATUS_DECLINED
        assert Signer.objects.get(name="Alice").status == Signer.STATUS_SIGNED
        assert Signer.objects.get(name="Bob").status == Signer.STATUS_DECLINED
        assert DocumentService.complete_if_all_signed(sent_document.pk) is False
        assert AuditLogService.ACTION_COMPLETED not in audit_actions(sent_document)

    def test_decline_after_signing_is_rejected(self, sent_document, tokens, fill_values):
        SigningProcessService.submit(tokens["Alice"], fill_values("Alice"))

        with pytest.raises(AlreadySigned):
            SigningProcessService.decline(tokens["Alice"])

    def test_second_decline_is_rejected(self, sent_document, tokens):
        SigningProcessService.decline(tokens["Bob"])

        with pytest.raises(InvalidState):
            SigningProcessService.decline(tokens["Bob"])
        with pytest.raises(InvalidState):
            SigningProcessService.decline(tokens["Alice"])

        assert audit_actions(sent_document).count(AuditLogService.ACTION_DECLINED) == 1

    def test_declined_signer_cannot_submit(self, sent_document, tokens, fill_values):
        SigningProcessService.decline(tokens["Bob"])

        with pytest.raises(InvalidState):
            SigningProcessService.submit(tokens["Bob"], fill_values("Bob"))


class TestSignOrder:
    def test_order_is_advisory_by_default(self, sent_document, tokens, fill_values):
        result = SigningProcessService.submit(tokens["Bob"], fill_values("Bob"))

        assert result == {"completed": False}

    def test_enforced_order_blocks_later_signers(self, sent_document, tokens, fill_values):
        config = SigningConfig(enforce_sign_order=True)

        with pytest.raises(InvalidState):
            SigningProcessService.resolve_by_token(tokens["Bob"], config=config)
        with pytest.raises(InvalidState):
            SigningProcessService.submit(tokens["Bob"], fill_values("Bob"), config=config)

        SigningProcessService.submit(tokens["Alice"], fill_values("Alice"), config=config)
        result = SigningProcessService.submit(tokens["Bob"], fill_values("Bob"), config=config)

        assert result == {"completed": True}


class TestFieldValueHelpers:
    def test_normalize_accepts_list_and_mapping(self):
        assert normalize_field_values([{"id": "3", "value": "x"}, {"field_id": 4, "value": None}]) == {
            3: "x",
            4: None,
        }
        assert normalize_field_values({5: False}) == {5: "false"}

    def test_normalize_drops_non_integer_ids(self):
        assert normalize_field_values([{"id": "abc", "value": "x"}]) == {}

    def test_normalize_rejects_non_object_entries(self):
        with pytest.raises(ValidationError):
            normalize_field_values(["not-an-object"])

    def test_validate_required_fields_uses_existing_values(self):
        filled = Field(id=1, required=True, value="done")
        empty = Field(id=2, required=True, value=None)
        optional = Field(id=3, required=False, value=None)

        assert validate_required_fields([filled, empty, optional], {}) == [2]
        assert validate_required_fields([filled, empty, optional], {2: "ok"}) == []
        assert validate_required_fields([filled], {1: ""}) == [1]
