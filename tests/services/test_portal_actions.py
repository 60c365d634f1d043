"""
Tests for PortalActions -- the transaction and access boundary.

Covers:
- Identity: no session -> unauthorized; missing capability -> forbidden
- Error mapping: kernel errors become ActionResult statuses, nothing raised
- Unknown kind, assignment type and status tokens reported as validation failures
- Success messages for the user-facing actions
- Commit on success, rollback on rejection, re-raise of unexpected errors
- Log context: every line inside an action carries the correlation id
"""

import pytest

from staff_portal.domain.identity import Capability
from staff_portal.domain.results import ActionStatus
from staff_portal.domain.submission import DocumentKind, SubmissionStatus
from staff_portal.models.document import SubmissionProgress


class TestIdentity:
    def test_anonymous_caller_unauthorized(self, portal_for, document):
        result = portal_for(None).submit_document(document.id, "u/1.pdf")
        assert result.status == ActionStatus.UNAUTHORIZED
        assert result.error_code == "UNAUTHORIZED"
        assert result.message == "Unauthorized"

    def test_staff_cannot_review(self, portal_for, staff_user, document):
        staff = portal_for(staff_user)
        submitted = staff.submit_document(document.id, "u/1.pdf")
        result = staff.review_submission(submitted.data.id, True)
        assert result.status == ActionStatus.FORBIDDEN

    def test_staff_cannot_manage_documents(self, portal_for, staff_user):
        result = portal_for(staff_user).create_document("onboarding", "NDA", "Sign it")
        assert result.status == ActionStatus.FORBIDDEN

    def test_manager_can_view_reports(self, portal_for, make_user):
        manager = make_user(role="manager")
        assert portal_for(manager).training_analytics().is_success


class TestStaffActions:
    def test_submit_then_review_flow(self, portal_for, staff_user, admin_user, document):
        staff = portal_for(staff_user)
        admin = portal_for(admin_user)

        submitted = staff.submit_document(
            document.id, "https://x/file.pdf", "please review", "form.pdf",
        )
        assert submitted.is_success
        assert submitted.message == "Document submitted for review"

        reviewed = admin.review_submission(submitted.data.id, False, "Wrong version")
        assert reviewed.message == "Document rejected"
        assert reviewed.data.status == SubmissionStatus.REJECTED

        resubmitted = staff.submit_document(document.id, "https://x/file-v2.pdf")
        assert resubmitted.data.status == SubmissionStatus.SUBMITTED

        approved = admin.review_submission(submitted.data.id, True)
        assert approved.message == "Document approved"

    def test_already_approved_maps_to_status(self, portal_for, staff_user, admin_user, document):
        staff = portal_for(staff_user)
        submitted = staff.submit_document(document.id, "u/1.pdf")
        portal_for(admin_user).review_submission(submitted.data.id, True)

        result = staff.save_draft(document.id, {"late": "edit"})
        assert result.status == ActionStatus.ALREADY_APPROVED
        assert result.message == "This document has already been approved"

    def test_validation_failure(self, portal_for, staff_user, document):
        result = portal_for(staff_user).submit_document(document.id, "")
        assert result.status == ActionStatus.VALIDATION_FAILED
        assert result.message == "Please upload the completed document"

    def test_draft_message(self, portal_for, staff_user, document):
        assert portal_for(staff_user).save_draft(document.id, {"a": "b"}).message == "Draft saved"

    def test_my_onboarding(self, portal_for, staff_user, make_document):
        make_document(title="NDA")
        doc = make_document(title="Handbook ack")
        portal = portal_for(staff_user)
        portal.acknowledge_document(doc.id)

        data = portal.my_onboarding().data
        assert [d.status for d in data["documents"]] == [
            SubmissionStatus.NOT_STARTED, SubmissionStatus.APPROVED,
        ]
        assert data["progress"].percentage == 50

    def test_video_gate_maps_to_status(self, portal_for, staff_user, make_module):
        module = make_module(video_ref="videos/v.mp4")
        portal = portal_for(staff_user)
        portal.record_video_progress(module.id, 50, 100)
        result = portal.complete_training(module.id, score=80)
        assert result.status == ActionStatus.VIDEO_NOT_WATCHED

    def test_hr_record_of_another_user(self, portal_for, make_hr_record, make_user, staff_user):
        record = make_hr_record(make_user())
        result = portal_for(staff_user).acknowledge_hr_record(record.id, "u/1.pdf", "sig/1.png")
        assert result.status == ActionStatus.NOT_FOUND_OR_FORBIDDEN


class TestAdminActions:
    def test_assign_messages(self, portal_for, admin_user, staff_user, document):
        admin = portal_for(admin_user)
        assert admin.assign_document(document.id, staff_user.id).message == "Document assigned"
        assert (
            admin.assign_document(document.id, staff_user.id).message
            == "Document already assigned to this user"
        )

    def test_bulk_assign_message(self, portal_for, admin_user, make_user, document):
        make_user()
        make_user()
        result = portal_for(admin_user).assign_document_to_all_staff(document.id)
        assert result.message == "Assigned to 2 staff member(s)"
        assert result.data == 2

    def test_delete_in_use_document(self, portal_for, admin_user, staff_user, document):
        admin = portal_for(admin_user)
        admin.assign_document(document.id, staff_user.id)
        result = admin.delete_document(document.id)
        assert result.status == ActionStatus.DOCUMENT_IN_USE

    def test_training_assignment_message(self, portal_for, admin_user, staff_user):
        admin = portal_for(admin_user)
        module = admin.create_training_module("Fire Safety", expiry_months=12).data
        result = admin.assign_training(module.id, "individual", [staff_user.id])
        assert result.message == "Training assigned to 1 user(s)"

    def test_feed_includes_hr_acknowledgments(
        self, portal_for, admin_user, staff_user, document, make_hr_record,
        deterministic_clock,
    ):
        staff = portal_for(staff_user)
        staff.submit_document(document.id, "u/1.pdf")
        deterministic_clock.advance(60)
        record = make_hr_record(staff_user)
        staff.acknowledge_hr_record(record.id, "u/ack.pdf", "sig/1.png")

        feed = portal_for(admin_user).submission_feed().data
        assert [e.source.value for e in feed] == ["hr_record", "onboarding"]
        assert feed[0].id == f"hr-{record.id}"

    def test_feed_accepts_status_token(self, portal_for, admin_user, staff_user, document):
        portal_for(staff_user).submit_document(document.id, "u/1.pdf")
        feed = portal_for(admin_user).submission_feed("submitted").data
        assert [e.status for e in feed] == ["submitted"]


class TestUnknownTokens:
    def test_unknown_assignment_type(self, portal_for, admin_user, staff_user, make_module):
        module = make_module()
        result = portal_for(admin_user).assign_training(module.id, "team", [staff_user.id])
        assert result.status == ActionStatus.VALIDATION_FAILED
        assert result.error_code == "VALIDATION_ERROR"
        assert "team" in result.message

    def test_unknown_document_kind_filter(self, portal_for, admin_user):
        result = portal_for(admin_user).list_documents("memo")
        assert result.status == ActionStatus.VALIDATION_FAILED
        assert "memo" in result.message

    def test_unknown_feed_status(self, portal_for, admin_user):
        result = portal_for(admin_user).submission_feed("archived")
        assert result.status == ActionStatus.VALIDATION_FAILED
        assert result.error_code == "VALIDATION_ERROR"

    def test_known_kind_filter_still_works(self, portal_for, admin_user, make_document):
        make_document(title="Handbook", kind=DocumentKind.HANDBOOK, is_required=False)
        make_document(title="NDA")
        result = portal_for(admin_user).list_documents("handbook")
        assert [d.title for d in result.data] == ["Handbook"]


class TestTransactionBoundary:
    def test_success_commits(self, portal_for, staff_user, document, session):
        portal_for(staff_user).submit_document(document.id, "u/1.pdf")
        session.rollback()
        assert session.query(SubmissionProgress).count() == 1

    def test_rejection_rolls_back_partial_work(
        self, portal_for, admin_user, staff_user, document, session,
    ):
        admin = portal_for(admin_user)

        def _assign_then_fail(user):
            admin.assignments.assign_to_user(document.id, staff_user.id)
            admin.documents.update(user.id, document.id, title="")

        result = admin._run("assign_and_rename", Capability.MANAGE_DOCUMENTS, _assign_then_fail, "x")
        assert result.status == ActionStatus.VALIDATION_FAILED
        assert session.query(SubmissionProgress).count() == 0

    def test_unexpected_error_reraised_and_logged(
        self, portal_for, admin_user, session, captured_logs,
    ):
        def _boom(user):
            raise RuntimeError("bug")

        with pytest.raises(RuntimeError, match="bug"):
            portal_for(admin_user)._run("explode", Capability.VIEW_REPORTS, _boom, "x")

        failed = [r for r in captured_logs() if r["message"] == "portal_action_failed"]
        assert len(failed) == 1
        assert failed[0]["level"] == "ERROR"
        assert failed[0]["action"] == "explode"

    def test_log_lines_share_correlation_id(
        self, portal_for, staff_user, document, captured_logs,
    ):
        portal_for(staff_user).submit_document(document.id, "u/1.pdf")

        records = [r for r in captured_logs() if r.get("action") == "submit_document"]
        messages = {r["message"] for r in records}
        assert {"portal_action_started", "document_submitted", "portal_action_completed"} <= messages
        assert len({r["correlation_id"] for r in records}) == 1
        assert all(r["actor_id"] == str(staff_user.id) for r in records)

    def test_rejection_logged_with_code(self, portal_for, staff_user, document, captured_logs):
        portal_for(staff_user).submit_document(document.id, " ")
        rejected = [r for r in captured_logs() if r["message"] == "portal_action_rejected"]
        assert rejected[0]["error_code"] == "VALIDATION_ERROR"
        assert rejected[0]["level"] == "WARNING"
