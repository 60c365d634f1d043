"""
Tests for OnboardingSelector -- document status list and completion figures.
"""

import pytest

from staff_portal.domain.submission import DocumentKind, SubmissionStatus
from staff_portal.selectors.onboarding_selector import OnboardingSelector, percent


class TestPercent:
    @pytest.mark.parametrize(
        "part, whole, expected",
        [(0, 3, 0), (1, 3, 33), (2, 3, 67), (1, 8, 13), (1, 2, 50), (3, 3, 100), (0, 0, 0)],
    )
    def test_whole_percentages_round_half_up(self, part, whole, expected):
        assert percent(part, whole) == expected


class TestProgress:
    def test_no_required_documents(self, session, make_document, staff_user):
        make_document(is_required=False)
        progress = OnboardingSelector(session).progress(staff_user.id)
        assert progress.total_required == 0
        assert progress.percentage == 0
        assert progress.is_complete is False

    def test_counts_only_approved_required(
        self, session, submission_service, make_document, staff_user,
    ):
        docs = [make_document(title=f"Doc {i}") for i in range(3)]
        optional = make_document(title="Optional", is_required=False)
        submission_service.acknowledge_document(docs[0].id, staff_user.id)
        submission_service.acknowledge_document(optional.id, staff_user.id)
        submission_service.submit(docs[1].id, staff_user.id, "u/1.pdf")

        progress = OnboardingSelector(session).progress(staff_user.id)
        assert (progress.total_required, progress.completed) == (3, 1)
        assert progress.percentage == 33
        assert progress.is_complete is False

    def test_complete_when_all_required_approved(
        self, session, submission_service, make_document, staff_user,
    ):
        docs = [make_document(title=f"Doc {i}") for i in range(2)]
        for doc in docs:
            submission_service.acknowledge_document(doc.id, staff_user.id)

        progress = OnboardingSelector(session).progress(staff_user.id)
        assert progress.percentage == 100
        assert progress.is_complete is True

    def test_other_kinds_ignored(self, session, submission_service, make_document, staff_user):
        make_document(title="NDA")
        handbook = make_document(title="Handbook", kind=DocumentKind.HANDBOOK)
        submission_service.acknowledge_document(handbook.id, staff_user.id)

        progress = OnboardingSelector(session).progress(staff_user.id)
        assert (progress.total_required, progress.completed) == (1, 0)


class TestDocumentsWithStatus:
    def test_missing_rows_read_as_not_started(
        self, session, submission_service, make_document, staff_user, make_user,
    ):
        nda = make_document(title="NDA")
        biodata = make_document(title="Biodata")
        submission_service.save_draft(biodata.id, staff_user.id, {"name": "Sam"})
        submission_service.submit(nda.id, make_user().id, "u/other.pdf")

        listed = OnboardingSelector(session).documents_with_status(staff_user.id)
        assert [(d.document.title, d.status) for d in listed] == [
            ("NDA", SubmissionStatus.NOT_STARTED),
            ("Biodata", SubmissionStatus.DRAFT),
        ]
        assert listed[0].submission is None
        assert listed[1].submission.user_id == staff_user.id

    def test_kind_selection(self, session, make_document, staff_user):
        make_document(title="NDA")
        make_document(title="Leave policy", kind=DocumentKind.POLICY)
        listed = OnboardingSelector(session).documents_with_status(
            staff_user.id, DocumentKind.POLICY,
        )
        assert [d.document.title for d in listed] == ["Leave policy"]
