"""
Tests for TrainingService -- module administration, assignment and the
training completion workflow.

Covers:
- Module CRUD: validation, editable fields, cascade on delete
- assign(): individual and department, refresh on re-assign, notifications, audit
- start(): not_started/expired -> in_progress, completed untouched
- record_video_progress(): percentage, debounce window
- complete(): video gate at 50% / 91%, explicit completion, score bounds,
  calendar-month expiry
- expire_overdue(): completed past expiry -> expired, others untouched
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from staff_portal.domain.training import TrainingStatus
from staff_portal.exceptions import NotFoundError, ValidationError, VideoNotWatchedError
from staff_portal.models.training import TrainingAssignment, TrainingProgress, VideoWatchProgress

UTC = timezone.utc


@pytest.fixture
def video_module(make_module):
    return make_module(title="Manual Handling", video_ref="videos/manual-handling.mp4")


def _watch(training_service, user, module, pct):
    return training_service.record_video_progress(user.id, module.id, pct, 100)


# ---------------------------------------------------------------------------
# Module administration
# ---------------------------------------------------------------------------


class TestModuleAdministration:
    def test_create_module(self, training_service, admin_user):
        module = training_service.create_module(
            "GDPR Basics", description="Data protection", difficulty="beginner",
            expiry_months=12, created_by=admin_user.id,
        )
        assert module.title == "GDPR Basics"
        assert module.difficulty == "beginner"
        assert module.expiry_months == 12
        assert not module.has_video

    @pytest.mark.parametrize(
        "fields, field",
        [
            ({"title": "  "}, "title"),
            ({"title": "X", "difficulty": "expert"}, "difficulty"),
            ({"title": "X", "expiry_months": 0}, "expiry_months"),
        ],
    )
    def test_create_validation(self, training_service, fields, field):
        with pytest.raises(ValidationError) as exc_info:
            training_service.create_module(**fields)
        assert exc_info.value.field == field

    def test_update_module(self, training_service, make_module):
        module = make_module()
        updated = training_service.update_module(module.id, title="Fire Safety 2", is_mandatory=True)
        assert updated.title == "Fire Safety 2"
        assert updated.is_mandatory is True

    def test_update_rejects_unknown_fields(self, training_service, make_module):
        module = make_module()
        with pytest.raises(ValidationError, match="not editable"):
            training_service.update_module(module.id, created_by=uuid4())

    def test_delete_cascades(self, training_service, gateway, video_module, staff_user):
        training_service.assign(video_module.id, "individual", [staff_user.id])
        training_service.start(staff_user.id, video_module.id)
        _watch(training_service, staff_user, video_module, 20)

        training_service.delete_module(video_module.id)

        for model in (TrainingAssignment, TrainingProgress, VideoWatchProgress):
            assert gateway.count(model, {"module_id": video_module.id}) == 0
        with pytest.raises(NotFoundError):
            training_service.get_module(video_module.id)

    def test_list_modules_sorted_by_title(self, training_service, make_module):
        make_module(title="Zebra crossings")
        make_module(title="Asbestos awareness")
        assert [m.title for m in training_service.list_modules()] == [
            "Asbestos awareness", "Zebra crossings",
        ]


# ---------------------------------------------------------------------------
# Assignment
# ---------------------------------------------------------------------------


class TestAssign:
    def test_individual_assignment(
        self, training_service, notifications, make_module, staff_user, admin_user,
    ):
        module = make_module()
        count = training_service.assign(
            module.id, "individual", [staff_user.id], assigned_by=admin_user.id,
        )
        assert count == 1
        inbox = notifications.inbox(staff_user.id)
        assert inbox[0].title == "New Training Assigned"
        assert inbox[0].message == 'You have been assigned the training module "Fire Safety".'

    def test_department_assignment_targets_active_members(
        self, training_service, make_module, make_user,
    ):
        module = make_module()
        make_user(department="Kitchen")
        make_user(department="Kitchen")
        make_user(department="Kitchen", is_active=False)
        make_user(department="Bar")

        assert training_service.assign(module.id, "department", department="Kitchen") == 2
        assignments = training_service.list_assignments(module.id)
        assert {a.department for a in assignments} == {"Kitchen"}

    def test_department_required(self, training_service, make_module):
        with pytest.raises(ValidationError, match="choose a department"):
            training_service.assign(make_module().id, "department")

    def test_empty_target_list(self, training_service, make_module):
        with pytest.raises(ValidationError, match="No users to assign"):
            training_service.assign(make_module().id, "individual", [])

    def test_reassign_refreshes_details(self, training_service, gateway, make_module, staff_user):
        module = make_module()
        training_service.assign(module.id, "individual", [staff_user.id], notes="first")
        deadline = datetime(2024, 3, 1, tzinfo=UTC)
        training_service.assign(
            module.id, "individual", [staff_user.id, staff_user.id],
            deadline=deadline, notes="second",
        )
        rows = training_service.list_assignments(module.id)
        assert len(rows) == 1
        assert rows[0].notes == "second"
        assert rows[0].deadline == deadline

    def test_assignment_audited(self, training_service, auditor, make_module, staff_user, admin_user):
        module = make_module()
        training_service.assign(module.id, "individual", [staff_user.id], assigned_by=admin_user.id)
        entries = auditor.for_subject("training_module", module.id)
        assert [e.action for e in entries] == ["assign_training"]
        assert entries[0].metadata["assigned_count"] == 1

    def test_remove_assignment(self, training_service, make_module, staff_user):
        module = make_module()
        training_service.assign(module.id, "individual", [staff_user.id])
        assignment = training_service.list_assignments(module.id)[0]
        training_service.remove_assignment(assignment.id)
        assert training_service.list_assignments(module.id) == []
        with pytest.raises(NotFoundError):
            training_service.remove_assignment(assignment.id)


# ---------------------------------------------------------------------------
# start()
# ---------------------------------------------------------------------------


class TestStart:
    def test_start_creates_in_progress_row(
        self, training_service, make_module, staff_user, deterministic_clock,
    ):
        progress = training_service.start(staff_user.id, make_module().id)
        assert progress.status == TrainingStatus.IN_PROGRESS
        assert progress.started_at == deterministic_clock.now()

    def test_start_on_completed_changes_nothing(
        self, training_service, make_module, staff_user, deterministic_clock, captured_logs,
    ):
        module = make_module()
        completed = training_service.complete(staff_user.id, module.id, score=80)
        deterministic_clock.advance(3600)

        progress = training_service.start(staff_user.id, module.id)

        assert progress.status == TrainingStatus.COMPLETED
        assert progress.started_at == completed.started_at
        assert progress.score == 80
        assert any(r["message"] == "training_start_skipped" for r in captured_logs())

    def test_start_after_expiry_reopens(
        self, training_service, make_module, staff_user, deterministic_clock,
    ):
        module = make_module(expiry_months=1)
        training_service.complete(staff_user.id, module.id)
        deterministic_clock.advance(timedelta(days=40).total_seconds())
        training_service.expire_overdue()

        assert training_service.start(staff_user.id, module.id).status == TrainingStatus.IN_PROGRESS

    def test_unknown_module(self, training_service, staff_user):
        with pytest.raises(NotFoundError):
            training_service.start(staff_user.id, uuid4())


# ---------------------------------------------------------------------------
# Video progress
# ---------------------------------------------------------------------------


class TestVideoProgress:
    def test_first_sample_persisted(self, training_service, video_module, staff_user):
        outcome = training_service.record_video_progress(staff_user.id, video_module.id, 30, 120)
        assert outcome.persisted is True
        assert outcome.watched_percentage == pytest.approx(25.0)
        assert outcome.progress.current_time_seconds == 30

    def test_samples_within_window_skipped(
        self, training_service, video_module, staff_user, deterministic_clock,
    ):
        _watch(training_service, staff_user, video_module, 10)
        deterministic_clock.advance(2)
        skipped = _watch(training_service, staff_user, video_module, 12)
        assert skipped.persisted is False
        assert skipped.watched_percentage == pytest.approx(12.0)
        assert training_service.get_video_progress(
            staff_user.id, video_module.id,
        ).watched_percentage == pytest.approx(10.0)

        deterministic_clock.advance(5)
        stored = _watch(training_service, staff_user, video_module, 20)
        assert stored.persisted is True
        assert stored.progress.watched_percentage == pytest.approx(20.0)

    def test_video_end_inside_window_unlocks_completion(
        self, training_service, video_module, staff_user, deterministic_clock,
    ):
        _watch(training_service, staff_user, video_module, 85)
        deterministic_clock.advance(3)
        ended = _watch(training_service, staff_user, video_module, 100)
        assert ended.persisted is True
        assert ended.progress.watched_percentage == pytest.approx(100.0)

        progress = training_service.complete(staff_user.id, video_module.id, score=80)
        assert progress.status == TrainingStatus.COMPLETED

    def test_one_row_per_user_module(
        self, training_service, gateway, video_module, staff_user, deterministic_clock,
    ):
        for pct in (10, 20, 30):
            _watch(training_service, staff_user, video_module, pct)
            deterministic_clock.advance(10)
        assert gateway.count(
            VideoWatchProgress, {"user_id": staff_user.id, "module_id": video_module.id},
        ) == 1


# ---------------------------------------------------------------------------
# complete()
# ---------------------------------------------------------------------------


class TestComplete:
    def test_blocked_at_fifty_percent(
        self, training_service, video_module, staff_user, captured_logs,
    ):
        _watch(training_service, staff_user, video_module, 50)
        with pytest.raises(VideoNotWatchedError) as exc_info:
            training_service.complete(staff_user.id, video_module.id, score=90)
        assert exc_info.value.watched_percentage == pytest.approx(50.0)
        assert exc_info.value.required == 90.0
        assert training_service.get_progress(staff_user.id, video_module.id) is None
        assert any(r["message"] == "training_video_gate_blocked" for r in captured_logs())

    def test_succeeds_at_ninety_one_percent(self, training_service, video_module, staff_user):
        _watch(training_service, staff_user, video_module, 91)
        progress = training_service.complete(staff_user.id, video_module.id, score=90)
        assert progress.status == TrainingStatus.COMPLETED
        assert progress.score == 90

    def test_blocked_without_any_watch_record(self, training_service, video_module, staff_user):
        with pytest.raises(VideoNotWatchedError):
            training_service.complete(staff_user.id, video_module.id)

    def test_explicit_video_completion(self, training_service, video_module, staff_user):
        progress = training_service.complete(staff_user.id, video_module.id, video_completed=True)
        assert progress.status == TrainingStatus.COMPLETED

    def test_module_without_video_completes_directly(
        self, training_service, make_module, staff_user,
    ):
        progress = training_service.complete(staff_user.id, make_module().id)
        assert progress.status == TrainingStatus.COMPLETED
        assert progress.expires_at is None

    @pytest.mark.parametrize("score", [-1, 101])
    def test_score_bounds(self, training_service, make_module, staff_user, score):
        with pytest.raises(ValidationError, match="between 0 and 100"):
            training_service.complete(staff_user.id, make_module().id, score=score)

    def test_expiry_uses_calendar_months(
        self, training_service, make_module, staff_user, deterministic_clock,
    ):
        deterministic_clock.set_time(datetime(2024, 1, 31, 9, 0, tzinfo=UTC))
        module = make_module(expiry_months=1)
        progress = training_service.complete(staff_user.id, module.id, certificate_ref="c/1.pdf")
        assert progress.completed_at == datetime(2024, 1, 31, 9, 0, tzinfo=UTC)
        assert progress.expires_at == datetime(2024, 2, 29, 9, 0, tzinfo=UTC)
        assert progress.certificate_ref == "c/1.pdf"

    def test_retake_after_start(self, training_service, make_module, staff_user):
        module = make_module()
        training_service.start(staff_user.id, module.id)
        first = training_service.complete(staff_user.id, module.id, score=60)
        second = training_service.complete(staff_user.id, module.id, score=95)
        assert second.id == first.id
        assert second.score == 95


# ---------------------------------------------------------------------------
# expire_overdue()
# ---------------------------------------------------------------------------


class TestExpireOverdue:
    def test_flips_only_overdue_completions(
        self, training_service, make_module, make_user, deterministic_clock,
    ):
        short = make_module(title="Short", expiry_months=1)
        long = make_module(title="Long", expiry_months=12)
        forever = make_module(title="Forever")
        alice = make_user(first_name="Alice")
        training_service.complete(alice.id, short.id)
        training_service.complete(alice.id, long.id)
        training_service.complete(alice.id, forever.id)

        expired = training_service.expire_overdue(as_of=datetime(2024, 3, 1, tzinfo=UTC))

        assert expired == 1
        assert training_service.get_progress(alice.id, short.id).status == TrainingStatus.EXPIRED
        assert training_service.get_progress(alice.id, long.id).status == TrainingStatus.COMPLETED
        assert training_service.get_progress(alice.id, forever.id).status == TrainingStatus.COMPLETED

    def test_boundary_is_inclusive(self, training_service, make_module, staff_user):
        module = make_module(expiry_months=1)
        progress = training_service.complete(staff_user.id, module.id)
        assert training_service.expire_overdue(as_of=progress.expires_at) == 1

    def test_sweep_is_idempotent(self, training_service, make_module, staff_user):
        module = make_module(expiry_months=1)
        training_service.complete(staff_user.id, module.id)
        cutoff = datetime(2025, 1, 1, tzinfo=UTC)
        assert training_service.expire_overdue(as_of=cutoff) == 1
        assert training_service.expire_overdue(as_of=cutoff) == 0

    def test_naive_cutoff_read_as_utc(self, training_service, make_module, staff_user):
        module = make_module(expiry_months=1)
        progress = training_service.complete(staff_user.id, module.id)
        naive_expiry = progress.expires_at.replace(tzinfo=None)

        assert training_service.expire_overdue(as_of=naive_expiry - timedelta(hours=1)) == 0
        assert training_service.expire_overdue(as_of=naive_expiry) == 1
