"""
Tests for TrainingSelector -- training reports.
"""

from staff_portal.domain.training import TrainingStatus
from staff_portal.selectors.training_selector import TrainingSelector


class TestAnalytics:
    def test_empty_organisation(self, session):
        analytics = TrainingSelector(session).analytics()
        assert analytics.total_modules == 0
        assert analytics.completion_rate == 0
        assert analytics.average_score == 0
        assert analytics.modules == ()

    def test_totals_and_averages(self, session, training_service, make_user, deterministic_clock):
        alice, bola = make_user(first_name="Alice"), make_user(first_name="Bola")
        fire = training_service.create_module("Fire Safety")
        privacy = training_service.create_module("Data Privacy", video_ref="videos/privacy.mp4")

        training_service.assign(fire.id, "individual", [alice.id, bola.id])
        training_service.assign(privacy.id, "individual", [alice.id])

        training_service.complete(alice.id, fire.id, score=80)
        training_service.start(bola.id, fire.id)
        training_service.record_video_progress(alice.id, privacy.id, 45, 100)
        deterministic_clock.advance(10)
        training_service.record_video_progress(bola.id, privacy.id, 10, 100)
        training_service.complete(alice.id, privacy.id, score=91, video_completed=True)

        analytics = TrainingSelector(session).analytics()
        assert analytics.total_modules == 2
        assert analytics.total_assignments == 3
        assert analytics.total_completions == 2
        assert analytics.in_progress_count == 1
        assert analytics.completion_rate == 67
        assert analytics.average_score == 86
        assert analytics.average_watch_percentage == 28

    def test_module_breakdown_sorted_by_title(self, session, training_service, make_user):
        user = make_user()
        fire = training_service.create_module("Fire Safety")
        training_service.create_module("Anti-Bribery")
        training_service.assign(fire.id, "individual", [user.id])
        training_service.complete(user.id, fire.id)

        breakdown = TrainingSelector(session).module_breakdown()
        assert [(m.title, m.assigned, m.completed, m.completion_rate) for m in breakdown] == [
            ("Anti-Bribery", 0, 0, 0),
            ("Fire Safety", 1, 1, 100),
        ]


class TestProgressForUser:
    def test_only_own_rows(self, session, training_service, make_user):
        mine, theirs = make_user(), make_user()
        module = training_service.create_module("Fire Safety")
        training_service.start(mine.id, module.id)
        training_service.complete(theirs.id, module.id)

        rows = TrainingSelector(session).progress_for_user(mine.id)
        assert [r.status for r in rows] == [TrainingStatus.IN_PROGRESS]
