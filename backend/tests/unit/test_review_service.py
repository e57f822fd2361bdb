from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from journal.core.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError
from journal.schemas.review import ReviewCreate, ReviewUpdate
from journal.services.review_service import ReviewService
from tests.utils.factories import make_review, make_submission, make_user


@pytest.fixture
def notifications():
    return MagicMock()


@pytest.fixture
def service(fake_db, notifications):
    return ReviewService(notifications=notifications)


@pytest.fixture
def cast(fake_db):
    author = make_user(fake_db, "author")
    return {
        "author": author,
        "reviewer": make_user(fake_db, "reviewer"),
        "editor": make_user(fake_db, "editor"),
        "submission": make_submission(fake_db, author),
    }


def _review(submission_id, **overrides):
    data = {"submission_id": submission_id, "recommendation": "accept", "comments": "Clear and well argued."}
    data.update(overrides)
    return ReviewCreate(**data)


class TestAssignReviewer:
    def test_assign_creates_pending_row_and_starts_review(self, service, cast, fake_db, notifications):
        review = service.assign_reviewer(cast["editor"], cast["submission"]["id"], cast["reviewer"]["id"])
        assert review["status"] == "pending"
        assert review["is_completed"] is False
        assert fake_db.rows("submissions")[0]["status"] == "under_review"
        notifications.review_assigned.assert_called_once()

    def test_second_assignment_conflicts_with_400(self, service, cast):
        service.assign_reviewer(cast["editor"], cast["submission"]["id"], cast["reviewer"]["id"])
        with pytest.raises(ConflictError) as exc:
            service.assign_reviewer(cast["editor"], cast["submission"]["id"], cast["reviewer"]["id"])
        assert exc.value.status_code == 400
        assert exc.value.message == "Reviewer has already reviewed this submission"

    def test_author_cannot_review_own_submission(self, service, cast, fake_db):
        fake_db.rows("users")[0]["role"] = "reviewer"
        with pytest.raises(ValidationError):
            service.assign_reviewer(cast["editor"], cast["submission"]["id"], cast["author"]["id"])

    def test_guards(self, service, cast, fake_db):
        with pytest.raises(AuthorizationError):
            service.assign_reviewer(cast["reviewer"], cast["submission"]["id"], cast["reviewer"]["id"])
        with pytest.raises(NotFoundError):
            service.assign_reviewer(cast["editor"], str(uuid4()), cast["reviewer"]["id"])
        with pytest.raises(ValidationError):
            service.assign_reviewer(cast["editor"], cast["submission"]["id"], cast["author"]["id"])
        closed = make_submission(fake_db, cast["author"], status="accepted")
        with pytest.raises(ValidationError):
            service.assign_reviewer(cast["editor"], closed["id"], cast["reviewer"]["id"])

    def test_unique_index_backs_up_the_precheck(self, service, cast, monkeypatch):
        # 预检查被并发绕过时，由唯一索引报冲突
        monkeypatch.setattr(service.reviews, "has_reviewer_reviewed", lambda *a: False)
        service.assign_reviewer(cast["editor"], cast["submission"]["id"], cast["reviewer"]["id"])
        with pytest.raises(ConflictError) as exc:
            service.assign_reviewer(cast["editor"], cast["submission"]["id"], cast["reviewer"]["id"])
        assert exc.value.status_code == 400


class TestCreateReview:
    def test_fills_pending_assignment(self, service, cast, fake_db):
        assigned = service.assign_reviewer(cast["editor"], cast["submission"]["id"], cast["reviewer"]["id"])
        review = service.create_review(cast["reviewer"], _review(cast["submission"]["id"], rating=5))
        assert review["id"] == assigned["id"]
        assert review["status"] == "in_progress"
        assert review["recommendation"] == "accept"
        assert len(fake_db.rows("reviews")) == 1

    def test_second_review_for_pair_fails(self, service, cast, fake_db):
        service.create_review(cast["reviewer"], _review(cast["submission"]["id"]))
        with pytest.raises(ConflictError):
            service.create_review(cast["reviewer"], _review(cast["submission"]["id"]))
        assert len(fake_db.rows("reviews")) == 1

    def test_moves_submitted_to_under_review(self, service, cast, fake_db):
        service.create_review(cast["reviewer"], _review(cast["submission"]["id"]))
        assert fake_db.rows("submissions")[0]["status"] == "under_review"

    def test_author_role_cannot_review(self, service, cast):
        with pytest.raises(AuthorizationError):
            service.create_review(cast["author"], _review(cast["submission"]["id"]))


class TestCompleteReview:
    def test_complete_then_locked(self, service, cast, notifications):
        review = service.create_review(cast["reviewer"], _review(cast["submission"]["id"]))
        done = service.complete_review(cast["reviewer"], review["id"])
        assert done["is_completed"] is True
        assert done["status"] == "completed"
        assert done["completed_date"]
        notifications.review_completed.assert_called_once()

        with pytest.raises(ConflictError):
            service.complete_review(cast["reviewer"], review["id"])
        with pytest.raises(ConflictError):
            service.update_review(cast["reviewer"], review["id"], ReviewUpdate(rating=1))

    def test_pending_assignment_cannot_be_completed(self, service, cast):
        assigned = service.assign_reviewer(cast["editor"], cast["submission"]["id"], cast["reviewer"]["id"])
        with pytest.raises(ValidationError):
            service.complete_review(cast["reviewer"], assigned["id"])

    def test_only_owner_can_modify(self, service, cast, fake_db):
        review = service.create_review(cast["reviewer"], _review(cast["submission"]["id"]))
        other = make_user(fake_db, "reviewer")
        with pytest.raises(AuthorizationError):
            service.update_review(other, review["id"], ReviewUpdate(rating=2))


def test_dashboard_set_difference(service, cast, fake_db):
    reviewer = cast["reviewer"]
    done = make_submission(fake_db, cast["author"], status="under_review", title="Already reviewed")
    make_review(fake_db, done, reviewer, completed=True)
    make_submission(fake_db, cast["author"], status="rejected")

    dashboard = service.get_reviewer_dashboard(reviewer["id"])
    assert [s["id"] for s in dashboard["pendingReviews"]] == [cast["submission"]["id"]]
    assert dashboard["pendingReviews"][0]["author_email"] == cast["author"]["email"]
    assert [r["title"] for r in dashboard["completedReviews"]] == ["Already reviewed"]
    assert dashboard["completedReviews"][0]["submission_status"] == "under_review"
    assert dashboard["reviewStats"] == {"totalReviews": 1, "pendingCount": 1}


def test_author_view_hides_confidential_and_unfinished(service, cast, fake_db):
    submission = cast["submission"]
    make_review(fake_db, submission, cast["reviewer"], completed=True, confidential_comments="editor only")
    make_review(fake_db, submission, make_user(fake_db, "reviewer"))

    visible = service.get_reviews_for_author(cast["author"], submission["id"])
    assert len(visible) == 1
    assert "confidential_comments" not in visible[0]
    assert "reviewer_id" not in visible[0]

    with pytest.raises(AuthorizationError):
        service.get_reviews_for_author(cast["reviewer"], submission["id"])


def test_reviews_for_submission_include_summary(service, cast, fake_db):
    submission = cast["submission"]
    make_review(fake_db, submission, cast["reviewer"], completed=True, recommendation="reject")
    data = service.get_reviews_for_submission(cast["editor"], submission["id"])
    assert data["summary"] == {"total_reviews": 1, "recommendations": {"reject": 1}}
    assert data["reviews"][0]["reviewer_name"] == "Reviewer Tester"


def test_review_statistics(service, cast, fake_db):
    submission = make_submission(fake_db, cast["author"], submitted_at="2026-01-01T00:00:00+00:00")
    make_review(fake_db, submission, cast["reviewer"], completed=True, recommendation="accept",
                submitted_at="2026-01-03T00:00:00+00:00")
    stats = service.get_review_statistics(cast["editor"])
    assert stats["total_completed"] == 1
    assert stats["recommendations"] == {"accept": 1}
    assert stats["average_review_days"] == 2.0


def test_dashboard_drops_written_reviews_but_keeps_assignments(service, cast, fake_db):
    reviewer = cast["reviewer"]
    drafted = make_submission(fake_db, cast["author"], title="Draft written")
    make_review(fake_db, drafted, reviewer)
    assigned = make_submission(fake_db, cast["author"], title="Assigned only")
    make_review(fake_db, assigned, reviewer, recommendation=None, status="pending")

    dashboard = service.get_reviewer_dashboard(reviewer["id"])
    pending_ids = {s["id"] for s in dashboard["pendingReviews"]}
    assert drafted["id"] not in pending_ids
    assert pending_ids == {cast["submission"]["id"], assigned["id"]}
    assert dashboard["reviewStats"] == {"totalReviews": 0, "pendingCount": 2}
