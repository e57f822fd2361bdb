from uuid import uuid4

import pytest
from pydantic import ValidationError

from journal.models.review import Recommendation
from journal.schemas.auth import ProfileUpdate, RefreshRequest, RegisterRequest
from journal.schemas.review import ReviewCreate, ReviewUpdate


def test_review_create_normalizes_hyphenated_recommendation():
    review = ReviewCreate(submission_id=uuid4(), recommendation="Minor-Revisions", comments=" fine ")
    assert review.recommendation is Recommendation.MINOR_REVISIONS
    assert review.comments == "fine"


@pytest.mark.parametrize("rating", [0, 6])
def test_review_rating_range(rating):
    with pytest.raises(ValidationError):
        ReviewCreate(submission_id=uuid4(), recommendation="accept", comments="ok", rating=rating)


def test_review_requires_comments_and_known_recommendation():
    with pytest.raises(ValidationError):
        ReviewCreate(submission_id=uuid4(), recommendation="accept", comments="   ")
    with pytest.raises(ValidationError):
        ReviewCreate(submission_id=uuid4(), recommendation="maybe", comments="ok")


def test_review_update_changes_are_json_ready():
    update = ReviewUpdate(recommendation="reject", rating=2)
    assert update.changes() == {"recommendation": "reject", "rating": 2}


def test_register_defaults_to_author_and_enforces_password_strength():
    req = RegisterRequest(email="Jane@Example.com", password="Passw0rdX", first_name=" Jane ", last_name="Doe")
    assert req.role == "author"
    assert req.first_name == "Jane"
    with pytest.raises(ValidationError):
        RegisterRequest(email="jane@example.com", password="alllowercase1", first_name="J", last_name="D")
    with pytest.raises(ValidationError):
        RegisterRequest(email="jane@example.com", password="Passw0rdX", first_name="J", last_name="D", role="admin")


def test_refresh_request_accepts_both_spellings():
    assert RefreshRequest(refreshToken="abc").token == "abc"
    assert RefreshRequest(refresh_token="xyz").token == "xyz"
    with pytest.raises(ValidationError):
        RefreshRequest()


def test_profile_update_requires_a_field():
    with pytest.raises(ValidationError):
        ProfileUpdate()
