from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from modules.journeys.models import (
    Journey,
    JourneyView,
    LifecycleState,
    MembershipState,
    JoinTokenClaims,
)


def make_journey(**overrides) -> Journey:
    data = {
        "id": "j-1",
        "slug": "trip-abc123",
        "name": "Trip",
        "leader_id": "leader",
        "members": ["leader", "m1"],
        "pending_members": ["p1"],
        "rejected_members": ["r1"],
    }
    data.update(overrides)
    return Journey(**data)


class TestJourney:
    def test_defaults(self):
        journey = make_journey()
        assert journey.status.value == "active"
        assert journey.is_locked is False
        assert journey.require_approval is False
        assert journey.has_password is False
        assert journey.version == 0
        assert journey.join_token_used is False

    @pytest.mark.parametrize(
        "user_id,state",
        [
            ("leader", MembershipState.MEMBER),
            ("m1", MembershipState.MEMBER),
            ("p1", MembershipState.PENDING),
            ("r1", MembershipState.REJECTED),
            ("stranger", MembershipState.NOT_MEMBER),
        ],
    )
    def test_membership_state(self, user_id, state):
        assert make_journey().membership_state(user_id) == state

    def test_is_leader(self):
        journey = make_journey()
        assert journey.is_leader("leader") is True
        assert journey.is_leader("m1") is False

    def test_has_password(self):
        assert make_journey(password_hash="$2b$10$abc").has_password is True


class TestLiveJoinToken:
    def test_live_token(self):
        now = datetime.now(timezone.utc)
        journey = make_journey(join_token_jti="abc", join_token_expires_at=now + timedelta(minutes=5))
        assert journey.has_live_join_token("abc", now) is True

    def test_wrong_jti(self):
        now = datetime.now(timezone.utc)
        journey = make_journey(join_token_jti="abc", join_token_expires_at=now + timedelta(minutes=5))
        assert journey.has_live_join_token("xyz", now) is False

    def test_used_token(self):
        now = datetime.now(timezone.utc)
        journey = make_journey(
            join_token_jti="abc",
            join_token_expires_at=now + timedelta(minutes=5),
            join_token_used=True,
        )
        assert journey.has_live_join_token("abc", now) is False

    def test_expired_token(self):
        now = datetime.now(timezone.utc)
        journey = make_journey(join_token_jti="abc", join_token_expires_at=now)
        assert journey.has_live_join_token("abc", now) is False

    def test_no_token(self):
        assert make_journey().has_live_join_token("abc", datetime.now(timezone.utc)) is False


class TestLifecycleState:
    def test_active_without_expiry(self):
        assert make_journey().lifecycle_state == LifecycleState.ACTIVE

    def test_sliding_with_expiry(self):
        journey = make_journey(expire_at=datetime.now(timezone.utc))
        assert journey.lifecycle_state == LifecycleState.ACTIVE_SLIDING

    def test_expiring_after_leader_left(self):
        now = datetime.now(timezone.utc)
        journey = make_journey(expire_at=now, leader_left_at=now)
        assert journey.lifecycle_state == LifecycleState.EXPIRING


class TestJourneyView:
    def test_hides_secrets_and_token_state(self):
        journey = make_journey(password_hash="$2b$10$abc", join_token_jti="secret-jti")
        view = JourneyView.from_journey(journey).model_dump()

        assert view["has_password"] is True
        assert "password_hash" not in view
        assert "join_token_jti" not in view
        assert view["members"] == ["leader", "m1"]


class TestJoinTokenClaims:
    def test_frozen(self):
        claims = JoinTokenClaims(jti="abc")
        with pytest.raises(ValidationError):
            claims.jti = "other"

    def test_rejects_empty_jti(self):
        with pytest.raises(ValidationError):
            JoinTokenClaims(jti="")
