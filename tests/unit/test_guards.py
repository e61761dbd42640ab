"""
Unit tests for shared validation and gating helpers
"""
import pytest

from skillswap.exceptions import AuthorizationDenied, Conflict, ValidationError
from skillswap.models.skill import SkillType
from skillswap.models.swap_session import SwapSession, SwapSessionStatus
from skillswap.services.guards import (
    ensure_participant,
    ensure_session_status,
    optional_text,
    parse_enum,
    require_text,
    to_dict,
)


def make_session(status="ACTIVE"):
    return SwapSession(id=1, user1_id=10, user2_id=20, user1_skill_id=1, user2_skill_id=2, status=status)


class TestParseEnum:
    def test_accepts_value(self):
        assert parse_enum(SkillType, "OFFER", "skill_type") is SkillType.OFFER

    def test_accepts_member(self):
        assert parse_enum(SkillType, SkillType.WANT, "skill_type") is SkillType.WANT

    def test_rejects_unknown_value(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_enum(SkillType, "offer", "skill_type")

        assert exc_info.value.field == "skill_type"
        assert "OFFER, WANT" in exc_info.value.message


class TestText:
    def test_require_text_strips(self):
        assert require_text("  Python ", "skill_name") == "Python"

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_require_text_rejects_blank(self, value):
        with pytest.raises(ValidationError):
            require_text(value, "skill_name")

    def test_optional_text_blank_is_none(self):
        assert optional_text("   ") is None
        assert optional_text(None) is None
        assert optional_text(" hi ") == "hi"


class TestSessionGates:
    """Test participant and status checks against a loaded session"""

    def test_participant_passes(self):
        ensure_participant(make_session(), 20, "view")

    def test_outsider_denied(self):
        with pytest.raises(AuthorizationDenied):
            ensure_participant(make_session(), 30, "view")

    def test_status_allowed(self):
        ensure_session_status(make_session("COMPLETED"), [SwapSessionStatus.ACTIVE, SwapSessionStatus.COMPLETED], "chat")

    def test_status_conflict_reports_current_status(self):
        with pytest.raises(Conflict) as exc_info:
            ensure_session_status(make_session("CANCELLED"), [SwapSessionStatus.ACTIVE], "add resources")

        assert exc_info.value.details == {"swap_session_id": 1, "status": "CANCELLED"}
        assert "not active" in exc_info.value.message


class TestToDict:
    def test_column_values(self):
        data = to_dict(make_session(), exclude=["started_at", "completed_at"])

        assert data == {
            "id": 1,
            "swap_request_id": None,
            "user1_id": 10,
            "user2_id": 20,
            "user1_skill_id": 1,
            "user2_skill_id": 2,
            "status": "ACTIVE",
        }
