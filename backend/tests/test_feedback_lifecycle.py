"""Tests for the feedback status state machine."""

import pytest

from app.models.feedback import FeedbackStatus
from app.services.feedback_lifecycle import (
    PUBLISHED_STATUSES,
    TRANSITIONS,
    apply_transition,
    parse_settable_status,
)
from app.utils.errors import InvalidInputError, NotFoundError

S = FeedbackStatus


class TestTransitionTable:

    def test_creation(self):
        assert apply_transition("create_draft", None) is S.DRAFT
        assert apply_transition("create_submit", None) is S.PENDING

    def test_draft_actions_only_apply_to_drafts(self):
        assert apply_transition("update_draft", S.DRAFT) is S.DRAFT
        assert apply_transition("submit_draft", S.DRAFT) is S.PENDING
        for status in PUBLISHED_STATUSES:
            with pytest.raises(NotFoundError):
                apply_transition("submit_draft", status)
            with pytest.raises(NotFoundError):
                apply_transition("update_draft", status)

    @pytest.mark.parametrize("current", sorted(PUBLISHED_STATUSES, key=lambda s: s.value))
    def test_reply_from_any_published_status(self, current):
        assert apply_transition("reply", current) is S.RESPONDED

    def test_reply_to_draft_is_hidden(self):
        with pytest.raises(NotFoundError):
            apply_transition("reply", S.DRAFT)

    def test_set_status_override_between_published_statuses(self):
        assert apply_transition("set_status", S.RESPONDED, S.RESOLVED) is S.RESOLVED
        assert apply_transition("set_status", S.RESOLVED, S.PENDING) is S.PENDING
        assert apply_transition("set_status", S.PENDING, S.IN_PROGRESS) is S.IN_PROGRESS

    def test_set_status_cannot_target_draft(self):
        with pytest.raises(InvalidInputError):
            apply_transition("set_status", S.PENDING, S.DRAFT)

    def test_set_status_on_draft_is_hidden(self):
        with pytest.raises(NotFoundError):
            apply_transition("set_status", S.DRAFT, S.RESOLVED)

    def test_no_action_returns_to_draft_from_published(self):
        for name, transition in TRANSITIONS.items():
            if transition.target is S.DRAFT:
                assert transition.sources <= {None, S.DRAFT}, name


class TestParseSettableStatus:

    @pytest.mark.parametrize("value", ["Pending", "In Progress", "Responded", "Resolved"])
    def test_accepts_published_values(self, value):
        assert parse_settable_status(value).value == value

    @pytest.mark.parametrize("value", ["Draft", "resolved", "Closed", ""])
    def test_rejects_everything_else(self, value):
        with pytest.raises(InvalidInputError) as exc_info:
            parse_settable_status(value)
        assert exc_info.value.status_code == 400
