"""
Tests for the authorization guard predicates and their raising wrappers.
"""
import pytest

from core.exceptions import ForbiddenError
from models import Message, Rating, Run
from services.authorization import (
    can_access_run_chat,
    can_delete_user,
    can_modify_message,
    can_modify_rating,
    can_modify_run,
    can_rate_run,
    ensure_admin,
    ensure_can_delete_user,
    ensure_can_modify_message,
    ensure_can_modify_rating,
    ensure_can_modify_run,
    ensure_run_member,
    is_admin,
)
from services.sessions import AuthUser


HOST = AuthUser(id=1, email="host@example.com", username="host", role="runner")
RUNNER = AuthUser(id=2, email="runner@example.com", username="runner", role="runner")
COACH = AuthUser(id=3, email="coach@example.com", username="coach", role="coach")
ADMIN = AuthUser(id=4, email="admin@example.com", username="admin", role="admin")


@pytest.fixture
def run():
    return Run(id=10, host_user_id=HOST.id)


class TestRunRules:
    def test_only_host_modifies_run(self, run):
        assert can_modify_run(HOST, run) is True
        assert can_modify_run(RUNNER, run) is False
        assert can_modify_run(ADMIN, run) is False

    def test_ensure_can_modify_run_raises_for_non_host(self, run):
        ensure_can_modify_run(HOST, run)
        with pytest.raises(ForbiddenError):
            ensure_can_modify_run(RUNNER, run)


class TestChatRules:
    def test_chat_requires_membership(self):
        assert can_access_run_chat(True) is True
        assert can_access_run_chat(False) is False

    def test_ensure_run_member(self):
        ensure_run_member(True)
        with pytest.raises(ForbiddenError):
            ensure_run_member(False)

    def test_only_author_modifies_message(self):
        message = Message(id=5, run_id=10, from_user_id=RUNNER.id, to_user_id=HOST.id)
        assert can_modify_message(RUNNER, message) is True
        assert can_modify_message(HOST, message) is False

    def test_admin_cannot_modify_someone_elses_message(self):
        message = Message(id=5, run_id=10, from_user_id=RUNNER.id, to_user_id=HOST.id)
        assert can_modify_message(ADMIN, message) is False
        with pytest.raises(ForbiddenError):
            ensure_can_modify_message(ADMIN, message)


class TestRatingRules:
    def test_member_who_has_not_rated_can_rate(self, run):
        assert can_rate_run(RUNNER, run, is_member=True, already_rated=False) is True

    def test_non_member_cannot_rate(self, run):
        assert can_rate_run(RUNNER, run, is_member=False, already_rated=False) is False

    def test_host_cannot_rate_own_run(self, run):
        assert can_rate_run(HOST, run, is_member=True, already_rated=False) is False

    def test_second_rating_not_allowed(self, run):
        assert can_rate_run(RUNNER, run, is_member=True, already_rated=True) is False

    def test_author_or_admin_modifies_rating(self):
        rating = Rating(id=7, run_id=10, from_user_id=RUNNER.id, to_user_id=HOST.id, score=4)
        assert can_modify_rating(RUNNER, rating) is True
        assert can_modify_rating(ADMIN, rating) is True
        assert can_modify_rating(COACH, rating) is False
        assert can_modify_rating(HOST, rating) is False

    def test_ensure_can_modify_rating(self):
        rating = Rating(id=7, run_id=10, from_user_id=RUNNER.id, to_user_id=HOST.id, score=4)
        ensure_can_modify_rating(ADMIN, rating)
        with pytest.raises(ForbiddenError):
            ensure_can_modify_rating(HOST, rating)


class TestAdminRules:
    def test_is_admin(self):
        assert is_admin(ADMIN) is True
        assert is_admin(COACH) is False
        assert is_admin(RUNNER) is False

    def test_ensure_admin(self):
        ensure_admin(ADMIN)
        with pytest.raises(ForbiddenError):
            ensure_admin(COACH)

    def test_admin_deletes_others_but_not_self(self):
        assert can_delete_user(ADMIN, RUNNER.id) is True
        assert can_delete_user(ADMIN, ADMIN.id) is False
        assert can_delete_user(RUNNER, HOST.id) is False

    def test_ensure_can_delete_user_self_message(self):
        with pytest.raises(ForbiddenError) as exc:
            ensure_can_delete_user(ADMIN, ADMIN.id)
        assert exc.value.status_code == 403
        assert "own admin account" in exc.value.detail
