"""
Tests for cascading deletes of runs and users.

Covers completeness (no dependent row survives), isolation (other runs and
users are untouched) and atomicity (a failure mid-cascade restores every row).
"""
import pytest
from sqlalchemy import event

from models import Location, Message, Rating, Run, RunMembership, User, UserSession
from services.cascade import delete_run_cascade, delete_user_cascade
from services.sessions import create_session


def _count(db, model, *criteria):
    return db.query(model).filter(*criteria).count()


def _add_message(db, run, sender, content="see you there"):
    msg = Message(content=content, run_id=run.id, from_user_id=sender.id, to_user_id=run.host_user_id)
    db.add(msg)
    db.commit()
    return msg


def _add_rating(db, run, rater, score=5):
    rating = Rating(run_id=run.id, from_user_id=rater.id, to_user_id=run.host_user_id, score=score, comment="great pacing")
    db.add(rating)
    db.commit()
    return rating


@pytest.fixture
def populated(db_session, make_user, make_run):
    """Two hosts with one run each, a shared participant, chat and ratings on both."""
    host = make_user(username="host")
    other_host = make_user(username="other_host")
    runner = make_user(username="runner")

    run = make_run(host, participants=[runner, other_host], title="Target run")
    other_run = make_run(other_host, participants=[runner, host], title="Other run", municipality="Vracar")

    _add_message(db_session, run, host)
    _add_message(db_session, run, runner)
    _add_message(db_session, other_run, runner)
    _add_message(db_session, other_run, host)
    _add_rating(db_session, run, runner)
    _add_rating(db_session, other_run, runner, score=3)
    _add_rating(db_session, other_run, host, score=4)

    create_session(db_session, host.id)
    create_session(db_session, runner.id)

    return {"host": host, "other_host": other_host, "runner": runner, "run": run, "other_run": other_run}


@pytest.fixture
def fail_on_rating_delete(db_session):
    """Make any bulk delete against ratings raise, after earlier steps have run."""
    def _boom(orm_execute_state):
        if orm_execute_state.is_delete and orm_execute_state.bind_mapper.class_ is Rating:
            raise RuntimeError("simulated failure while deleting ratings")

    event.listen(db_session, "do_orm_execute", _boom)
    yield
    event.remove(db_session, "do_orm_execute", _boom)


class TestDeleteRunCascade:
    def test_removes_run_and_all_dependents(self, db_session, populated):
        run_id = populated["run"].id

        counts = delete_run_cascade(db_session, run_id)

        assert counts == {"messages": 2, "run_users": 3, "ratings": 1, "runs": 1}
        assert _count(db_session, Run, Run.id == run_id) == 0
        assert _count(db_session, Message, Message.run_id == run_id) == 0
        assert _count(db_session, RunMembership, RunMembership.run_id == run_id) == 0
        assert _count(db_session, Rating, Rating.run_id == run_id) == 0

    def test_other_runs_untouched(self, db_session, populated):
        other_id = populated["other_run"].id

        delete_run_cascade(db_session, populated["run"].id)

        assert _count(db_session, Run, Run.id == other_id) == 1
        assert _count(db_session, Message, Message.run_id == other_id) == 2
        assert _count(db_session, RunMembership, RunMembership.run_id == other_id) == 3
        assert _count(db_session, Rating, Rating.run_id == other_id) == 2

    def test_location_is_kept(self, db_session, populated):
        location_id = populated["run"].location_id

        delete_run_cascade(db_session, populated["run"].id)

        assert _count(db_session, Location, Location.id == location_id) == 1

    def test_failure_rolls_back_everything(self, db_session, populated, fail_on_rating_delete):
        run_id = populated["run"].id

        with pytest.raises(RuntimeError):
            delete_run_cascade(db_session, run_id)

        # Messages and memberships were deleted before the failure; all restored.
        assert _count(db_session, Run, Run.id == run_id) == 1
        assert _count(db_session, Message, Message.run_id == run_id) == 2
        assert _count(db_session, RunMembership, RunMembership.run_id == run_id) == 3
        assert _count(db_session, Rating, Rating.run_id == run_id) == 1


class TestDeleteUserCascade:
    def test_removes_user_and_everything_attached(self, db_session, populated):
        host = populated["host"]
        run_id = populated["run"].id

        delete_user_cascade(db_session, host.id)

        assert _count(db_session, User, User.id == host.id) == 0
        assert _count(db_session, UserSession, UserSession.user_id == host.id) == 0
        # Hosted run gone with all its rows
        assert _count(db_session, Run, Run.id == run_id) == 0
        assert _count(db_session, Message, Message.run_id == run_id) == 0
        assert _count(db_session, Rating, Rating.run_id == run_id) == 0
        # Activity in other runs gone too
        assert _count(db_session, Message, Message.from_user_id == host.id) == 0
        assert _count(db_session, Message, Message.to_user_id == host.id) == 0
        assert _count(db_session, Rating, Rating.from_user_id == host.id) == 0
        assert _count(db_session, Rating, Rating.to_user_id == host.id) == 0
        assert _count(db_session, RunMembership, RunMembership.user_id == host.id) == 0

    def test_returns_per_table_counts(self, db_session, populated):
        counts = delete_user_cascade(db_session, populated["host"].id)

        assert counts["runs"] == 1
        assert counts["users"] == 1
        assert counts["sessions"] == 1
        # 2 in the hosted run, 1 sent in the other run
        assert counts["messages"] == 3
        # 1 received on the hosted run, 1 given on the other run
        assert counts["ratings"] == 2
        # 3 in the hosted run, 1 in the other run
        assert counts["run_users"] == 4

    def test_other_users_keep_their_data(self, db_session, populated):
        runner = populated["runner"]
        other_run_id = populated["other_run"].id

        delete_user_cascade(db_session, populated["host"].id)

        assert _count(db_session, User, User.id == runner.id) == 1
        assert _count(db_session, UserSession, UserSession.user_id == runner.id) == 1
        assert _count(db_session, Run, Run.id == other_run_id) == 1
        assert _count(db_session, Message, Message.run_id == other_run_id) == 1
        assert _count(db_session, Rating, Rating.run_id == other_run_id) == 1
        assert _count(db_session, RunMembership, RunMembership.run_id == other_run_id) == 2

    def test_user_without_activity(self, db_session, make_user):
        loner = make_user(username="loner")

        counts = delete_user_cascade(db_session, loner.id)

        assert counts["users"] == 1
        assert counts.get("runs", 0) == 0
        assert counts["messages"] == 0
        assert _count(db_session, User, User.id == loner.id) == 0

    def test_failure_rolls_back_everything(self, db_session, populated, fail_on_rating_delete):
        host = populated["host"]

        with pytest.raises(RuntimeError):
            delete_user_cascade(db_session, host.id)

        assert _count(db_session, User, User.id == host.id) == 1
        assert _count(db_session, Run, Run.host_user_id == host.id) == 1
        assert _count(db_session, Message) == 4
        assert _count(db_session, Rating) == 3
        assert _count(db_session, RunMembership) == 6
        assert _count(db_session, UserSession) == 2
