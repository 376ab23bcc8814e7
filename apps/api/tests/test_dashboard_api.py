"""
Tests for /dashboard/me.
"""
from datetime import timedelta

from models import Message
from fixtures.api_helpers import data


def test_dashboard_for_new_user(client, make_user, bearer_headers):
    user = make_user()

    resp = client.get("/dashboard/me", headers=bearer_headers(user))

    assert resp.status_code == 200
    assert data(resp) == {
        "stats": {"joined_runs_count": 0, "upcoming_runs_count": 0},
        "upcoming_runs": [],
        "recent_messages": [],
    }


def test_upcoming_runs_limited_and_ordered(client, make_user, make_run, bearer_headers):
    host = make_user()
    runner = make_user()
    for day in range(7, 0, -1):
        make_run(host, participants=[runner], title=f"Day {day}", starts_in=timedelta(days=day))
    make_run(host, participants=[runner], title="Already done", starts_in=timedelta(days=-1))

    payload = data(client.get("/dashboard/me", headers=bearer_headers(runner)))

    assert payload["stats"]["joined_runs_count"] == 8
    assert payload["stats"]["upcoming_runs_count"] == 5
    assert [r["title"] for r in payload["upcoming_runs"]] == ["Day 1", "Day 2", "Day 3", "Day 4", "Day 5"]
    assert payload["upcoming_runs"][0]["location"] == {"city": "Beograd", "municipality": "Zvezdara"}


def test_recent_messages_only_from_own_runs(client, db_session, make_user, make_run, bearer_headers):
    host = make_user(username="host")
    runner = make_user(username="runner")
    mine = make_run(host, participants=[runner], title="Mine")
    theirs = make_run(host, title="Not mine")
    for i in range(10):
        db_session.add(Message(content=f"m{i}", run_id=mine.id, from_user_id=host.id, to_user_id=host.id))
    db_session.add(Message(content="secret", run_id=theirs.id, from_user_id=host.id, to_user_id=host.id))
    db_session.commit()

    recent = data(client.get("/dashboard/me", headers=bearer_headers(runner)))["recent_messages"]

    assert len(recent) == 8
    assert all(m["run_title"] == "Mine" for m in recent)
    assert recent[0]["from_username"] == "host"
