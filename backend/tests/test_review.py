"""Yearly mood review tests."""
from datetime import date, datetime, timedelta

from conftest import run

import dates
import review


def _event(couple_id, user_id, day, mood, intensity, minute=0):
    return {
        "id": f"{user_id}-{day}-{mood}-{minute}",
        "couple_id": couple_id,
        "user_id": user_id,
        "date": day,
        "mood": mood,
        "intensity": intensity,
        "note": "",
        "created_at": datetime(2024, 1, 1, 9, minute),
    }


def test_days_in_year():
    leap = dates.days_in_year(2024)
    assert len(leap) == 366
    assert leap[0] == "2024-01-01"
    assert leap[-1] == "2024-12-31"
    assert "2024-02-29" in leap
    for previous, current in zip(leap, leap[1:]):
        assert date.fromisoformat(current) - date.fromisoformat(previous) == timedelta(days=1)

    assert len(dates.days_in_year(2023)) == 365
    assert len(dates.days_in_year(1900)) == 365
    assert len(dates.days_in_year(2000)) == 366
    assert dates.days_in_year(9999)[-1] == "9999-12-31"


def test_dominant_by_date_tie_break():
    events = [
        _event("c", "u", "2024-03-01", "calm", 2, minute=0),
        _event("c", "u", "2024-03-01", "happy", 3, minute=5),
        _event("c", "u", "2024-03-01", "sad", 3, minute=10),
        _event("c", "u", "2024-03-02", "tired", 1, minute=0),
    ]
    by_date = review.dominant_by_date(events)
    assert by_date["2024-03-01"]["mood"] == "sad"
    assert by_date["2024-03-02"]["mood"] == "tired"
    assert list(by_date) == ["2024-03-01", "2024-03-02"]


def test_me_view_is_dense(client, db, couple, alice):
    run(db.mood_events.insert_many([
        _event(couple["id"], alice[1], "2024-02-29", "grateful", 2),
        _event(couple["id"], alice[1], "2023-12-31", "sad", 3),
    ]))

    r = client.get("/api/review", params={"year": 2024, "view": "me"}, headers=alice[0])
    assert r.status_code == 200
    series = r.json()
    assert len(series) == 366
    assert [d["date"] for d in series] == dates.days_in_year(2024)

    leap_day = series[59]
    assert leap_day == {"date": "2024-02-29", "mood": "grateful", "intensity": 2}
    assert series[0] == {"date": "2024-01-01", "mood": None, "intensity": None}


def test_partner_view(client, db, couple, alice, bob):
    run(db.mood_events.insert_one(_event(couple["id"], bob[1], "2024-05-01", "excited", 3)))
    series = client.get("/api/review", params={"year": 2024, "view": "partner"}, headers=alice[0]).json()
    may_first = next(d for d in series if d["date"] == "2024-05-01")
    assert may_first["mood"] == "excited"


def test_couple_view_pairs_both_members(client, db, couple, alice, bob):
    run(db.mood_events.insert_many([
        _event(couple["id"], alice[1], "2024-05-01", "calm", 1, minute=0),
        _event(couple["id"], alice[1], "2024-05-01", "happy", 1, minute=30),
        _event(couple["id"], bob[1], "2024-05-01", "stressed", 2),
        # Events from another couple never show up
        _event("other-couple", alice[1], "2024-05-02", "sad", 3),
    ]))

    series = client.get("/api/review", params={"year": 2024}, headers=alice[0]).json()
    assert len(series) == 366
    day = next(d for d in series if d["date"] == "2024-05-01")
    assert day["me"] == {"mood": "happy", "intensity": 1}
    assert day["partner"] == {"mood": "stressed", "intensity": 2}

    next_day = next(d for d in series if d["date"] == "2024-05-02")
    assert next_day == {"date": "2024-05-02", "me": None, "partner": None}


def test_defaults_to_current_year(client, couple, alice):
    series = client.get("/api/review", headers=alice[0]).json()
    assert series[0]["date"] == "2024-01-01"
    assert "me" in series[0]


def test_partner_view_without_partner(client, alice):
    client.post("/api/couple/create", json={"startDate": "2020-12-03"}, headers=alice[0])
    series = client.get("/api/review", params={"year": 2023, "view": "partner"}, headers=alice[0]).json()
    assert len(series) == 365
    assert all(d["mood"] is None for d in series)


def test_invalid_view(client, couple, alice):
    r = client.get("/api/review", params={"view": "everyone"}, headers=alice[0])
    assert r.status_code == 400
    assert r.json()["detail"] == "view must be one of: me, partner, couple"


def test_year_out_of_range(client, couple, alice):
    assert client.get("/api/review", params={"year": 0}, headers=alice[0]).status_code == 400
    assert client.get("/api/review", params={"year": "abc"}, headers=alice[0]).status_code == 400
