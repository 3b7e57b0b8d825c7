"""Daily quote tests."""
from conftest import PartlyBrokenStore, run

import quotes
from database import get_database
from server import app



def test_string_hash():
    assert quotes.string_hash("") == 0
    assert quotes.string_hash("a") == 97
    assert quotes.string_hash("ab") == 3105


def test_string_hash_wraps_to_32_bits():
    value = quotes.string_hash("2024-06-15" + "a-rather-long-couple-identifier")
    assert -2 ** 31 <= value < 2 ** 31


def test_fallback_is_stable():
    first = quotes.fallback_quote("2024-06-15", "couple-1")
    assert first == quotes.fallback_quote("2024-06-15", "couple-1")
    assert first in quotes.FALLBACK_QUOTES
    assert 0 <= quotes.quote_index("2024-06-15", "couple-1") < len(quotes.FALLBACK_QUOTES)


def test_today_quote_is_stored_once(client, db, couple, alice, bob):
    first = client.get("/api/quote/today", headers=alice[0]).json()
    assert first["date"] == "2024-06-15"
    assert first["source"] == "fallback"
    assert first["text"] == quotes.fallback_quote("2024-06-15", couple["id"])

    second = client.get("/api/quote/today", headers=bob[0]).json()
    assert second == first
    assert run(db.daily_quotes.count_documents({"couple_id": couple["id"]})) == 1


def test_ai_quote_is_persisted(client, db, couple, alice, monkeypatch):
    async def fake_quote():
        return "You two make a great team."

    monkeypatch.setattr(quotes, "generate_ai_quote", fake_quote)
    body = client.get("/api/quote/today", headers=alice[0]).json()
    assert body == {"date": "2024-06-15", "text": "You two make a great team.", "source": "persisted"}

    stored = run(db.daily_quotes.find_one({"couple_id": couple["id"], "date": "2024-06-15"}))
    assert stored["text"] == "You two make a great team."


def test_no_api_key_means_no_ai_quote():
    assert run(quotes.generate_ai_quote()) is None


def test_quote_for_past_date_does_not_write(db):
    quote = run(quotes.get_quote_for_date(db, "couple-1", "2024-01-01"))
    assert quote.source == "fallback"
    assert quote.text == quotes.fallback_quote("2024-01-01", "couple-1")
    assert run(db.daily_quotes.count_documents({})) == 0


def test_today_quote_survives_store_failure(db):
    quote = run(quotes.get_today_quote(PartlyBrokenStore(db, "daily_quotes"), "couple-1"))
    assert quote.source == "fallback"
    assert quote.text == quotes.fallback_quote("2024-06-15", "couple-1")


def test_quote_endpoints_fall_back_when_quotes_unreachable(client, db, couple, alice):
    app.dependency_overrides[get_database] = lambda: PartlyBrokenStore(db, "daily_quotes")
    expected = quotes.fallback_quote("2024-06-15", couple["id"])

    r = client.get("/api/quote/today", headers=alice[0])
    assert r.status_code == 200
    assert r.json() == {"date": "2024-06-15", "text": expected, "source": "fallback"}

    day = client.get("/api/day", params={"date": "2024-06-15"}, headers=alice[0])
    assert day.status_code == 200
    assert day.json()["quote"] == {"text": expected, "source": "fallback"}
