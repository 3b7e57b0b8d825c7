"""Invite code derivation tests."""
import pytest

from invite_codes import decode_invite_code, derive_invite_code, normalize_code


def test_known_date():
    assert derive_invite_code("2020-12-03") == "000C0ZCJ"


@pytest.mark.parametrize("day,code", [
    ("2024-02-14", "000C1TG6"),
    ("2023-01-01", "000C1LN9"),
    ("2025-01-01", "000C212T"),
    ("9999-12-31", "001NJ5Q7"),
])
def test_codes_are_eight_uppercase_chars(day, code):
    assert derive_invite_code(day) == code
    assert len(code) == 8


def test_same_date_same_code():
    assert derive_invite_code("2021-07-09") == derive_invite_code("2021-07-09")
    assert derive_invite_code("2021-07-09") != derive_invite_code("2021-07-10")


def test_decode_recovers_date():
    assert decode_invite_code("000C0ZCJ") == "2020-12-03"
    assert decode_invite_code(" 000c0zcj ") == "2020-12-03"
    assert decode_invite_code(derive_invite_code("0999-12-31")) == "0999-12-31"


@pytest.mark.parametrize("code", ["", "ABC", "ZZZZZZZZ", "00000000", "000C0ZC!", "000C0ZCJX"])
def test_decode_rejects_codes_not_from_a_date(code):
    assert decode_invite_code(code) is None


def test_decode_rejects_impossible_day():
    # 20230230 is not a real calendar day
    assert decode_invite_code(derive_invite_code("2023-02-30")) is None


def test_normalize():
    assert normalize_code("  abc12 ") == "ABC12"
    assert normalize_code(None) == ""
