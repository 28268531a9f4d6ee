from datetime import timedelta

import pytest

from kangal.durations import parse_duration


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("1m", timedelta(minutes=1)),
        ("0", timedelta(0)),
        ("1h30m", timedelta(hours=1, minutes=30)),
        ("1.5s", timedelta(seconds=1.5)),
        ("-2s", timedelta(seconds=-2)),
        ("+3h", timedelta(hours=3)),
        ("300ms", timedelta(milliseconds=300)),
        ("10us", timedelta(microseconds=10)),
        ("5s", timedelta(seconds=5)),
    ],
)
def test_parse_valid(text, expected):
    assert parse_duration(text) == expected


@pytest.mark.parametrize("text", ["1d", "", "1", ".s", "-", "abc", "1h2", "9999999999999h"])
def test_parse_invalid(text):
    with pytest.raises(ValueError):
        parse_duration(text)


def test_unknown_unit_is_named_in_message():
    with pytest.raises(ValueError, match='unknown unit "d"'):
        parse_duration("1d")


def test_components_add_up():
    assert parse_duration("1m1s") == parse_duration("1m") + parse_duration("1s")