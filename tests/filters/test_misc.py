"""Тесты фильтров default и date."""

import datetime as dt

from lq.filters.misc import to_datetime
from lq.values import FALSE, IntegerValue, StringValue


class TestDefault:
    """Фильтр default."""

    def test_empty_values_take_fallback(self, apply_filter):
        for empty in (None, "", [], {}, False):
            assert apply_filter("default", empty, "x") == StringValue("x")

    def test_present_values_are_kept(self, apply_filter):
        assert apply_filter("default", "a", "x") == StringValue("a")
        assert apply_filter("default", 0, "x") == IntegerValue(0)

    def test_allow_false(self, apply_filter):
        assert apply_filter("default", False, "x", True) == FALSE
        assert apply_filter("default", None, "x", True) == StringValue("x")


class TestDate:
    """Фильтр date."""

    def test_unix_timestamp_is_utc(self, apply_filter):
        assert apply_filter("date", 0, "%Y-%m-%d %H:%M") == StringValue("1970-01-01 00:00")

    def test_numeric_string(self, apply_filter):
        assert apply_filter("date", "1700000000", "%Y") == StringValue("2023")

    def test_iso_date(self, apply_filter):
        assert apply_filter("date", "2024-03-05", "%d.%m.%Y") == StringValue("05.03.2024")

    def test_iso_with_zulu(self, apply_filter):
        assert apply_filter("date", "2024-03-05T10:20:30Z", "%H:%M") == StringValue("10:20")

    def test_named_month(self, apply_filter):
        assert apply_filter("date", "March 14, 2016", "%Y-%m-%d") == StringValue("2016-03-14")

    def test_now(self, apply_filter):
        assert apply_filter("date", "now", "%Y") == StringValue(str(dt.datetime.now().year))

    def test_unparseable_returned_unchanged(self, apply_filter):
        assert apply_filter("date", "someday", "%Y") == StringValue("someday")

    def test_empty_format_returns_input(self, apply_filter):
        assert apply_filter("date", 0, "") == IntegerValue(0)

    def test_to_datetime(self):
        assert to_datetime(StringValue("2020-01-02 03:04:05")) == dt.datetime(2020, 1, 2, 3, 4, 5)
        assert to_datetime(IntegerValue(0)).tzinfo == dt.timezone.utc
        assert to_datetime(FALSE) is None
