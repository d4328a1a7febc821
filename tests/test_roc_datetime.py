import pickle
from copy import copy, deepcopy
from datetime import (
    date as py_date,
    datetime as py_datetime,
    time as py_time,
    timedelta,
    timezone,
)

import pytest
import time_machine
from hypothesis import given
from hypothesis.strategies import datetimes, integers, sampled_from

from minguo import Kind, RangeError, RocDate, RocDateTime, Weekday

from .common import (
    AMS_TZ_POSIX,
    TPE_TZ_POSIX,
    AlwaysEqual,
    AlwaysLarger,
    AlwaysSmaller,
    NeverEqual,
    system_tz,
)

MAX_TICKS = 3_155_378_975_999_999_999
TICKS_PER_HOUR = 36_000_000_000
# 2024-05-10 00:00:00
TICKS_113_05_10 = 638_508_960_000_000_000
# 1970-01-01 as a Windows file time
FILE_TIME_1970 = 116_444_736_000_000_000


class TestInit:

    def test_args(self):
        d = RocDateTime(
            113, 5, 10, 14, 30, 45, millisecond=123, microsecond=456
        )
        assert d.year == 113
        assert d.ce_year == 2024
        assert d.month == 5
        assert d.day == 10
        assert d.hour == 14
        assert d.minute == 30
        assert d.second == 45
        assert d.millisecond == 123
        assert d.microsecond == 456
        assert d.nanosecond == 0
        assert d.kind is Kind.UNSPECIFIED

    def test_defaults(self):
        d = RocDateTime(113, 5, 10)
        assert (d.hour, d.minute, d.second, d.millisecond) == (0, 0, 0, 0)

    def test_kind(self):
        assert RocDateTime(113, 5, 10, kind=Kind.UTC).kind is Kind.UTC
        with pytest.raises(TypeError):
            RocDateTime(113, 5, 10, kind=1)  # type: ignore[arg-type]

    def test_years_before_roc_era(self):
        assert RocDateTime(0, 1, 1).ce_year == 1911
        assert RocDateTime(-1910, 1, 1) == RocDateTime.MIN

    @pytest.mark.parametrize(
        "args, kwargs",
        [
            ((113, 13, 1), {}),
            ((113, 2, 30), {}),
            ((113, 5, 10, 24), {}),
            ((113, 5, 10, 0, 60), {}),
            ((113, 5, 10, 0, 0, 60), {}),
            ((113, 5, 10), {"millisecond": 1_000}),
            ((113, 5, 10), {"microsecond": -1}),
            ((8089, 1, 1), {}),
            ((-1911, 12, 31), {}),
        ],
    )
    def test_invalid(self, args, kwargs):
        with pytest.raises(RangeError):
            RocDateTime(*args, **kwargs)


class TestTicks:

    def test_ticks(self):
        assert RocDateTime(113, 5, 10).ticks == TICKS_113_05_10
        assert RocDateTime.MIN.ticks == 0
        assert RocDateTime.MAX.ticks == MAX_TICKS

    def test_from_ticks(self):
        assert RocDateTime.from_ticks(TICKS_113_05_10) == RocDateTime(
            113, 5, 10
        )
        assert RocDateTime.from_ticks(0) == RocDateTime.MIN
        assert RocDateTime.from_ticks(MAX_TICKS) == RocDateTime.MAX
        assert RocDateTime.from_ticks(0).kind is Kind.UNSPECIFIED
        assert RocDateTime.from_ticks(0, Kind.UTC).kind is Kind.UTC

    def test_sub_microsecond(self):
        d = RocDateTime.from_ticks(TICKS_113_05_10 + 12_345)
        assert d.millisecond == 1
        assert d.microsecond == 234
        assert d.nanosecond == 500

    @pytest.mark.parametrize("ticks", [-1, MAX_TICKS + 1])
    def test_out_of_range(self, ticks):
        with pytest.raises(RangeError):
            RocDateTime.from_ticks(ticks)

    @given(integers(0, MAX_TICKS))
    def test_roundtrip(self, ticks):
        assert RocDateTime.from_ticks(ticks).ticks == ticks


class TestGregorian:

    def test_to_naive(self):
        d = RocDateTime(113, 5, 10, 1, 2, 3, millisecond=4, microsecond=5)
        assert d.to_gregorian() == py_datetime(2024, 5, 10, 1, 2, 3, 4_005)
        assert d.specify_kind(Kind.LOCAL).to_gregorian().tzinfo is None

    def test_to_aware(self):
        d = RocDateTime(113, 5, 10, 1, kind=Kind.UTC)
        assert d.to_gregorian() == py_datetime(
            2024, 5, 10, 1, tzinfo=timezone.utc
        )

    def test_truncates_ticks(self):
        d = RocDateTime.from_ticks(TICKS_113_05_10 + 19)
        assert d.to_gregorian() == py_datetime(2024, 5, 10, microsecond=1)

    def test_from_naive(self):
        d = RocDateTime.from_gregorian(py_datetime(2024, 5, 10, 8, 0, 0, 1))
        assert d == RocDateTime(113, 5, 10, 8, microsecond=1)
        assert d.kind is Kind.UNSPECIFIED
        d2 = RocDateTime.from_gregorian(py_datetime(2024, 5, 10), Kind.LOCAL)
        assert d2.kind is Kind.LOCAL

    def test_from_aware(self):
        d = RocDateTime.from_gregorian(
            py_datetime(2024, 5, 10, 8, tzinfo=timezone(timedelta(hours=8)))
        )
        assert d == RocDateTime(113, 5, 10)
        assert d.kind is Kind.UTC

    def test_from_date(self):
        d = RocDateTime.from_gregorian(py_date(2024, 5, 10))
        assert d == RocDateTime(113, 5, 10)

    def test_from_wrong_type(self):
        with pytest.raises(TypeError):
            RocDateTime.from_gregorian("2024-05-10")  # type: ignore[arg-type]

    @given(datetimes())
    def test_roundtrip(self, dt):
        assert RocDateTime.from_gregorian(dt).to_gregorian() == dt


def test_parts():
    d = RocDateTime(113, 5, 10, 14, 30, 45, millisecond=1, microsecond=2)
    assert d.date() == RocDate(113, 5, 10)
    assert d.time() == py_time(14, 30, 45, 1_002)
    assert d.time_of_day() == timedelta(
        hours=14, minutes=30, seconds=45, microseconds=1_002
    )
    assert d.day_of_week() is Weekday.FRIDAY
    assert d.day_of_year() == 131


class TestReplace:

    def test_fields(self):
        d = RocDateTime(113, 5, 10, 14, 30)
        assert d.replace(hour=9) == RocDateTime(113, 5, 10, 9, 30)
        assert d.replace(year=100) == RocDateTime(100, 5, 10, 14, 30)
        assert d.replace(kind=Kind.UTC).kind is Kind.UTC

    def test_keeps_kind(self):
        d = RocDateTime(113, 5, 10, kind=Kind.LOCAL)
        assert d.replace(day=1).kind is Kind.LOCAL

    def test_sub_second(self):
        d = RocDateTime.from_ticks(TICKS_113_05_10 + 1)
        assert d.replace(hour=1).nanosecond == 100
        assert d.replace(millisecond=3).nanosecond == 0
        assert d.replace(millisecond=3).millisecond == 3

    def test_invalid(self):
        d = RocDateTime(113, 5, 31)
        with pytest.raises(RangeError):
            d.replace(month=6)
        with pytest.raises(TypeError):
            d.replace(tzinfo=None)


class TestAdd:

    def test_calendar_units_first(self):
        d = RocDateTime(113, 1, 31, 12)
        assert d.add(months=1, hours=1.5) == RocDateTime(113, 2, 29, 13, 30)
        assert d.add(years=1, months=1) == RocDateTime(114, 2, 28, 12)

    def test_time_units(self):
        d = RocDateTime(113, 1, 1)
        assert d.add(weeks=1) == RocDateTime(113, 1, 8)
        assert d.add(days=1.5) == RocDateTime(113, 1, 2, 12)
        assert d.add(hours=-1.5) == RocDateTime(112, 12, 31, 22, 30)
        assert d.add(minutes=90) == RocDateTime(113, 1, 1, 1, 30)
        assert d.add(seconds=61) == RocDateTime(113, 1, 1, 0, 1, 1)
        assert d.add(milliseconds=5).millisecond == 5
        assert d.add(microseconds=7).microsecond == 7
        assert d.add(ticks=1).nanosecond == 100

    def test_fraction_is_truncated_to_ticks(self):
        d = RocDateTime(113, 1, 1)
        assert d.add(microseconds=0.25).ticks - d.ticks == 2
        assert d.subtract(microseconds=0.25).ticks - d.ticks == -2

    def test_keeps_kind(self):
        d = RocDateTime(113, 1, 1, kind=Kind.UTC)
        assert d.add(days=1).kind is Kind.UTC
        assert (d + timedelta(1)).kind is Kind.UTC

    def test_subtract(self):
        d = RocDateTime(113, 3, 31, 1)
        assert d.subtract(months=1, hours=2) == RocDateTime(113, 2, 28, 23)
        assert d.subtract(days=1, minutes=1) == RocDateTime(113, 3, 30, 0, 59)

    @pytest.mark.parametrize(
        "d, kwargs",
        [
            (RocDateTime.MAX, {"ticks": 1}),
            (RocDateTime.MAX, {"days": 1}),
            (RocDateTime.MAX, {"years": 1}),
            (RocDateTime.MIN, {"ticks": -1}),
            (RocDateTime.MIN, {"months": -1}),
        ],
    )
    def test_overflow(self, d, kwargs):
        with pytest.raises((OverflowError, ValueError)):
            d.add(**kwargs)


class TestOperators:

    def test_timedelta(self):
        d = RocDateTime(113, 5, 10, 12)
        assert d + timedelta(hours=13) == RocDateTime(113, 5, 11, 1)
        assert timedelta(hours=13) + d == RocDateTime(113, 5, 11, 1)
        assert d - timedelta(hours=13) == RocDateTime(113, 5, 9, 23)
        assert d + timedelta(microseconds=3) == RocDateTime(
            113, 5, 10, 12, microsecond=3
        )

    def test_difference(self):
        a = RocDateTime(113, 1, 2, 12)
        b = RocDateTime(113, 1, 1, kind=Kind.UTC)
        assert a - b == timedelta(days=1, hours=12)
        assert b - a == timedelta(days=-1, hours=-12)

    def test_difference_is_floored(self):
        a = RocDateTime.from_ticks(15)
        b = RocDateTime.from_ticks(0)
        assert a - b == timedelta(microseconds=1)
        assert b - a == timedelta(microseconds=-2)

    def test_overflow(self):
        with pytest.raises(OverflowError):
            RocDateTime.MAX + timedelta(microseconds=1)
        with pytest.raises(OverflowError):
            RocDateTime.MIN - timedelta(microseconds=1)

    def test_unsupported(self):
        d = RocDateTime(113, 5, 10)
        with pytest.raises(TypeError):
            d + 1  # type: ignore[operator]
        with pytest.raises(TypeError):
            d - RocDate(113, 5, 10)  # type: ignore[operator]


class TestKind:

    def test_specify_kind(self):
        d = RocDateTime(113, 5, 10, 8)
        local = d.specify_kind(Kind.LOCAL)
        assert local.kind is Kind.LOCAL
        assert local.hour == 8
        with pytest.raises(TypeError):
            d.specify_kind("local")  # type: ignore[arg-type]

    def test_to_local_time(self):
        with system_tz(TPE_TZ_POSIX):
            utc = RocDateTime(113, 5, 10, kind=Kind.UTC)
            local = utc.to_local_time()
            assert local == RocDateTime(113, 5, 10, 8)
            assert local.kind is Kind.LOCAL

            # unspecified is assumed to be UTC
            assert RocDateTime(113, 5, 10).to_local_time().hour == 8
            assert local.to_local_time() is local

    def test_to_universal_time(self):
        with system_tz(TPE_TZ_POSIX):
            local = RocDateTime(113, 5, 10, 8, kind=Kind.LOCAL)
            utc = local.to_universal_time()
            assert utc == RocDateTime(113, 5, 10)
            assert utc.kind is Kind.UTC

            # unspecified is assumed to be local
            assert RocDateTime(113, 5, 10, 8).to_universal_time().hour == 0
            assert utc.to_universal_time() is utc

    def test_dst(self):
        with system_tz(AMS_TZ_POSIX):
            winter = RocDateTime(113, 1, 10, 12, kind=Kind.UTC)
            summer = RocDateTime(113, 7, 10, 12, kind=Kind.UTC)
            assert winter.to_local_time().hour == 13
            assert summer.to_local_time().hour == 14

    def test_clamped_at_the_edges(self):
        with system_tz(TPE_TZ_POSIX):
            assert (
                RocDateTime.MIN.specify_kind(Kind.LOCAL).to_universal_time()
                == RocDateTime.MIN
            )
            assert (
                RocDateTime.MAX.specify_kind(Kind.UTC).to_local_time()
                == RocDateTime.MAX
            )


class TestBinary:

    def test_unspecified(self):
        d = RocDateTime(113, 5, 10)
        assert d.to_binary() == TICKS_113_05_10
        decoded = RocDateTime.from_binary(TICKS_113_05_10)
        assert decoded.kind is Kind.UNSPECIFIED

    def test_utc(self):
        d = RocDateTime(113, 5, 10, kind=Kind.UTC)
        assert d.to_binary() == TICKS_113_05_10 | (1 << 62)
        decoded = RocDateTime.from_binary(d.to_binary())
        assert decoded == d
        assert decoded.kind is Kind.UTC

    def test_local(self):
        with system_tz(TPE_TZ_POSIX):
            d = RocDateTime(113, 5, 10, 8, kind=Kind.LOCAL)
            data = d.to_binary()
            assert data < 0
            assert data + (1 << 64) == TICKS_113_05_10 | (1 << 63)
            decoded = RocDateTime.from_binary(data)
            assert decoded == d
            assert decoded.kind is Kind.LOCAL

    def test_local_with_dst(self):
        with system_tz(AMS_TZ_POSIX):
            for month in (1, 7):
                d = RocDateTime(113, month, 10, 12, kind=Kind.LOCAL)
                assert RocDateTime.from_binary(d.to_binary()) == d

    def test_local_near_minimum(self):
        with system_tz(TPE_TZ_POSIX):
            d = RocDateTime.MIN.specify_kind(Kind.LOCAL)
            assert RocDateTime.from_binary(d.to_binary()) == d

    @pytest.mark.parametrize(
        "data", [MAX_TICKS + 1, 1 << 63, -(1 << 63) - 1, (1 << 62) - 1]
    )
    def test_invalid(self, data):
        with pytest.raises(RangeError):
            RocDateTime.from_binary(data)

    @given(integers(0, MAX_TICKS), sampled_from([Kind.UNSPECIFIED, Kind.UTC]))
    def test_roundtrip(self, ticks, kind):
        d = RocDateTime.from_ticks(ticks, kind)
        decoded = RocDateTime.from_binary(d.to_binary())
        assert decoded.ticks == ticks
        assert decoded.kind is kind


class TestOADate:

    @pytest.mark.parametrize(
        "d, value",
        [
            (RocDateTime(-12, 12, 30), 0.0),
            (RocDateTime(-12, 12, 29, 6), -1.25),
            (RocDateTime(-12, 12, 31, 18), 1.75),
            (RocDateTime(113, 5, 10, 12), 45_422.5),
        ],
    )
    def test_roundtrip(self, d, value):
        assert d.to_oa_date() == value
        assert RocDateTime.from_oa_date(value) == d

    def test_minimum(self):
        assert RocDateTime.MIN.to_oa_date() == 0.0
        assert RocDateTime(-1811, 1, 1).to_oa_date() == -657_434.0
        with pytest.raises(OverflowError):
            RocDateTime(-1812, 12, 31).to_oa_date()

    def test_millisecond_precision(self):
        d = RocDateTime(113, 5, 10, 12, 30, 15, millisecond=250)
        assert RocDateTime.from_oa_date(d.to_oa_date()) == d

    def test_kind(self):
        assert RocDateTime.from_oa_date(1.0).kind is Kind.UNSPECIFIED

    @pytest.mark.parametrize("value", [2_958_466.0, -657_435.0, 1e10])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            RocDateTime.from_oa_date(value)


class TestFileTime:

    def test_utc(self):
        d = RocDateTime(59, 1, 1, kind=Kind.UTC)
        assert d.to_file_time_utc() == FILE_TIME_1970
        assert d.to_file_time() == FILE_TIME_1970
        decoded = RocDateTime.from_file_time_utc(FILE_TIME_1970)
        assert decoded == d
        assert decoded.kind is Kind.UTC

    def test_origin(self):
        assert RocDateTime.from_file_time_utc(0) == RocDateTime(-310, 1, 1)
        with pytest.raises(RangeError):
            RocDateTime(-311, 12, 31, kind=Kind.UTC).to_file_time_utc()

    def test_local(self):
        with system_tz(TPE_TZ_POSIX):
            local = RocDateTime(59, 1, 1, 8, kind=Kind.LOCAL)
            assert local.to_file_time() == FILE_TIME_1970
            assert local.to_file_time_utc() == FILE_TIME_1970
            decoded = RocDateTime.from_file_time(FILE_TIME_1970)
            assert decoded == local
            assert decoded.kind is Kind.LOCAL

    def test_unspecified(self):
        with system_tz(TPE_TZ_POSIX):
            d = RocDateTime(59, 1, 1, 8)
            # local time for to_file_time, UTC for to_file_time_utc
            assert d.to_file_time() == FILE_TIME_1970
            assert d.to_file_time_utc() == FILE_TIME_1970 + 8 * TICKS_PER_HOUR

    @pytest.mark.parametrize("value", [-1, MAX_TICKS])
    def test_invalid(self, value):
        with pytest.raises(RangeError):
            RocDateTime.from_file_time_utc(value)


class TestNow:

    def test_now(self):
        with system_tz(TPE_TZ_POSIX), time_machine.travel(
            py_datetime(2024, 5, 9, 16, 30, tzinfo=timezone.utc), tick=False
        ):
            utc_now = RocDateTime.utc_now()
            assert utc_now == RocDateTime(113, 5, 9, 16, 30)
            assert utc_now.kind is Kind.UTC

            now = RocDateTime.now()
            assert now == RocDateTime(113, 5, 10, 0, 30)
            assert now.kind is Kind.LOCAL

            today = RocDateTime.today()
            assert today == RocDateTime(113, 5, 10)
            assert today.kind is Kind.LOCAL


def test_unix_epoch():
    assert RocDateTime.UNIX_EPOCH == RocDateTime(59, 1, 1)
    assert RocDateTime.UNIX_EPOCH.kind is Kind.UTC
    assert RocDateTime.UNIX_EPOCH.to_gregorian() == py_datetime(
        1970, 1, 1, tzinfo=timezone.utc
    )


def test_repr():
    assert (
        repr(RocDateTime(113, 5, 10, 14, 30))
        == "RocDateTime(113/05/10 14:30:00)"
    )
    assert (
        repr(RocDateTime(113, 5, 10, 14, 30, millisecond=5))
        == "RocDateTime(113/05/10 14:30:00.005)"
    )
    assert (
        repr(RocDateTime(113, 5, 10, kind=Kind.UTC))
        == "RocDateTime(113/05/10 00:00:00 UTC)"
    )
    assert (
        repr(RocDateTime(113, 5, 10, kind=Kind.LOCAL))
        == "RocDateTime(113/05/10 00:00:00 Local)"
    )


def test_str():
    d = RocDateTime(113, 5, 10, 14, 30, millisecond=5)
    assert str(d) == "113/05/10 14:30:00"
    assert f"{d}" == "113/05/10 14:30:00"
    assert f"{d:yyy年MM月dd日 HH時mm分}" == "113年05月10日 14時30分"


def test_eq():
    d = RocDateTime(113, 1, 2, 3)
    same = RocDateTime(113, 1, 2, 3)
    other_kind = RocDateTime(113, 1, 2, 3, kind=Kind.UTC)
    different = RocDateTime(113, 1, 2, 3, microsecond=1)

    assert d == same
    assert d == other_kind
    assert not d == different
    assert not d == RocDate(113, 1, 2)  # type: ignore[comparison-overlap]

    assert d != different
    assert not d != same
    assert d != None  # noqa: E711

    assert hash(d) == hash(same)
    assert hash(d) == hash(other_kind)
    assert hash(d) != hash(different)

    assert d == AlwaysEqual()
    assert d != NeverEqual()
    assert not d == NeverEqual()
    assert not d != AlwaysEqual()


def test_comparison():
    d = RocDateTime(113, 1, 2, 3)
    same = RocDateTime(113, 1, 2, 3)
    bigger = RocDateTime.from_ticks(d.ticks + 1)
    smaller = RocDateTime(113, 1, 2, 2, 59, 59, millisecond=999)

    assert d <= same
    assert d <= bigger
    assert not d <= smaller
    assert d < bigger
    assert not d < same
    assert not d < smaller

    assert d >= same
    assert d >= smaller
    assert not d >= bigger
    assert d > smaller
    assert not d > same
    assert not d > bigger

    assert d < AlwaysLarger()
    assert d <= AlwaysLarger()
    assert not d > AlwaysLarger()
    assert not d >= AlwaysLarger()
    assert not d < AlwaysSmaller()
    assert not d <= AlwaysSmaller()
    assert d > AlwaysSmaller()
    assert d >= AlwaysSmaller()


def test_compare():
    a = RocDateTime(113, 1, 2, 3)
    assert RocDateTime.compare(a, RocDateTime(113, 1, 2, 4)) == -1
    assert RocDateTime.compare(a, a.specify_kind(Kind.UTC)) == 0
    assert RocDateTime.compare(a, RocDateTime(113, 1, 2)) == 1

    with pytest.raises(TypeError):
        RocDateTime.compare(a, RocDate(113, 1, 2))  # type: ignore[arg-type]


def test_pickling():
    d = RocDateTime.from_ticks(TICKS_113_05_10 + 1_234_567, Kind.UTC)
    loaded = pickle.loads(pickle.dumps(d))
    assert loaded == d
    assert loaded.ticks == d.ticks
    assert loaded.kind is Kind.UTC


def test_copy():
    d = RocDateTime(113, 5, 10)
    assert copy(d) is d
    assert deepcopy(d) is d


def test_singletons():
    assert RocDateTime.MIN.to_gregorian() == py_datetime(1, 1, 1)
    assert RocDateTime.MAX.to_gregorian() == py_datetime.max
    assert RocDateTime.MAX.nanosecond == 900


def test_cannot_subclass():
    with pytest.raises(TypeError):

        class Subclass(RocDateTime):  # type: ignore[misc]
            pass
