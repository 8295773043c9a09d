"""Property-based tests for booking rule invariants."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from hypothesis import assume, given
from hypothesis import strategies as st

from venuehub.services.booking_rules import duration_hours, intervals_overlap, price_for_interval

BASE = datetime(2030, 1, 1, tzinfo=timezone.utc)
TOLERANCE = Decimal("1e-15")

# Strategies for generating test data
minute_offsets = st.integers(min_value=0, max_value=60 * 24 * 14)
lengths = st.integers(min_value=1, max_value=60 * 24)
hourly_rates = st.decimals(min_value=0, max_value=10000, places=2, allow_nan=False, allow_infinity=False)


def interval(start_minute: int, length: int) -> tuple[datetime, datetime]:
    start = BASE + timedelta(minutes=start_minute)
    return start, start + timedelta(minutes=length)


@given(a=minute_offsets, a_len=lengths, b=minute_offsets, b_len=lengths)
def test_overlap_is_symmetric(a, a_len, b, b_len):
    first = interval(a, a_len)
    second = interval(b, b_len)

    assert intervals_overlap(*first, *second) == intervals_overlap(*second, *first)


@given(a=minute_offsets, a_len=lengths, b=minute_offsets, b_len=lengths)
def test_overlap_matches_shared_minutes(a, a_len, b, b_len):
    """Two minute-aligned intervals overlap exactly when they share a minute."""
    shared = set(range(a, a + a_len)) & set(range(b, b + b_len))

    assert intervals_overlap(*interval(a, a_len), *interval(b, b_len)) == bool(shared)


@given(a=minute_offsets, a_len=lengths, b_len=lengths)
def test_adjacent_intervals_never_overlap(a, a_len, b_len):
    first = interval(a, a_len)
    second = interval(a + a_len, b_len)

    assert not intervals_overlap(*first, *second)
    assert not intervals_overlap(*second, *first)


@given(a=minute_offsets, a_len=lengths)
def test_interval_overlaps_itself(a, a_len):
    assert intervals_overlap(*interval(a, a_len), *interval(a, a_len))


@given(rate=hourly_rates, a=minute_offsets, length=lengths, factor=st.integers(min_value=1, max_value=24))
def test_price_is_linear_in_duration(rate, a, length, factor):
    assume(length * factor <= 60 * 24 * 7)

    single = price_for_interval(rate, *interval(a, length))
    scaled = price_for_interval(rate, *interval(a, length * factor))

    assert abs(scaled - single * factor) <= TOLERANCE


@given(rate=hourly_rates, a=minute_offsets, first=lengths, second=lengths)
def test_price_is_additive(rate, a, first, second):
    start, middle = interval(a, first)
    _, end = interval(a, first + second)

    split = price_for_interval(rate, start, middle) + price_for_interval(rate, middle, end)

    assert abs(split - price_for_interval(rate, start, end)) <= TOLERANCE


@given(rate=hourly_rates, a=minute_offsets, length=lengths)
def test_price_is_never_negative(rate, a, length):
    assert price_for_interval(rate, *interval(a, length)) >= 0


@given(hours=st.integers(min_value=1, max_value=24))
def test_whole_hours_are_exact(hours):
    assert duration_hours(*interval(0, hours * 60)) == Decimal(hours)
