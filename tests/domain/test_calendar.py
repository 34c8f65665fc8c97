"""Calendar layout of fiscal periods."""

from datetime import date, timedelta

import pytest
from hypothesis import given
from hypothesis import strategies as st

from finance_periods.domain.calendar import month_span, monthly_spans, period_name, year_bounds


def test_twelve_periods_cover_the_year():
    spans = monthly_spans(2025)

    assert [p for p, _, _ in spans] == list(range(1, 13))
    assert spans[0][1] == date(2025, 1, 1)
    assert spans[-1][2] == date(2025, 12, 31)


def test_february_in_leap_year():
    assert month_span(2024, 2) == (date(2024, 2, 1), date(2024, 2, 29))
    assert month_span(2025, 2) == (date(2025, 2, 1), date(2025, 2, 28))


def test_year_bounds():
    assert year_bounds(2025) == (date(2025, 1, 1), date(2025, 12, 31))


def test_period_name_is_zero_padded():
    assert period_name(2025, 3) == "2025-03"
    assert period_name(2025, 12) == "2025-12"


@pytest.mark.parametrize("period", [0, 13, -1])
def test_period_number_out_of_range(period):
    with pytest.raises(ValueError):
        month_span(2025, period)


@given(st.integers(min_value=1900, max_value=2999))
def test_periods_are_contiguous_without_gaps(year):
    spans = monthly_spans(year)
    start, end = year_bounds(year)

    assert len(spans) == 12
    assert spans[0][1] == start
    assert spans[-1][2] == end
    for (_, _, prev_end), (_, next_start, _) in zip(spans, spans[1:]):
        assert next_start == prev_end + timedelta(days=1)
    assert sum((e - s).days + 1 for _, s, e in spans) == (end - start).days + 1
