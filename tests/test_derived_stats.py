from datetime import date

import pytest

from services.derived_stats import (
    POINTS,
    RELATIVE,
    DerivedStat,
    TimeSeriesPoint,
    dashboard_summary,
    format_change,
    latest_and_change,
    month_number,
)


def test_empty_and_single_point_series():
    assert latest_and_change([]) == DerivedStat(0, 0)
    assert latest_and_change([{"value": 70}]) == DerivedStat(70, 0)


def test_relative_change():
    stat = latest_and_change([{"value": 80}, {"value": 88}], mode=RELATIVE)

    assert stat.latest == 88
    assert stat.percent_change == pytest.approx(10)


def test_percentage_point_change():
    stat = latest_and_change([{"value": 80}, {"value": 88}], mode=POINTS)

    assert stat == DerivedStat(88, 8)


def test_only_last_two_points_matter_and_input_is_not_sorted():
    series = [TimeSeriesPoint("Jan", 2024, 500), TimeSeriesPoint("Mar", 2024, 50), TimeSeriesPoint("Feb", 2024, 100)]

    stat = latest_and_change(series)
    assert stat.latest == 100
    assert stat.percent_change == pytest.approx(100)


def test_zero_previous_value_yields_zero_change():
    assert latest_and_change([0, 25]) == DerivedStat(25, 0)
    assert latest_and_change([0, 25], mode=POINTS) == DerivedStat(25, 25)


def test_negative_change_and_plain_numbers():
    stat = latest_and_change([200, 150])
    assert stat.percent_change == pytest.approx(-25)


def test_unknown_mode_is_rejected():
    with pytest.raises(ValueError):
        latest_and_change([1, 2], mode="ratio")


def test_format_change():
    assert format_change(DerivedStat(88, 12.5)) == "+12.5%"
    assert format_change(DerivedStat(70, -2), POINTS) == "-2.0 pts"


@pytest.mark.parametrize(
    "value,expected",
    [(3, 3), ("3", 3), (" 12 ", 12), ("Mar", 3), ("march", 3), ("Sept", 9), ("DEC", 12)],
)
def test_month_number_accepts_numbers_and_names(value, expected):
    assert month_number(value) == expected


@pytest.mark.parametrize(
    "value",
    [0, 13, "13", "Ma", "", None, True, 2.5, "Smarch", float("inf"), float("nan"), "²", 10**400],
)
def test_month_number_rejects_invalid(value):
    assert month_number(value) is None


def test_dashboard_summary_cards():
    visitors = [
        {"domestic_visitors": 700, "international_visitors": 100},
        {"domestic_visitors": 800, "international_visitors": 200},
    ]
    occupancy = [{"rate": 80}, {"rate": 78}]
    spending = [{"amount": 1000}, {"amount": 1100}]
    flight_dates = [date(2024, 5, 14)] * 4 + [date(2024, 5, 15)] * 5

    cards = {card["title"]: card for card in dashboard_summary(visitors, occupancy, spending, flight_dates)}

    assert cards["Monthly Visitors"]["latest"] == 1000
    assert cards["Monthly Visitors"]["percent_change"] == 25
    assert cards["Occupancy Rate"]["change"] == "-2.0 pts"
    assert cards["Occupancy Rate"]["positive"] is False
    assert cards["Average Spend"]["change"] == "+10.0%"
    assert cards["Flight Arrivals"]["latest"] == 5
    assert cards["Flight Arrivals"]["percent_change"] == 25


def test_dashboard_summary_with_no_data():
    cards = dashboard_summary([], [], [], [])

    assert [card["latest"] for card in cards] == [0, 0, 0, 0]
    assert all(card["positive"] for card in cards)
