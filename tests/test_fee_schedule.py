import math

import pytest

from uk_invest.fees.composer import compute_cost
from uk_invest.fees.describe import describe_fee_schedule, format_money, format_rate, summarise_fee_schedule
from uk_invest.fees.schedule import accumulate_tiers, clamp_value, evaluate_fee_schedule, round_money
from uk_invest.models import BrokerFeeProfile, Fixed, Percentage, Thresholded, Tier, UserProfile


def test_fixed_fee_returns_exact_amount():
    assert evaluate_fee_schedule(Fixed(71.88), 100000) == pytest.approx(71.88)


@pytest.mark.parametrize("value", [0, 1, 25000, 1_000_000])
def test_fixed_fee_is_constant_in_value(value):
    assert evaluate_fee_schedule(Fixed(36), value) == 36


def test_missing_schedule_costs_nothing():
    assert evaluate_fee_schedule(None, 100000) == 0


def test_percentage_fee_basic():
    assert evaluate_fee_schedule(Percentage(rate=0.0025), 100000) == pytest.approx(250)


def test_percentage_fee_with_cap():
    assert evaluate_fee_schedule(Percentage(rate=0.0015, cap=375), 500000) == pytest.approx(375)


def test_percentage_fee_with_minimum():
    assert evaluate_fee_schedule(Percentage(rate=0.0015, minimum=12), 5000) == pytest.approx(12)


def test_percentage_fee_with_flat_extra():
    assert evaluate_fee_schedule(Percentage(rate=0.0025, flat_extra=12), 10000) == pytest.approx(37)


def test_percentage_cap_is_never_exceeded():
    schedule = Percentage(rate=0.004, minimum=20, cap=100)
    for value in [0, 100, 5000, 24999, 25000, 25001, 1e6, 1e9]:
        assert evaluate_fee_schedule(schedule, value) <= 100


def test_aj_bell_tiered_fee(broker):
    schedule = broker("AJ Bell").platform_fee
    assert evaluate_fee_schedule(schedule, 100000) == pytest.approx(250)
    assert evaluate_fee_schedule(schedule, 300000) == pytest.approx(675)
    assert evaluate_fee_schedule(schedule, 600000) == pytest.approx(875)


def test_tiered_fee_is_non_decreasing(broker):
    schedule = broker("Hargreaves Lansdown").platform_fee
    previous = 0.0
    for value in range(0, 3_000_001, 25_000):
        fee = evaluate_fee_schedule(schedule, value)
        assert fee >= previous
        previous = fee


def test_vanguard_thresholded_fee(broker):
    schedule = broker("Vanguard Investor").platform_fee
    assert evaluate_fee_schedule(schedule, 20000) == pytest.approx(48)
    assert evaluate_fee_schedule(schedule, 32000) == pytest.approx(48)
    assert evaluate_fee_schedule(schedule, 100000) == pytest.approx(150)
    assert evaluate_fee_schedule(schedule, 300000) == pytest.approx(375)


def test_fidelity_thresholded_fee(broker):
    schedule = broker("Fidelity").platform_fee
    assert evaluate_fee_schedule(schedule, 20000) == pytest.approx(90)
    assert evaluate_fee_schedule(schedule, 100000) == pytest.approx(350)


def test_thresholded_fee_at_threshold_is_flat_amount():
    schedule = Thresholded(below_threshold=10000, below_amount=30, tiers=(Tier(0.01, above=0),))
    assert evaluate_fee_schedule(schedule, 10000) == 30
    assert evaluate_fee_schedule(schedule, 10001) == pytest.approx(100.01)


def test_open_ended_tier_without_rate_stops_safely():
    tiers = (Tier(0.0025, up_to=250000), Tier(None, above=250000))
    assert accumulate_tiers(tiers, 300000) == pytest.approx(625)


def test_open_ended_tier_with_nan_rate_stops_safely():
    tiers = (Tier(0.001, up_to=100000), Tier(float("nan"), above=100000))
    assert accumulate_tiers(tiers, 150000) == pytest.approx(100)


def test_malformed_bounded_tier_is_skipped():
    tiers = (
        Tier(0.002, up_to=100000),
        Tier(float("nan"), up_to=200000),
        Tier(0.001, above=200000),
    )
    # the bad band charges nothing and the rest falls to the open-ended band
    assert accumulate_tiers(tiers, 300000) == pytest.approx(200 + 200)


@pytest.mark.parametrize("value", [-5000, float("nan"), float("inf"), None])
def test_bad_portfolio_values_are_clamped(value):
    assert clamp_value(value) == 0
    assert evaluate_fee_schedule(Percentage(rate=0.0025), value) == 0


def test_unknown_schedule_object_costs_nothing():
    assert evaluate_fee_schedule(object(), 100000) == 0


def test_round_money_never_negative():
    assert round_money(-3.2) == 0
    assert round_money(float("nan")) == 0
    assert round_money(119.70000000000002) == 119.7
    assert math.copysign(1, round_money(-0.0)) == 1


def test_describe_tiered_fee(broker):
    text = describe_fee_schedule(broker("AJ Bell").platform_fee, 300000)
    assert text.startswith("First £250k × 0.25% = £625")
    assert text.endswith("Above £250k × 0.10% = £50")


def test_describe_thresholded_fee_below_threshold(broker):
    text = describe_fee_schedule(broker("Vanguard Investor").platform_fee, 20000)
    assert text == "Below £32,000: £48 flat"


def test_describe_percentage_notes_minimum_and_cap():
    assert "(min £12)" in describe_fee_schedule(Percentage(rate=0.0015, minimum=12), 5000)
    assert "capped at £45" in describe_fee_schedule(Percentage(rate=0.0035, cap=45), 30000)


def test_summarise_fee_schedule():
    assert summarise_fee_schedule(Fixed(0)) == "Free (£0)"
    assert summarise_fee_schedule(Fixed(36)) == "£36.00 per year"
    assert summarise_fee_schedule(None) == "N/A"


def test_format_money():
    assert format_money(1234) == "£1,234"
    assert format_money(1234.5) == "£1,234.50"
    assert format_money(float("nan")) == "£0"


@pytest.mark.parametrize("rate", [float("nan"), float("inf")])
def test_non_finite_percentage_rate_costs_only_the_minimum(rate):
    broker = BrokerFeeProfile(
        name="Odd Rate",
        slug="odd-rate",
        category="percentage",
        accounts=("isa",),
        investment_types=("etf",),
        platform_fee=Percentage(rate=rate, minimum=10),
    )
    result = compute_cost(broker, UserProfile(portfolio_value=50000))
    assert result.platform_fee == 10
    assert result.breakdown.platform_fee.formula == "£50,000 × 0% (min £10)"


def test_format_rate_handles_non_finite_rates():
    assert format_rate(0.0025) == "0.25%"
    assert format_rate(float("nan")) == "0%"
    assert format_rate(float("-inf")) == "0%"
