import pytest

from uk_invest.comparison.breakeven import SEARCH_MAX, SEARCH_MIN, cost_difference, find_breakeven, search_grid
from uk_invest.models import BrokerFeeProfile, Percentage, Tier, Tiered


def _bare_broker(name, schedule):
    return BrokerFeeProfile(
        name=name,
        slug=name.lower(),
        category="percentage",
        accounts=("isa",),
        investment_types=("etf",),
        platform_fee=schedule,
    )


def test_flat_versus_percentage_breakeven(broker, make_profile):
    value = find_breakeven(broker("Interactive Investor"), broker("Vanguard Investor"), make_profile())
    assert value is not None
    assert 10000 < value < 100000
    # 71.88 / 0.15%
    assert value == pytest.approx(47920, abs=10)


def test_costs_match_at_breakeven(broker, make_profile):
    a, b = broker("Interactive Investor"), broker("Vanguard Investor")
    profile = make_profile()
    value = find_breakeven(a, b, profile)
    assert abs(cost_difference(a, b, profile, value)) < 0.05


def test_no_breakeven_when_one_broker_is_always_cheaper(broker, make_profile):
    assert find_breakeven(broker("InvestEngine"), broker("Interactive Investor"), make_profile()) is None


def test_no_breakeven_for_identical_brokers(broker, make_profile):
    aj = broker("AJ Bell")
    assert find_breakeven(aj, aj, make_profile()) is None


def test_no_breakeven_for_nested_tiered_schedules(broker, make_profile):
    profile = make_profile(investment_types=("funds",))
    assert find_breakeven(broker("Hargreaves Lansdown"), broker("AJ Bell"), profile) is None


def test_breakeven_with_sipp_is_positive_when_found(broker, make_profile):
    profile = make_profile(accounts=("sipp",))
    value = find_breakeven(broker("Interactive Investor"), broker("AJ Bell"), profile)
    assert value is None or value > 0


def test_reports_first_crossing_only(make_profile):
    # Costs cross at ~£66,667 and again at £200,000
    a = _bare_broker("A", Percentage(rate=0.0005, flat_extra=100))
    b = _bare_broker("B", Tiered(tiers=(Tier(0.002, up_to=100000), Tier(0.0, above=100000))))
    profile = make_profile(trading_frequency="set_and_forget")
    value = find_breakeven(a, b, profile)
    # Rounded costs agree to the penny within a few pounds of the crossing
    assert 66000 < value < 67500
    assert abs(cost_difference(a, b, profile, value)) < 0.02


def test_search_grid_is_log_spaced():
    grid = search_grid()
    assert len(grid) == 240
    assert grid[0] == SEARCH_MIN
    assert grid[-1] == pytest.approx(SEARCH_MAX)
    assert all(lo < hi for lo, hi in zip(grid, grid[1:]))
    assert grid[1] / grid[0] == pytest.approx(grid[-1] / grid[-2])
