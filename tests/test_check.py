import pytest

from uk_invest.comparison.check import MAX_ALTERNATIVES, compound_savings, quick_check


def test_current_broker_rank_and_saving(brokers):
    result = quick_check(brokers, 50000, "hargreaves-lansdown")
    assert result.portfolio_value == 50000
    cost = result.current[1]
    # ISA cap of £150 plus 12 regular purchases at £1.50
    assert cost.total_cost == 168
    assert result.cheapest[1].total_cost == 0
    assert result.annual_saving == 168
    assert result.rank == result.cheaper_count + 1
    assert result.rank > 1
    assert result.compound_saving > 168 * 20


def test_alternatives_exclude_current_broker(brokers):
    result = quick_check(brokers, 50000, "hargreaves-lansdown")
    slugs = [b.slug for b, _ in result.alternatives]
    assert len(slugs) == MAX_ALTERNATIVES
    assert "hargreaves-lansdown" not in slugs


def test_costs_sorted_and_limited_to_isa_etf_brokers(brokers):
    result = quick_check(brokers, 50000)
    totals = [cost.total_cost for _, cost in result.costs]
    assert totals == sorted(totals)
    assert all("isa" in b.accounts and "etf" in b.investment_types for b, _ in result.costs)


@pytest.mark.parametrize("slug", [None, "no-such-broker"])
def test_without_a_known_current_broker(brokers, slug):
    result = quick_check(brokers, 50000, slug)
    assert result.current is None
    assert result.rank is None
    assert result.annual_saving == 0
    assert result.alternatives == result.costs[:MAX_ALTERNATIVES]


def test_cheapest_broker_saves_nothing(brokers):
    result = quick_check(brokers, 50000, "investengine")
    assert result.annual_saving == 0
    assert result.compound_saving == 0


def test_compound_savings():
    assert compound_savings(100, years=1, growth_rate=0.07) == pytest.approx(107)
    assert compound_savings(100, years=2, growth_rate=0.0) == pytest.approx(200)
    assert compound_savings(0) == 0
