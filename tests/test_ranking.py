import pytest

from uk_invest.comparison.ranking import rank_brokers, recommendation_reason, score_broker
from uk_invest.fees.composer import compute_cost


def test_customer_service_priority_scores_rating(broker, make_profile):
    profile = make_profile(priorities=("customer_service",))
    assert score_broker(broker("Hargreaves Lansdown"), profile) == 40


def test_lowest_fees_alone_adds_no_preference_score(broker, make_profile):
    assert score_broker(broker("Hargreaves Lansdown"), make_profile()) == 0


def test_drawdown_priority(broker, make_profile):
    profile = make_profile(priorities=("drawdown",))
    assert score_broker(broker("AJ Bell"), profile) == 20
    assert score_broker(broker("InvestEngine"), profile) == 0


@pytest.mark.parametrize(
    "fee_model, name, expected",
    [
        ("zero_fee", "InvestEngine", 40),
        ("zero_fee", "AJ Bell", -15),
        ("flat_fee", "Interactive Investor", 35),
        ("flat_fee", "AJ Bell", -10),
        ("percentage_fee", "AJ Bell", 35),
        ("percentage_fee", "Trading 212", -10),
        ("direct_fee", "AJ Bell", 40),
        ("direct_fee", "InvestEngine", -20),
        ("direct_fee", "Lightyear", -15),
    ],
)
def test_fee_model_preference(broker, make_profile, fee_model, name, expected):
    assert score_broker(broker(name), make_profile(fee_model=fee_model)) == expected


def test_cheapest_eligible_broker_ranks_first(brokers, make_profile):
    ranked = rank_brokers(brokers, make_profile())
    top = ranked[0]
    assert top.rank == 1
    assert top.eligible
    assert top.cost.total_cost == 0
    assert top.blended_score == pytest.approx(80.0)


def test_ineligible_brokers_sort_last_without_rank(brokers, make_profile):
    ranked = rank_brokers(brokers, make_profile(investment_types=("funds",)))
    flags = [r.eligible for r in ranked]
    assert flags == sorted(flags, reverse=True)
    assert False in flags
    eligible = [r for r in ranked if r.eligible]
    assert [r.rank for r in eligible] == list(range(1, len(eligible) + 1))
    assert all(r.rank is None for r in ranked if not r.eligible)


def test_blended_scores_descend_among_eligible(brokers, make_profile):
    ranked = rank_brokers(brokers, make_profile(portfolio_value=150000, priorities=("customer_service",)))
    scores = [r.blended_score for r in ranked if r.eligible]
    assert scores == sorted(scores, reverse=True)


def test_every_broker_is_ranked(brokers, make_profile):
    ranked = rank_brokers(brokers, make_profile(accounts=("isa", "sipp")))
    assert len(ranked) == len(brokers)
    assert {r.broker.slug for r in ranked} == {b.slug for b in brokers}


def test_recommendation_reason(broker, make_profile):
    profile = make_profile()
    investengine = broker("InvestEngine")
    reason = recommendation_reason(investengine, compute_cost(investengine, profile), profile)
    assert reason == "zero total fees and free ETF trading on your £50k portfolio"


def test_recommendation_reason_for_flat_fee_on_large_portfolio(broker, make_profile):
    profile = make_profile(portfolio_value=200000)
    ii = broker("Interactive Investor")
    reason = recommendation_reason(ii, compute_cost(ii, profile), profile)
    assert reason.startswith("flat fee saves money on larger portfolios and widest investment range")
    assert reason.endswith("on your £200k portfolio")
