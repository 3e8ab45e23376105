import pytest

from uk_invest.fees.allocator import allocate_platform_fee, pooled_cap
from uk_invest.fees.schedule import evaluate_fee_schedule
from uk_invest.models import Percentage


@pytest.fixture
def tiered(broker):
    return broker("AJ Bell").platform_fee


def test_single_account_without_balances_matches_direct_evaluation(tiered):
    allocation = allocate_platform_fee(tiered, None, ["isa"], fund_share=1.0, caps={"isa": 42}, portfolio_value=100000)
    assert allocation.total == pytest.approx(evaluate_fee_schedule(tiered, 100000))
    assert allocation.per_account == {}


def test_single_account_without_balances_applies_cap(tiered):
    allocation = allocate_platform_fee(tiered, None, ["isa"], fund_share=0.0, caps={"isa": 42}, portfolio_value=100000)
    assert allocation.total == pytest.approx(42)


def test_isa_capped_gia_uncapped_with_balances(tiered):
    allocation = allocate_platform_fee(
        tiered,
        {"isa": 100000, "gia": 100000},
        ["isa", "gia"],
        fund_share=0.0,
        caps={"isa": 42},
    )
    assert allocation.total == pytest.approx(292)
    assert allocation.per_account["isa"].final == pytest.approx(42)
    assert allocation.per_account["isa"].base_fee == pytest.approx(250)
    assert allocation.per_account["gia"].final == pytest.approx(250)
    assert allocation.per_account["gia"].cap is None
    assert "capped at £42" in allocation.per_account["isa"].formula


def test_fund_portion_is_never_capped(tiered):
    allocation = allocate_platform_fee(
        tiered,
        {"isa": 100000, "gia": 100000},
        ["isa", "gia"],
        fund_share=0.5,
        caps={"isa": 42},
    )
    # ISA: 125 funds + min(125, 42); GIA: 250
    assert allocation.total == pytest.approx(417)
    assert allocation.per_account["isa"].fund_fee == pytest.approx(125)
    assert allocation.per_account["isa"].share_fee_raw == pytest.approx(125)


def test_fee_is_computed_on_combined_balances(broker):
    schedule = broker("Hargreaves Lansdown").platform_fee
    allocation = allocate_platform_fee(
        schedule,
        {"isa": 300000, "gia": 300000},
        ["isa", "gia"],
        fund_share=1.0,
        caps={"isa": 150},
    )
    # 250k at 0.35% + 350k at 0.25%, not twice the fee on 300k
    assert allocation.total == pytest.approx(875 + 875)


def test_zero_balance_accounts_are_left_out(tiered):
    allocation = allocate_platform_fee(
        tiered,
        {"isa": 100000, "gia": 0},
        ["isa", "gia"],
        fund_share=0.0,
        caps={"isa": 42},
    )
    assert allocation.total == pytest.approx(42)
    assert list(allocation.per_account) == ["isa"]


def test_no_funded_accounts_costs_nothing(tiered):
    allocation = allocate_platform_fee(tiered, {"isa": 0}, ["isa"], fund_share=0.0, caps={"isa": 42})
    assert allocation.total == 0


def test_pooled_cap_without_balances(tiered):
    allocation = allocate_platform_fee(
        tiered,
        None,
        ["isa", "sipp"],
        fund_share=0.0,
        caps={"isa": 42, "sipp": 120},
        portfolio_value=200000,
    )
    assert allocation.total == pytest.approx(162)


def test_gia_without_balances_disables_capping(tiered):
    allocation = allocate_platform_fee(
        tiered,
        None,
        ["isa", "gia"],
        fund_share=0.0,
        caps={"isa": 42},
        portfolio_value=200000,
    )
    assert allocation.total == pytest.approx(500)


def test_pooled_cap():
    caps = {"isa": 42, "sipp": 120}
    assert pooled_cap(caps, ["isa", "sipp"]) == 162
    assert pooled_cap(caps, ["isa", "gia"]) is None
    assert pooled_cap(caps, ["jisa"]) is None


def test_no_caps_means_plain_fee():
    allocation = allocate_platform_fee(
        Percentage(rate=0.0035),
        {"isa": 50000, "sipp": 50000},
        ["isa", "sipp"],
        fund_share=0.0,
    )
    assert allocation.total == pytest.approx(350)
    assert allocation.per_account == {}
