"""Regression tests for holdings overview and lot list assembly."""

from __future__ import annotations

import logging
from datetime import date

import pytest

from holdings_engine.config import ClassificationConfig, SymbolClassification
from holdings_engine.domain import (
    ASSET_CATEGORY_BOND,
    ASSET_CATEGORY_CASH,
    FIXED_ZERO,
    CashPosition,
    DiscrepancyKind,
    ExchangeRate,
    InsufficientLotsError,
    ReportedPosition,
    Trade,
    TradeSide,
    fixed_parse,
)
from holdings_engine.fx import FxRateStore, InMemoryFxRateLoader
from holdings_engine.ledger import (
    HoldingsService,
    UnmatchedSellPolicy,
    holdings_compute_lot_totals,
    holdings_compute_totals,
)

_AS_OF = date(2024, 6, 1)
_BOND_SYMBOL = "T 2 1/2"


def _trade(
    trade_id: str,
    symbol: str,
    side: TradeSide,
    trade_date: date,
    quantity: str,
    price: str,
    account_id: str = "U1",
    currency_code: str = "USD",
    asset_category: str = "STK",
) -> Trade:
    return Trade(
        trade_id=trade_id,
        account_id=account_id,
        symbol=symbol,
        side=side,
        trade_date=trade_date,
        quantity=fixed_parse(quantity),
        price=fixed_parse(price),
        currency_code=currency_code,
        asset_category=asset_category,
    )


def _reported(
    symbol: str,
    quantity: str,
    cost: str,
    market: str,
    account_id: str = "U1",
    currency_code: str = "USD",
    asset_category: str = "STK",
) -> ReportedPosition:
    return ReportedPosition(
        symbol=symbol,
        account_id=account_id,
        quantity=fixed_parse(quantity),
        cost_basis_price=fixed_parse(cost),
        market_price=fixed_parse(market),
        currency_code=currency_code,
        asset_category=asset_category,
    )


def _trades() -> list[Trade]:
    return [
        _trade("a1", "AAPL", TradeSide.BUY, date(2023, 1, 3), "10", "100"),
        _trade("a2", "AAPL", TradeSide.BUY, date(2024, 2, 1), "5", "120"),
        _trade("a3", "AAPL", TradeSide.SELL, date(2024, 6, 1), "-12", "150"),
        _trade("a4", "AAPL", TradeSide.BUY, date(2022, 5, 1), "2", "130", account_id="U2"),
        _trade("s1", "SHOP", TradeSide.BUY, date(2024, 1, 10), "10", "80", currency_code="CAD"),
        _trade("b1", _BOND_SYMBOL, TradeSide.BUY, date(2020, 1, 1), "10000", "99.5", asset_category=ASSET_CATEGORY_BOND),
        _trade("fx1", "EUR.USD", TradeSide.SELL, date(2024, 3, 1), "-500", "1.08", asset_category=ASSET_CATEGORY_CASH),
    ]


def _reported_positions() -> list[ReportedPosition]:
    return [
        _reported("AAPL", "3", "120", "180"),
        _reported("AAPL", "2", "130", "180", account_id="U2"),
        _reported("SHOP", "11", "80", "100", currency_code="CAD"),
        _reported(_BOND_SYMBOL, "10000", "99.5", "101.5", asset_category=ASSET_CATEGORY_BOND),
        _reported("USD", "1500", "1", "1", asset_category=ASSET_CATEGORY_CASH),
    ]


def _cash_positions() -> list[CashPosition]:
    return [
        CashPosition(account_id="U1", currency_code="USD", balance=fixed_parse("1000")),
        CashPosition(account_id="U2", currency_code="usd", balance=fixed_parse("500")),
        CashPosition(account_id="U1", currency_code="EUR", balance=fixed_parse("100")),
        CashPosition(account_id="U1", currency_code="CHF", balance=FIXED_ZERO),
    ]


def _service(policy: UnmatchedSellPolicy = UnmatchedSellPolicy.FAIL_FAST) -> HoldingsService:
    store = FxRateStore(
        loader=InMemoryFxRateLoader([ExchangeRate(date(2024, 5, 31), "CAD", "USD", fixed_parse("0.75"))])
    )
    classification = ClassificationConfig(
        symbol_classifications={"AAPL": SymbolClassification(category="EQUITY", type="STOCK", sector="TECH", geo="US")},
        cash_adjustments={"USD": fixed_parse("250")},
    )
    return HoldingsService(
        converter=store,
        classification=classification,
        unmatched_sell_policy=policy,
        today_provider=lambda: _AS_OF,
    )


def test_ledger_holdings_overview_combines_accounts_and_converts_values() -> None:
    """Build combined holdings with reporting-currency values and gain buckets.

    Returns:
        None: Assertions validate per-holding values, ordering and classification.

    Raises:
        AssertionError: Raised when assembly deviates from expected holdings.
    """

    result = _service().holdings_build_overview(_trades(), _reported_positions(), _cash_positions(), as_of=_AS_OF)

    assert [holding.symbol for holding in result.holdings] == [
        "AAPL",
        "SHOP",
        _BOND_SYMBOL,
        "EUR",
        "USD",
        "USD ADJUSTMENT",
    ]

    aapl = result.holdings[0]
    assert aapl.position == fixed_parse("5")
    assert aapl.average_price == fixed_parse("124")
    assert aapl.last_price == fixed_parse("180")
    assert aapl.market_value_reporting == fixed_parse("900")
    assert aapl.short_term_gain_reporting == fixed_parse("180")
    assert aapl.long_term_gain_reporting == fixed_parse("100")
    assert aapl.unrealized_pnl_reporting == fixed_parse("280")
    assert aapl.realized_pnl_reporting == fixed_parse("560")
    assert (aapl.category, aapl.type, aapl.sector, aapl.geo) == ("EQUITY", "STOCK", "TECH", "US")

    shop = result.holdings[1]
    assert shop.currency_code == "CAD"
    assert shop.last_price == fixed_parse("100")
    assert shop.last_price_reporting == fixed_parse("75")
    assert shop.average_price_reporting == fixed_parse("60")
    assert shop.market_value_reporting == fixed_parse("750")
    assert shop.unrealized_pnl_reporting == fixed_parse("150")
    assert shop.realized_pnl_reporting == FIXED_ZERO
    assert shop.category == ""


def test_ledger_holdings_overview_divides_bond_values_by_one_hundred() -> None:
    result = _service().holdings_build_overview(_trades(), _reported_positions(), _cash_positions(), as_of=_AS_OF)

    bond = next(holding for holding in result.holdings if holding.symbol == _BOND_SYMBOL)
    assert bond.market_value_reporting == fixed_parse("10150")
    assert bond.long_term_gain_reporting == fixed_parse("200")
    assert bond.short_term_gain_reporting == FIXED_ZERO


def test_ledger_holdings_overview_keeps_stcg_plus_ltcg_equal_to_unrealized() -> None:
    result = _service().holdings_build_overview(_trades(), _reported_positions(), _cash_positions(), as_of=_AS_OF)

    for holding in result.holdings:
        if holding.unrealized_pnl_reporting is None:
            continue
        assert holding.short_term_gain_reporting + holding.long_term_gain_reporting == holding.unrealized_pnl_reporting


def test_ledger_holdings_overview_builds_cash_rows_and_advisories(caplog: pytest.LogCaptureFixture) -> None:
    """Aggregate cash per currency, add adjustments and flag unconvertible balances.

    Returns:
        None: Assertions validate cash rows, discrepancies and conversion advisories.

    Raises:
        AssertionError: Raised when cash rows or advisories are wrong.
    """

    with caplog.at_level(logging.WARNING, logger="holdings_engine.ledger.holdings_service"):
        result = _service().holdings_build_overview(_trades(), _reported_positions(), _cash_positions(), as_of=_AS_OF)

    cash_rows = {holding.symbol: holding for holding in result.holdings if holding.category == ASSET_CATEGORY_CASH}
    assert set(cash_rows) == {"EUR", "USD", "USD ADJUSTMENT"}
    assert cash_rows["USD"].position == fixed_parse("1500")
    assert cash_rows["USD"].market_value_reporting == fixed_parse("1500")
    assert cash_rows["USD"].last_price_reporting == fixed_parse("1")
    assert cash_rows["USD"].unrealized_pnl_reporting == FIXED_ZERO
    assert cash_rows["USD ADJUSTMENT"].market_value_reporting == fixed_parse("250")
    assert cash_rows["EUR"].market_value_reporting is None
    assert cash_rows["EUR"].last_price_reporting is None

    assert [(item.symbol, item.currency_code) for item in result.conversion_unavailable] == [("EUR", "EUR")]
    assert "conversion unavailable symbol=EUR" in caplog.text

    assert [(item.kind, item.symbol) for item in result.position_discrepancies] == [
        (DiscrepancyKind.QUANTITY, "SHOP"),
    ]
    assert result.unmatched_sells == ()


def test_ledger_holdings_totals_sum_available_reporting_values() -> None:
    result = _service().holdings_build_overview(_trades(), _reported_positions(), _cash_positions(), as_of=_AS_OF)

    totals = holdings_compute_totals(result.holdings)

    assert totals.market_value == fixed_parse("13550")
    assert totals.unrealized_pnl == fixed_parse("630")
    assert totals.short_term_gain == fixed_parse("330")
    assert totals.long_term_gain == fixed_parse("300")
    assert totals.display_values() == ("$13,550.00", "$630.00", "$330.00", "$300.00")


def test_ledger_holdings_overview_flags_unconvertible_security() -> None:
    """Leave reporting values unset when a security currency has no rate."""

    trades = [_trade("g1", "VOD", TradeSide.BUY, date(2024, 1, 2), "100", "0.7", currency_code="GBP")]
    reported = [_reported("VOD", "100", "0.7", "0.72", currency_code="GBP")]

    result = _service().holdings_build_overview(trades, reported, as_of=_AS_OF)

    vod = result.holdings[0]
    assert vod.last_price == fixed_parse("0.72")
    assert vod.last_price_reporting is None
    assert vod.average_price_reporting is None
    assert vod.market_value_reporting is None
    assert vod.unrealized_pnl_reporting is None
    assert [item.symbol for item in result.conversion_unavailable] == ["VOD", "VOD"]


def test_ledger_holdings_overview_converts_realized_gain_at_trade_date_rates() -> None:
    """Value realized proceeds at the close-date rate and cost at the open-date rate.

    Returns:
        None: Assertions validate dated conversion and the latest-rate fallback.

    Raises:
        AssertionError: Raised when realized P&L ignores historical rates.
    """

    trades = [
        _trade("s1", "SHOP", TradeSide.BUY, date(2024, 1, 10), "10", "80", currency_code="CAD"),
        _trade("s2", "SHOP", TradeSide.SELL, date(2024, 4, 1), "-4", "100", currency_code="CAD"),
    ]
    reported = [_reported("SHOP", "6", "80", "100", currency_code="CAD")]
    dated_rates = [
        ExchangeRate(date(2024, 4, 1), "CAD", "USD", fixed_parse("0.73")),
        ExchangeRate(date(2024, 5, 31), "CAD", "USD", fixed_parse("0.75")),
    ]

    open_rate = ExchangeRate(date(2024, 1, 10), "CAD", "USD", fixed_parse("0.74"))
    service = HoldingsService(converter=FxRateStore(loader=InMemoryFxRateLoader([open_rate, *dated_rates])))
    fallback_service = HoldingsService(converter=FxRateStore(loader=InMemoryFxRateLoader(dated_rates)))

    shop = service.holdings_build_overview(trades, reported, as_of=_AS_OF).holdings[0]
    fallback_shop = fallback_service.holdings_build_overview(trades, reported, as_of=_AS_OF).holdings[0]

    assert shop.realized_pnl_reporting == fixed_parse("55.2")
    assert fallback_shop.realized_pnl_reporting == fixed_parse("52")


def test_ledger_holdings_overview_uses_today_provider_by_default() -> None:
    trades = [_trade("a1", "AAPL", TradeSide.BUY, date(2023, 6, 1), "1", "100")]
    reported = [_reported("AAPL", "1", "100", "110")]

    result = _service().holdings_build_overview(trades, reported)

    assert result.holdings[0].long_term_gain_reporting == fixed_parse("10")


def test_ledger_holdings_overview_propagates_or_collects_unmatched_sells() -> None:
    trades = [
        _trade("s1", "MSFT", TradeSide.SELL, date(2024, 1, 2), "-5", "300"),
        _trade("a1", "AAPL", TradeSide.BUY, date(2024, 1, 2), "1", "100"),
    ]
    reported = [_reported("AAPL", "1", "100", "110")]

    with pytest.raises(InsufficientLotsError):
        _service().holdings_build_overview(trades, reported, as_of=_AS_OF)

    result = _service(UnmatchedSellPolicy.COLLECT).holdings_build_overview(trades, reported, as_of=_AS_OF)

    assert [holding.symbol for holding in result.holdings] == ["AAPL", "USD ADJUSTMENT"]
    assert [holding.symbol for holding in result.holdings if holding.category != ASSET_CATEGORY_CASH] == ["AAPL"]
    assert [item.symbol for item in result.unmatched_sells] == ["MSFT"]


def test_ledger_holdings_list_lots_values_each_lot() -> None:
    """List per-lot native and reporting-currency valuation in FIFO output order.

    Returns:
        None: Assertions validate per-lot rows and lot totals.

    Raises:
        AssertionError: Raised when lot rows deviate from expected values.
    """

    service = _service()

    aapl_lots = service.holdings_list_lots("AAPL", _trades(), _reported_positions())

    assert [(lot.account_id, lot.open_date) for lot in aapl_lots] == [
        ("U2", date(2022, 5, 1)),
        ("U1", date(2024, 2, 1)),
    ]
    assert aapl_lots[0].value == fixed_parse("360")
    assert aapl_lots[0].pnl == fixed_parse("100")
    assert aapl_lots[1].pnl_reporting == fixed_parse("180")
    assert holdings_compute_lot_totals(aapl_lots) == (fixed_parse("280"), fixed_parse("900"))

    shop_lot = service.holdings_list_lots("SHOP", _trades(), _reported_positions())[0]
    assert shop_lot.value == fixed_parse("1000")
    assert shop_lot.pnl == fixed_parse("200")
    assert shop_lot.average_price_reporting == fixed_parse("60")
    assert shop_lot.pnl_reporting == fixed_parse("150")
    assert shop_lot.value_reporting == fixed_parse("750")

    bond_lot = service.holdings_list_lots(_BOND_SYMBOL, _trades(), _reported_positions())[0]
    assert bond_lot.value == fixed_parse("10150")
    assert bond_lot.pnl == fixed_parse("200")


def test_ledger_holdings_list_lots_without_market_price_leaves_valuation_empty() -> None:
    trades = [_trade("a1", "ZZZ", TradeSide.BUY, date(2024, 1, 2), "4", "25")]

    lots = _service().holdings_list_lots("ZZZ", trades, [])

    assert lots[0].average_price == fixed_parse("25")
    assert lots[0].average_price_reporting == fixed_parse("25")
    assert lots[0].pnl is None
    assert lots[0].value_reporting is None
    assert holdings_compute_lot_totals(lots) == (FIXED_ZERO, FIXED_ZERO)


def test_ledger_holdings_service_rejects_invalid_construction() -> None:
    with pytest.raises(ValueError, match="converter must not be None"):
        HoldingsService(converter=None)
    with pytest.raises(ValueError, match="long_term_holding_days must be positive"):
        HoldingsService(converter=FxRateStore(loader=InMemoryFxRateLoader()), long_term_holding_days=0)
