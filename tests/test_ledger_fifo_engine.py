"""Regression tests for FIFO tax-lot matching and determinism."""

from __future__ import annotations

import logging
from datetime import date, datetime

import pytest

from holdings_engine.domain import (
    FixedDecimal,
    InsufficientLotsError,
    InvalidDateError,
    InvalidTradeSideError,
    LedgerFatalError,
    Trade,
    TradeSide,
    fixed_parse,
    fixed_sum,
)
from holdings_engine.ledger import UnmatchedSellPolicy, ledger_compute_tax_lots


def _trade(
    trade_id: str,
    side: TradeSide | str,
    trade_date: date,
    quantity: str,
    price: str,
    symbol: str = "AAPL",
    account_id: str = "U1",
) -> Trade:
    return Trade(
        trade_id=trade_id,
        account_id=account_id,
        symbol=symbol,
        side=side,
        trade_date=trade_date,
        quantity=fixed_parse(quantity),
        price=fixed_parse(price),
        currency_code="USD",
    )


def _aapl_partial_close_trades() -> list[Trade]:
    return [
        _trade("t1", TradeSide.BUY, date(2024, 1, 1), "10", "100"),
        _trade("t2", TradeSide.BUY, date(2024, 2, 1), "5", "120"),
        _trade("t3", TradeSide.SELL, date(2024, 6, 1), "-12", "150"),
    ]


def test_ledger_fifo_sell_consumes_oldest_lots_first() -> None:
    """Consume the first lot entirely and reduce the second lot on a partial close.

    Returns:
        None: Assertions validate remaining lot identity and quantity.

    Raises:
        AssertionError: Raised when FIFO matching consumes lots out of order.
    """

    result = ledger_compute_tax_lots(_aapl_partial_close_trades())

    assert len(result.tax_lots) == 1
    lot = result.tax_lots[0]
    assert lot.symbol == "AAPL"
    assert lot.account_id == "U1"
    assert lot.open_date == date(2024, 2, 1)
    assert lot.quantity == fixed_parse("3")
    assert lot.cost_basis_price == fixed_parse("120")
    assert result.unmatched_sells == ()


def test_ledger_fifo_output_is_deterministic_for_reordered_input() -> None:
    """Produce identical lots regardless of input order.

    Returns:
        None: Assertions validate replay-stable deterministic outputs.

    Raises:
        AssertionError: Raised when shuffled input changes computed lots.
    """

    trades = [
        _trade("b1", TradeSide.BUY, date(2024, 3, 1), "4", "10"),
        _trade("b2", TradeSide.BUY, date(2024, 3, 1), "6", "11"),
        _trade("s1", TradeSide.SELL, date(2024, 3, 1), "-5", "12"),
        _trade("m1", TradeSide.BUY, date(2024, 1, 5), "2", "300", symbol="MSFT"),
        _trade("m2", TradeSide.BUY, date(2024, 1, 5), "1", "301", symbol="MSFT", account_id="U2"),
    ]

    forward = ledger_compute_tax_lots(trades)
    backward = ledger_compute_tax_lots(list(reversed(trades)))

    assert forward == backward
    assert [(lot.symbol, lot.open_date, lot.account_id) for lot in forward.tax_lots] == [
        ("AAPL", date(2024, 3, 1), "U1"),
        ("MSFT", date(2024, 1, 5), "U1"),
        ("MSFT", date(2024, 1, 5), "U2"),
    ]
    assert forward.tax_lots[0].quantity == fixed_parse("5")
    assert forward.tax_lots[0].cost_basis_price == fixed_parse("11")


def test_ledger_fifo_same_day_buy_is_available_to_same_day_sell() -> None:
    """Match an intraday round trip even when the sell id sorts first."""

    trades = [
        _trade("a-sell", TradeSide.SELL, date(2024, 5, 2), "-3", "20"),
        _trade("z-buy", TradeSide.BUY, date(2024, 5, 2), "3", "19"),
    ]

    result = ledger_compute_tax_lots(trades)

    assert result.tax_lots == ()
    assert result.unmatched_sells == ()


def test_ledger_fifo_conserves_quantity_between_trades_and_lots() -> None:
    """Keep total lot quantity equal to net traded quantity when no sell is unmatched.

    Returns:
        None: Assertions validate quantity conservation.

    Raises:
        AssertionError: Raised when lot quantities drift from traded quantities.
    """

    trades = [
        _trade("1", TradeSide.BUY, date(2023, 1, 3), "1.5", "10"),
        _trade("2", TradeSide.BUY, date(2023, 2, 3), "2.25", "11"),
        _trade("3", TradeSide.SELL, date(2023, 3, 3), "-0.75", "12"),
        _trade("4", TradeSide.BUY, date(2023, 4, 3), "0.000001", "13"),
        _trade("5", TradeSide.SELL, date(2023, 5, 3), "-2", "14"),
    ]

    result = ledger_compute_tax_lots(trades)

    net_quantity = fixed_sum(trade.quantity for trade in trades)
    assert fixed_sum(lot.quantity for lot in result.tax_lots) == net_quantity
    assert all(lot.quantity.micros > 0 for lot in result.tax_lots)
    assert [lot.open_date for lot in result.tax_lots] == [date(2023, 2, 3), date(2023, 4, 3)]


def test_ledger_fifo_keeps_independent_queues_per_account() -> None:
    """Never match a sell in one account against lots held in another account."""

    trades = [
        _trade("1", TradeSide.BUY, date(2024, 1, 1), "10", "100", account_id="U1"),
        _trade("2", TradeSide.BUY, date(2024, 1, 2), "10", "110", account_id="U2"),
        _trade("3", TradeSide.SELL, date(2024, 1, 3), "-4", "120", account_id="U2"),
    ]

    result = ledger_compute_tax_lots(trades)

    quantities = {lot.account_id: lot.quantity for lot in result.tax_lots}
    assert quantities == {"U1": fixed_parse("10"), "U2": fixed_parse("6")}


def test_ledger_fifo_raises_insufficient_lots_for_sell_without_buy() -> None:
    """Fail fast when a sell has no open lots to match.

    Returns:
        None: Assertions validate the typed fatal error payload.

    Raises:
        AssertionError: Raised when the unmatched sell is not reported.
    """

    trades = [_trade("s1", TradeSide.SELL, date(2024, 1, 1), "-5", "100")]

    with pytest.raises(InsufficientLotsError, match="insufficient lots for symbol=AAPL") as error_info:
        ledger_compute_tax_lots(trades)

    assert error_info.value.symbol == "AAPL"
    assert error_info.value.unmatched_quantity == fixed_parse("5")
    assert error_info.value.account_id == "U1"
    assert error_info.value.trade_id == "s1"
    assert isinstance(error_info.value, LedgerFatalError)


def test_ledger_fifo_reports_only_the_shortfall_of_an_oversized_sell() -> None:
    trades = [
        _trade("b1", TradeSide.BUY, date(2024, 1, 1), "3", "100"),
        _trade("s1", TradeSide.SELL, date(2024, 1, 2), "-5", "100"),
    ]

    with pytest.raises(InsufficientLotsError) as error_info:
        ledger_compute_tax_lots(trades)

    assert error_info.value.unmatched_quantity == fixed_parse("2")


def test_ledger_fifo_collect_policy_skips_only_the_broken_queue(caplog: pytest.LogCaptureFixture) -> None:
    """Record an advisory and keep computing other queues under the collect policy.

    Returns:
        None: Assertions validate collected advisories and surviving lots.

    Raises:
        AssertionError: Raised when the collect policy aborts or leaks broken lots.
    """

    trades = [
        _trade("b1", TradeSide.BUY, date(2024, 1, 1), "2", "100"),
        _trade("s1", TradeSide.SELL, date(2024, 1, 2), "-3", "100"),
        _trade("b2", TradeSide.BUY, date(2024, 1, 3), "7", "100"),
        _trade("m1", TradeSide.BUY, date(2024, 1, 1), "4", "50", symbol="MSFT"),
    ]

    with caplog.at_level(logging.WARNING, logger="holdings_engine.ledger.fifo_engine"):
        result = ledger_compute_tax_lots(trades, UnmatchedSellPolicy.COLLECT)

    assert [lot.symbol for lot in result.tax_lots] == ["MSFT"]
    assert len(result.unmatched_sells) == 1
    unmatched_sell = result.unmatched_sells[0]
    assert unmatched_sell.symbol == "AAPL"
    assert unmatched_sell.trade_id == "s1"
    assert unmatched_sell.unmatched_quantity == fixed_parse("1")
    assert result.realized_gains == ()
    assert "unmatched sell account=U1 symbol=AAPL" in caplog.text


def test_ledger_fifo_skips_zero_quantity_trades() -> None:
    trades = [
        _trade("b0", TradeSide.BUY, date(2024, 1, 1), "0", "100"),
        _trade("s0", TradeSide.SELL, date(2024, 1, 2), "0", "100"),
    ]

    result = ledger_compute_tax_lots(trades)

    assert result.tax_lots == ()


def test_ledger_fifo_accepts_side_text_and_positive_sell_quantity() -> None:
    """Normalize text sides and treat sell quantity magnitude as the amount sold."""

    trades = [
        _trade("b1", "buy", date(2024, 1, 1), "10", "100"),
        _trade("s1", " SELL ", date(2024, 1, 2), "4", "100"),
    ]

    result = ledger_compute_tax_lots(trades)

    assert result.tax_lots[0].quantity == fixed_parse("6")


@pytest.mark.parametrize("side", [TradeSide.UNSPECIFIED, "HOLD", ""])
def test_ledger_fifo_rejects_unspecified_trade_side(side: TradeSide | str) -> None:
    trades = [_trade("bad-1", side, date(2024, 1, 1), "1", "100")]

    with pytest.raises(InvalidTradeSideError, match="trade bad-1 has unspecified side") as error_info:
        ledger_compute_tax_lots(trades)

    assert error_info.value.trade_id == "bad-1"


@pytest.mark.parametrize("trade_date", [None, "2024-01-01", datetime(2024, 1, 1, 12, 0)])
def test_ledger_fifo_rejects_non_calendar_trade_dates(trade_date: object) -> None:
    trades = [_trade("d1", TradeSide.BUY, trade_date, "1", "100")]

    with pytest.raises(InvalidDateError):
        ledger_compute_tax_lots(trades)


def test_ledger_fifo_lots_carry_trade_currency_and_exact_micros() -> None:
    trades = [_trade("b1", TradeSide.BUY, date(2024, 1, 1), "0.333333", "99.999999")]

    lot = ledger_compute_tax_lots(trades).tax_lots[0]

    assert lot.quantity == FixedDecimal(333_333)
    assert lot.cost_basis_price == FixedDecimal(99_999_999)
    assert lot.cost_basis_money().currency_code == "USD"


def test_ledger_fifo_records_realized_gain_per_matched_lot_slice() -> None:
    """Attribute sell proceeds to each consumed lot slice in FIFO order.

    Returns:
        None: Assertions validate realized-gain slices and totals.

    Raises:
        AssertionError: Raised when realized gains are misattributed.
    """

    result = ledger_compute_tax_lots(_aapl_partial_close_trades())

    assert [(gain.open_date, gain.quantity) for gain in result.realized_gains] == [
        (date(2024, 1, 1), fixed_parse("10")),
        (date(2024, 2, 1), fixed_parse("2")),
    ]
    assert [gain.realized_pnl_money().amount for gain in result.realized_gains] == [
        fixed_parse("500"),
        fixed_parse("60"),
    ]
    assert result.realized_gains[0].days_held == 152
    assert all(gain.trade_id == "t3" for gain in result.realized_gains)


def test_ledger_fifo_realized_bond_gain_uses_percentage_of_face_value() -> None:
    trades = [
        Trade("b1", "U1", "T 2", TradeSide.BUY, date(2023, 1, 2), fixed_parse("10000"), fixed_parse("98"), "USD", "BOND"),
        Trade("s1", "U1", "T 2", TradeSide.SELL, date(2024, 1, 2), fixed_parse("-5000"), fixed_parse("99.5"), "USD", "BOND"),
    ]

    realized_gain = ledger_compute_tax_lots(trades).realized_gains[0]

    assert realized_gain.is_bond is True
    assert realized_gain.realized_pnl_money().amount == fixed_parse("75")
