"""Project-native typed exceptions for lot-engine failures.

Exceptions in this module are batch-fatal: they abort the computation that
raised them. Advisory conditions (unmatched sells in collect mode, position
discrepancies, unavailable conversions) are returned as plain records instead.
"""

from __future__ import annotations


class LedgerError(Exception):
    """Base exception for all lot-engine failures."""


class FixedPointError(LedgerError, ValueError):
    """Malformed fixed-point decimal text or out-of-range micro values."""


class LedgerFatalError(LedgerError):
    """Base exception for conditions that abort a lot computation pass."""


class InsufficientLotsError(LedgerFatalError, ValueError):
    """Sell quantity exceeds the open lots available to match it.

    Usually signals missing historical buys, for example a buy that happened
    before the statement window began.

    Attributes:
        symbol: Ticker symbol of the unmatched sell.
        unmatched_quantity: Quantity left over after exhausting all open lots.
        account_id: Account whose FIFO queue ran out.
        trade_id: Identifier of the sell trade that could not be matched.
    """

    def __init__(
        self,
        symbol: str,
        unmatched_quantity,
        account_id: str | None = None,
        trade_id: str | None = None,
    ):
        super().__init__(
            f"insufficient lots for symbol={symbol} account={account_id} "
            f"trade={trade_id}: unmatched quantity {unmatched_quantity}"
        )
        self.symbol = symbol
        self.unmatched_quantity = unmatched_quantity
        self.account_id = account_id
        self.trade_id = trade_id


class InvalidTradeSideError(LedgerFatalError, ValueError):
    """Trade carries neither a buy nor a sell side.

    Attributes:
        trade_id: Identifier of the offending trade.
    """

    def __init__(self, trade_id: str):
        super().__init__(f"trade {trade_id} has unspecified side")
        self.trade_id = trade_id


class InvalidDateError(LedgerFatalError, ValueError):
    """Date value is missing or is not a calendar date.

    Attributes:
        value: Offending value.
    """

    def __init__(self, message: str, value: object = None):
        super().__init__(message)
        self.value = value


class ZeroQuantityLotError(LedgerFatalError, RuntimeError):
    """A zero-quantity lot survived FIFO processing, which indicates an engine bug."""
