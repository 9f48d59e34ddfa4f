# backend/portfolio_dashboard/services/equity/positions.py
"""
Current positions derived from transaction history.

Replays BUY and SELL transactions per ticker to produce what is held now,
what it cost, and what has been realized along the way.

Cost basis methods:
    FIFO:    sells consume the oldest lots first
    LIFO:    sells consume the newest lots first
    AVERAGE: sells remove cost at the running average cost per share

Calculations:
    BUY cost       = quantity x price + fees
    SELL proceeds  = quantity x price
    realized gain  = proceeds - cost of the shares sold - fees
    DIVIDEND       = quantity x price (or quantity when no price) added to
                     realized gain; shares unchanged

Other transaction types do not change positions, matching the equity
engine. Sells beyond the shares held are clamped to the shares held.

Usage:
    positions = compute_positions(transactions, CostBasisMethod.FIFO)
    for p in positions:
        print(p.ticker, p.shares, p.cost_basis, p.realized_gain)
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from portfolio_dashboard.services.constants import CURRENCY_PRECISION, SHARE_PRECISION, ZERO
from portfolio_dashboard.services.equity.types import Position, Transaction, TransactionType

logger = logging.getLogger(__name__)


class CostBasisMethod(str, enum.Enum):
    """How sold shares are matched against purchase lots."""

    FIFO = "FIFO"
    LIFO = "LIFO"
    AVERAGE = "AVERAGE"


@dataclass
class CostBasisLot:
    """Shares bought in one transaction and their remaining cost."""

    bought_on: date
    shares: Decimal
    cost: Decimal


@dataclass(frozen=True)
class DerivedPosition:
    """
    A position rebuilt from transactions.

    Attributes:
        ticker: Canonical symbol
        shares: Shares held after all transactions
        cost_basis: Cost of the held shares (fees included)
        realized_gain: Gains from sells and dividends
        last_price: Price of the last BUY or SELL
    """

    ticker: str
    shares: Decimal
    cost_basis: Decimal
    realized_gain: Decimal
    last_price: Decimal | None = None

    @property
    def average_cost(self) -> Decimal:
        if self.shares <= 0:
            return ZERO
        return (self.cost_basis / self.shares).quantize(SHARE_PRECISION)

    def to_position(self, sector: str | None = None) -> Position:
        return Position(
            ticker=self.ticker,
            shares=self.shares,
            cost_basis=self.cost_basis.quantize(CURRENCY_PRECISION),
            sector=sector,
            last_price=self.last_price,
        )


@dataclass
class _Ledger:
    lots: list[CostBasisLot] = field(default_factory=list)
    shares: Decimal = ZERO
    cost: Decimal = ZERO
    realized: Decimal = ZERO
    last_price: Decimal | None = None

    def buy(self, tx: Transaction) -> None:
        cost = tx.quantity * tx.price + tx.fees
        self.lots.append(CostBasisLot(bought_on=tx.date, shares=tx.quantity, cost=cost))
        self.shares += tx.quantity
        self.cost += cost

    def sell(self, tx: Transaction, method: CostBasisMethod) -> None:
        quantity = tx.quantity
        if quantity > self.shares:
            logger.warning(
                f"{tx.ticker}: sell of {quantity} on {tx.date.isoformat()} exceeds "
                f"{self.shares} held, clamped"
            )
            quantity = self.shares
        if quantity <= 0:
            return

        if method == CostBasisMethod.AVERAGE:
            removed = self.cost * quantity / self.shares
        else:
            removed = self._consume_lots(quantity, newest_first=method == CostBasisMethod.LIFO)

        self.realized += quantity * tx.price - removed - tx.fees
        self.shares -= quantity
        self.cost = ZERO if self.shares == 0 else self.cost - removed

    def _consume_lots(self, quantity: Decimal, newest_first: bool) -> Decimal:
        order = reversed(self.lots) if newest_first else iter(self.lots)
        remaining = quantity
        removed = ZERO
        kept: list[CostBasisLot] = []

        for lot in order:
            if remaining <= 0:
                kept.append(lot)
                continue
            taken = min(lot.shares, remaining)
            cost_taken = lot.cost * taken / lot.shares
            removed += cost_taken
            remaining -= taken
            if taken < lot.shares:
                kept.append(CostBasisLot(lot.bought_on, lot.shares - taken, lot.cost - cost_taken))

        if newest_first:
            kept.reverse()
        self.lots = kept
        return removed


def compute_positions(
        transactions: Sequence[Transaction],
        method: CostBasisMethod = CostBasisMethod.FIFO,
        canonical: Callable[[str], str] | None = None,
) -> list[DerivedPosition]:
    """
    Rebuild open positions from transactions.

    Args:
        transactions: Transactions in any order
        method: Cost basis method for sells
        canonical: Maps a ticker to its canonical symbol (aliases)

    Returns:
        Positions with shares > 0, in order of first appearance
    """
    ledgers: dict[str, _Ledger] = {}

    # Same-day buys settle before same-day sells
    ordered = sorted(transactions, key=lambda t: (t.date, t.type == TransactionType.SELL))
    for tx in ordered:
        symbol = canonical(tx.ticker) if canonical else tx.ticker
        ledger = ledgers.setdefault(symbol, _Ledger())

        if tx.type == TransactionType.BUY:
            ledger.buy(tx)
            ledger.last_price = tx.price
        elif tx.type == TransactionType.SELL:
            ledger.sell(tx, method)
            ledger.last_price = tx.price
        elif tx.type == TransactionType.DIVIDEND:
            ledger.realized += tx.quantity * tx.price if tx.price is not None else tx.quantity

    positions = []
    for symbol, ledger in ledgers.items():
        if ledger.shares <= 0:
            logger.debug(f"{symbol}: position closed, realized {ledger.realized}")
            continue
        positions.append(DerivedPosition(
            ticker=symbol,
            shares=ledger.shares,
            cost_basis=ledger.cost,
            realized_gain=ledger.realized.quantize(CURRENCY_PRECISION),
            last_price=ledger.last_price,
        ))
    return positions

