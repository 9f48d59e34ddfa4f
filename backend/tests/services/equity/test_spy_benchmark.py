# tests/services/equity/test_spy_benchmark.py
"""
Tests for the synthetic SPY benchmark (SPY closes at a constant 400).
"""

from datetime import date
from decimal import Decimal

from conftest import TODAY, buy, make_closes, sell
from portfolio_dashboard.services.equity.benchmark import SyntheticBenchmarkBuilder
from portfolio_dashboard.services.equity.types import Transaction, TransactionType
from portfolio_dashboard.services.market_data.price_store import PriceStore


class TestSyntheticBenchmark:
    """Tests for SyntheticBenchmarkBuilder.build()."""

    def test_buy_converted_to_spy_shares(self, price_store):
        builder = SyntheticBenchmarkBuilder(price_store)

        result = builder.build([buy(date(2024, 1, 10), "AAPL", "10", "100")], date(2024, 1, 2), TODAY)

        # One point per calendar day, January 2 through March 15
        assert len(result.points) == 74
        before, on_trade = result.points[7], result.points[8]
        assert before.date == date(2024, 1, 9)
        assert before.value == Decimal("0.00")
        assert on_trade.date == date(2024, 1, 10)
        assert on_trade.shares == Decimal("2.5")
        assert on_trade.value == Decimal("1000.00")
        assert result.status == "SPY benchmark built with 74 points from 1 trades"
        assert result.warnings == ()

    def test_fees_added_to_buy_and_deducted_from_sell(self, price_store):
        builder = SyntheticBenchmarkBuilder(price_store)

        result = builder.build(
            [
                buy(date(2024, 1, 10), "AAPL", "10", "100", fees="4"),
                sell(date(2024, 3, 11), "AAPL", "5", "120", fees="4"),
            ],
            date(2024, 1, 2),
            TODAY,
        )

        # 1004 / 400 = 2.51, then (600 - 4) / 400 = 1.49 sold
        assert result.points[-1].shares == Decimal("1.02")
        assert result.points[-1].value == Decimal("408.00")

    def test_sell_capped_at_benchmark_shares(self, price_store):
        builder = SyntheticBenchmarkBuilder(price_store)

        result = builder.build(
            [
                buy(date(2024, 1, 10), "AAPL", "1", "100"),
                sell(date(2024, 3, 11), "AAPL", "1", "1000"),
            ],
            date(2024, 1, 2),
            TODAY,
        )

        assert result.points[-1].value == Decimal("0.00")
        assert result.warnings == ("SELL AAPL on 2024-03-11 exceeds benchmark shares held; capped",)

    def test_trade_before_spy_history_skipped(self, price_store):
        builder = SyntheticBenchmarkBuilder(price_store)

        result = builder.build(
            [buy(date(2023, 12, 29), "AAPL", "1", "100"), buy(date(2024, 1, 6), "AAPL", "1", "100")],
            date(2023, 12, 28),
            date(2024, 1, 8),
        )

        assert result.points[0].date == date(2024, 1, 2)
        assert result.points[-1].shares == Decimal("0.25")
        assert result.warnings == ("No SPY close on or before 2023-12-29; BUY AAPL skipped",)

    def test_non_share_transactions_ignored(self, price_store):
        dividend = Transaction(
            date=date(2024, 1, 12),
            ticker="AAPL",
            type=TransactionType.DIVIDEND,
            quantity=Decimal("0"),
        )
        builder = SyntheticBenchmarkBuilder(price_store)

        result = builder.build([buy(date(2024, 1, 10), "AAPL", "4", "100"), dividend], date(2024, 1, 2), TODAY)

        assert result.points[-1].shares == Decimal("1")
        assert result.status.endswith("from 1 trades")

    def test_no_trades(self, price_store):
        result = SyntheticBenchmarkBuilder(price_store).build([], date(2024, 1, 2), TODAY)

        assert result.points == ()
        assert result.status == "No trades provided for SPY benchmark"

    def test_no_benchmark_data(self):
        store = PriceStore({"AAPL": make_closes(date(2024, 1, 2), TODAY)})

        result = SyntheticBenchmarkBuilder(store).build([buy(date(2024, 1, 10), "AAPL", "1", "100")], date(2024, 1, 2), TODAY)

        assert result.points == ()
        assert result.status == "No SPY price data available"

    def test_custom_ticker(self, price_store):
        builder = SyntheticBenchmarkBuilder(price_store, ticker="msft")

        result = builder.build([buy(date(2024, 1, 10), "AAPL", "2", "100")], date(2024, 1, 2), TODAY)

        assert builder.ticker == "MSFT"
        assert result.points[-1].shares == Decimal("1")
