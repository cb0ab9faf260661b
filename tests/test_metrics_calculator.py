"""
Tests for portfolio scoring.
"""

import math

import pytest

from features.metrics_calculator import (
    DEFAULT_PERFORMANCE, MetricsCalculator, clamp_score, round_half_up, short_mint
)
from features.models import TokenBalance


def balance(symbol, value, mint=None):
    mint = mint or f"{symbol}Mint1111111111111111111111111111"
    return TokenBalance(mint=mint, amount=1.0, symbol=symbol, price=value, value=value)


@pytest.fixture
def calculator():
    return MetricsCalculator()


class TestHelpers:

    @pytest.mark.parametrize("value,expected", [
        (-5, 0.0),
        (150, 100.0),
        (42.5, 42.5),
        (float('nan'), 0.0),
        (float('inf'), 0.0),
        (None, 0.0),
    ])
    def test_clamp_score(self, value, expected):
        assert clamp_score(value) == expected

    @pytest.mark.parametrize("value,expected", [(30.5, 31), (2.5, 3), (2.49, 2), (0, 0)])
    def test_round_half_up(self, value, expected):
        assert round_half_up(value) == expected

    def test_short_mint(self):
        assert short_mint("DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263") == "DezX...B263"


class TestDiversification:

    def test_two_assets(self, calculator):
        score = calculator.calculate_diversification_score([balance('A', 600), balance('B', 400)])
        assert score == pytest.approx(96)

    def test_equal_weights(self, calculator):
        balances = [balance(s, 250) for s in 'ABCD']
        assert calculator.calculate_diversification_score(balances) == pytest.approx(100)

    def test_single_asset(self, calculator):
        assert calculator.calculate_diversification_score([balance('A', 1000)]) == 0

    def test_zero_value(self, calculator):
        balances = [balance('A', 0), balance('B', 0)]
        assert calculator.calculate_diversification_score(balances) == 0

    def test_empty(self, calculator):
        assert calculator.calculate_diversification_score([]) == 0


class TestRiskAndLiquidity:

    def test_risk_blend(self, calculator):
        # concentration 60%, $1k total, 2 assets
        risk = calculator.calculate_risk_score([balance('A', 600), balance('B', 400)])
        assert risk == pytest.approx(40 * 0.4 + 10 * 0.3 + 20 * 0.3)

    def test_risk_saturates(self, calculator):
        balances = [balance(str(i), 10000) for i in range(12)]
        assert calculator.calculate_risk_score(balances) == pytest.approx(
            (100 - 100 / 12) * 0.4 + 30 + 30
        )

    def test_liquidity(self, calculator):
        assert calculator.calculate_liquidity_score([balance('A', 5000)]) == pytest.approx(5)
        assert calculator.calculate_liquidity_score([balance('A', 250000)]) == 100
        assert calculator.calculate_liquidity_score([]) == 0


class TestActivityScores:

    @pytest.mark.parametrize("count,gas,protocol", [
        (0, 0, 50),
        (20, 88, 60),
        (100, 100, 100),
    ])
    def test_gas_and_protocol(self, calculator, count, gas, protocol):
        txs = [{'signature': f"s{i}"} for i in range(count)]
        assert calculator.calculate_gas_score(txs) == pytest.approx(gas)
        assert calculator.calculate_protocol_score(txs) == pytest.approx(protocol)

    def test_placeholder_thresholds(self, calculator):
        txs = [{'signature': 's'}]
        assert calculator.calculate_entry_score(txs) == 70
        assert calculator.calculate_entry_score([]) == 50
        assert calculator.calculate_exit_score(txs) == 75
        assert calculator.calculate_exit_score([]) == 50
        assert calculator.calculate_yield_score([balance('A', 1)]) == 70
        assert calculator.calculate_yield_score([]) == 50
        assert calculator.calculate_contract_score([balance('A', 1)]) == 80
        assert calculator.calculate_contract_score([]) == 50


class TestTopHoldings:

    def test_top_five_stable(self, calculator):
        balances = [
            balance('LOW', 1),
            balance('TIE1', 50),
            balance('BIG', 900),
            balance('TIE2', 50),
            balance('MID', 100),
            balance('TIE3', 50),
            balance('TINY', 0.5),
        ]
        assert calculator.get_top_holdings(balances) == ('BIG', 'MID', 'TIE1', 'TIE2', 'TIE3')

    def test_fewer_than_five(self, calculator):
        assert calculator.get_top_holdings([balance('A', 1), balance('B', 2)]) == ('B', 'A')


class TestCalculateMetrics:

    def test_empty_portfolio(self, calculator):
        metrics = calculator.calculate_metrics([], [])

        assert metrics.defai_score == 0
        assert metrics.metrics.degen_index == 100
        assert metrics.metrics.defi_savviness == 50
        assert metrics.metrics.capital_management == 0
        assert metrics.top_holdings == ()
        assert metrics.comparison_percentile == 75

    def test_three_equal_holdings(self, calculator):
        balances = [balance(s, 1000) for s in ('A', 'B', 'C')]
        txs = [{'signature': f"s{i}"} for i in range(20)]

        metrics = calculator.calculate_metrics(balances, txs)

        # (100 + 44.67 + 0 + 3) / 4
        assert metrics.defai_score == 37
        assert metrics.diversification == pytest.approx(100)
        assert metrics.risk == pytest.approx(200 / 3 * 0.4 + 9 + 9)
        assert metrics.metrics.capital_management == 94
        assert metrics.metrics.defi_savviness == 65
        assert metrics.metrics.degen_index == pytest.approx(100 - metrics.risk)
        assert metrics.top_holdings == ('A', 'B', 'C')

    def test_placeholder_performance(self, calculator):
        metrics = calculator.calculate_metrics([balance('A', 10)], [{'signature': 's'}])

        assert metrics.performance_daily == 0
        assert metrics.performance_vs_cmc100 == pytest.approx(3.2)
        assert metrics.trend_score == 80
        assert metrics.volatility_score == 60
        assert metrics.alpha_score == 75

    def test_performance_failure_falls_back(self, calculator, monkeypatch):
        def boom(prices):
            raise RuntimeError("feed down")

        monkeypatch.setattr(calculator, 'calculate_daily_return', boom)

        assert calculator.calculate_performance_metrics([], []) == DEFAULT_PERFORMANCE

    def test_non_finite_daily_excluded(self, calculator, monkeypatch):
        monkeypatch.setattr(calculator, 'calculate_daily_return', lambda prices: float('nan'))
        balances = [balance('A', 500), balance('B', 500)]

        metrics = calculator.calculate_metrics(balances, [])

        assert metrics.performance_daily == 0
        assert math.isfinite(metrics.defai_score)

    @pytest.mark.parametrize("values", [
        [1e9],
        [1e9, 1, 1],
        [0.0001, 0.0002],
        [0, 5, 0],
    ])
    def test_scores_bounded(self, calculator, values):
        balances = [balance(f"T{i}", v) for i, v in enumerate(values)]
        txs = [{'signature': f"s{i}"} for i in range(250)]

        data = calculator.calculate_metrics(balances, txs).to_dict()
        scores = [v for k, v in data.items() if isinstance(v, (int, float)) and k != 'comparisonPercentile']
        scores += list(data['metrics'].values())

        for score in scores:
            assert math.isfinite(score)
            assert 0 <= score <= 100
