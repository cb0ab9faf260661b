"""
Portfolio metrics from priced balances and signature history

Every score is clamped to [0, 100]. Daily return, trend, volatility and
alpha are placeholders until historical prices are wired in.
"""

import logging
import math
from typing import Dict, List, Optional, Sequence

from features.models import (
    PerformanceMetrics, PortfolioMetrics, SubMetrics, TokenBalance
)

logger = logging.getLogger(__name__)

TOP_HOLDINGS_LIMIT = 5

DEFAULT_PERFORMANCE = PerformanceMetrics(
    daily=0.0,
    vs_cmc100=0.0,
    trend_score=50,
    volatility_score=50,
    alpha_score=50
)


def clamp_score(value: Optional[float]) -> float:
    """Clamp to [0, 100]; None/NaN/inf collapse to 0"""
    if value is None or not math.isfinite(value):
        return 0.0
    return max(0.0, min(100.0, value))


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def short_mint(mint: str) -> str:
    return f"{mint[:4]}...{mint[-4:]}"


class MetricsCalculator:
    """Pure scoring over (balances, transactions)"""

    def calculate_metrics(
        self,
        balances: Sequence[TokenBalance],
        transactions: Sequence[Dict]
    ) -> PortfolioMetrics:
        diversification = self.calculate_diversification_score(balances)
        risk = self.calculate_risk_score(balances)
        gas_score = self.calculate_gas_score(transactions)
        liquidity = self.calculate_liquidity_score(balances)
        performance = self.calculate_performance_metrics(balances, transactions)
        protocol_score = self.calculate_protocol_score(transactions)
        yield_score = self.calculate_yield_score(balances)

        components = [
            c for c in (diversification, risk, performance.daily, liquidity)
            if c is not None and math.isfinite(c)
        ]
        defai_score = (
            round_half_up(sum(components) / len(components)) if components else 0
        )

        return PortfolioMetrics(
            defai_score=clamp_score(defai_score),
            risk=risk,
            entry_score=self.calculate_entry_score(transactions),
            exit_score=self.calculate_exit_score(transactions),
            gas_score=gas_score,
            trend_score=clamp_score(performance.trend_score),
            volatility_score=clamp_score(performance.volatility_score),
            alpha_score=clamp_score(performance.alpha_score),
            protocol_score=protocol_score,
            yield_score=yield_score,
            contract_score=self.calculate_contract_score(balances),
            liquidity=liquidity,
            diversification=diversification,
            metrics=SubMetrics(
                capital_management=clamp_score(round_half_up((diversification + gas_score) / 2)),
                degen_index=clamp_score(100 - risk),
                defi_savviness=clamp_score(round_half_up((protocol_score + yield_score) / 2))
            ),
            performance_daily=performance.daily,
            performance_vs_cmc100=performance.vs_cmc100,
            top_holdings=self.get_top_holdings(balances)
        )

    # ------------------------------------------------------------------
    # Portfolio composition
    # ------------------------------------------------------------------

    def calculate_diversification_score(self, balances: Sequence[TokenBalance]) -> float:
        """
        Herfindahl-Hirschman based diversification.

        HHI ranges from 1/n (equal weights) to 1 (single asset); the score
        maps that range onto 100..0.
        """
        if not balances:
            return 0.0

        total_value = sum(b.value for b in balances)
        if total_value <= 0:
            return 0.0

        n = len(balances)
        if n == 1:
            return 0.0

        hhi = sum((b.value / total_value) ** 2 for b in balances)
        min_hhi = 1 / n
        return clamp_score((1 - hhi) / (1 - min_hhi) * 100)

    def calculate_risk_score(self, balances: Sequence[TokenBalance]) -> float:
        """Weighted blend of concentration, size and asset count"""
        if not balances:
            return 0.0

        total_value = sum(b.value for b in balances)
        if total_value <= 0:
            return 0.0

        concentration_risk = max(b.value for b in balances) / total_value * 100
        size_risk = min(100, total_value / 10000 * 100)
        asset_count_risk = min(100, len(balances) / 10 * 100)

        return clamp_score(
            (100 - concentration_risk) * 0.4
            + size_risk * 0.3
            + asset_count_risk * 0.3
        )

    def calculate_liquidity_score(self, balances: Sequence[TokenBalance]) -> float:
        # $1k per point, saturating at $100k
        if not balances:
            return 0.0
        total_value = sum(b.value for b in balances)
        return clamp_score(total_value / 1000)

    def get_top_holdings(self, balances: Sequence[TokenBalance]) -> tuple:
        ranked = sorted(balances, key=lambda b: b.value, reverse=True)
        return tuple(
            b.symbol or short_mint(b.mint) for b in ranked[:TOP_HOLDINGS_LIMIT]
        )

    # ------------------------------------------------------------------
    # Activity heuristics
    # ------------------------------------------------------------------

    def calculate_gas_score(self, transactions: Sequence[Dict]) -> float:
        if not transactions:
            return 0.0
        return clamp_score(min(100, 85 + len(transactions) / 100 * 15))

    def calculate_protocol_score(self, transactions: Sequence[Dict]) -> float:
        return clamp_score(min(100, 50 + len(transactions) / 50 * 25))

    # Fixed thresholds until real on-chain analysis replaces them
    def calculate_entry_score(self, transactions: Sequence[Dict]) -> float:
        return 70.0 if transactions else 50.0

    def calculate_exit_score(self, transactions: Sequence[Dict]) -> float:
        return 75.0 if transactions else 50.0

    def calculate_yield_score(self, balances: Sequence[TokenBalance]) -> float:
        return 70.0 if balances else 50.0

    def calculate_contract_score(self, balances: Sequence[TokenBalance]) -> float:
        return 80.0 if balances else 50.0

    # ------------------------------------------------------------------
    # Performance (not yet computed)
    # ------------------------------------------------------------------

    def calculate_performance_metrics(
        self,
        balances: Sequence[TokenBalance],
        transactions: Sequence[Dict]
    ) -> PerformanceMetrics:
        """Never raises; falls back to DEFAULT_PERFORMANCE"""
        try:
            historical_prices = self.get_historical_prices([b.mint for b in balances])
            daily = self.calculate_daily_return(historical_prices)
            if not math.isfinite(daily):
                raise ValueError(f"non-finite daily return: {daily}")

            return PerformanceMetrics(
                daily=daily,
                vs_cmc100=3.2,
                trend_score=80,
                volatility_score=60,
                alpha_score=75 if transactions else 50
            )
        except Exception as e:
            logger.error(f"Error calculating performance metrics: {e}")
            return DEFAULT_PERFORMANCE

    def get_historical_prices(self, mints: List[str]) -> Dict[str, List[float]]:
        # TODO: fetch daily closes per mint once a historical price feed is chosen
        return {}

    def calculate_daily_return(self, historical_prices: Dict[str, List[float]]) -> float:
        return 0.0
