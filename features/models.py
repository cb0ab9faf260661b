"""
Portfolio data model
✅ Token balances and supply metadata
✅ Frozen metrics bundle with camelCase payload export
✅ Single boundary error type
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class ErrorCode(Enum):
    """Reasons surfaced to callers of the portfolio pipeline"""
    DATA_FETCH_ERROR = "DATA_FETCH_ERROR"
    HANDLER_ERROR = "HANDLER_ERROR"


class PortfolioError(Exception):
    """Only error type that leaves the pipeline boundary"""

    def __init__(self, message: str, code: ErrorCode, details: Any = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details

    def __repr__(self) -> str:
        return f"PortfolioError({self.message!r}, code={self.code.value})"


@dataclass
class TokenBalance:
    mint: str
    amount: float
    symbol: str
    price: float
    value: float


@dataclass
class TokenMetadata:
    """Supply info for a mint; market_cap/symbol are rarely available"""
    supply: float
    decimals: int
    market_cap: Optional[float] = None
    symbol: Optional[str] = None


@dataclass
class BalanceBatch:
    """Aggregated balances plus per-token failure messages"""
    balances: List[TokenBalance] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class PerformanceMetrics:
    daily: float
    vs_cmc100: float
    trend_score: float
    volatility_score: float
    alpha_score: float


@dataclass(frozen=True)
class SubMetrics:
    capital_management: float
    degen_index: float
    defi_savviness: float


@dataclass(frozen=True)
class PortfolioMetrics:
    """
    Composite wallet health profile.

    All scores are finite and within [0, 100]; only
    performance_daily / performance_vs_cmc100 are signed percentages.
    """
    defai_score: float
    risk: float
    entry_score: float
    exit_score: float
    gas_score: float
    trend_score: float
    volatility_score: float
    alpha_score: float
    protocol_score: float
    yield_score: float
    contract_score: float
    liquidity: float
    diversification: float
    metrics: SubMetrics
    performance_daily: float
    performance_vs_cmc100: float
    top_holdings: Tuple[str, ...] = ()
    ai_analysis: str = ''
    comparison_percentile: float = 75

    def to_dict(self) -> Dict:
        """Structured payload handed to hosts"""
        return {
            'defaiScore': self.defai_score,
            'risk': self.risk,
            'entryScore': self.entry_score,
            'exitScore': self.exit_score,
            'gasScore': self.gas_score,
            'trendScore': self.trend_score,
            'volatilityScore': self.volatility_score,
            'alphaScore': self.alpha_score,
            'protocolScore': self.protocol_score,
            'yieldScore': self.yield_score,
            'contractScore': self.contract_score,
            'liquidity': self.liquidity,
            'diversification': self.diversification,
            'metrics': {
                'capitalManagement': self.metrics.capital_management,
                'degenIndex': self.metrics.degen_index,
                'defiSavviness': self.metrics.defi_savviness,
            },
            'performance': {
                'daily': self.performance_daily,
                'vsCMC100': self.performance_vs_cmc100,
            },
            'topHoldings': list(self.top_holdings),
            'aiAnalysis': self.ai_analysis,
            'comparisonPercentile': self.comparison_percentile,
        }
