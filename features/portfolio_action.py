"""
Portfolio metrics action
Entry point used by hosts (Telegram bot, tests, other agents):
validate free-form text, run the pipeline, format the report.
"""

import logging
import re
from typing import Any, Awaitable, Callable, Dict, Optional

from cachetools import TTLCache

from features.metrics_calculator import round_half_up
from features.models import ErrorCode, PortfolioError, PortfolioMetrics
from features.portfolio_fetcher import PortfolioDataFetcher

logger = logging.getLogger(__name__)

# Regex patterns (compiled once)
SOLANA_ADDRESS_SEARCH = re.compile(r'[1-9A-HJ-NP-Za-km-z]{32,44}')
SOLANA_ADDRESS_PATTERN = re.compile(r'^[1-9A-HJ-NP-Za-km-z]{32,44}$')
PORTFOLIO_KEYWORDS = re.compile(r'\b(portfolio|analyze|check|metrics|address)\b', re.IGNORECASE)

ADDRESS_CACHE = TTLCache(maxsize=10000, ttl=3600)

Callback = Callable[[Dict[str, Any]], Awaitable[Any]]


def extract_wallet_address(text: Optional[str]) -> Optional[str]:
    """First base58-looking token in the text"""
    if not text:
        return None
    match = SOLANA_ADDRESS_SEARCH.search(text)
    return match.group(0) if match else None


def is_valid_solana_address(address: str) -> bool:
    if address in ADDRESS_CACHE:
        return ADDRESS_CACHE[address]

    result = bool(SOLANA_ADDRESS_PATTERN.match(address))
    ADDRESS_CACHE[address] = result
    return result


def _signed(value: float) -> str:
    return f"{'+' if value > 0 else ''}{round_half_up(value)}"


class PortfolioMetricsAction:
    """Calculate and analyze portfolio metrics for a given wallet"""

    name = "CALCULATE_PORTFOLIO_METRICS"
    similes = ["GET_PORTFOLIO_METRICS", "ANALYZE_PORTFOLIO", "CHECK_PORTFOLIO"]
    description = "Calculate and analyze portfolio metrics for a given wallet"

    examples = [
        [
            {
                "user": "{{user}}",
                "content": {
                    "text": "Can you analyze my portfolio metrics? Here is my address "
                            "9qVPMhnXVbr7TD1EoeKbutpm8AoNm7yBzB8JJZ7PYEPS"
                }
            },
            {
                "user": "{{system}}",
                "content": {
                    "text": "📊 Portfolio Analysis Results...",
                    "action": "CALCULATE_PORTFOLIO_METRICS"
                }
            }
        ]
    ]

    def __init__(self, data_fetcher: Optional[PortfolioDataFetcher] = None):
        self.data_fetcher = data_fetcher or PortfolioDataFetcher()

    def validate(self, text: Optional[str]) -> bool:
        """Portfolio keyword present and a well-formed Solana address"""
        text = text or ''
        has_keywords = bool(PORTFOLIO_KEYWORDS.search(text))
        wallet = extract_wallet_address(text)
        has_valid_address = bool(wallet) and is_valid_solana_address(wallet)

        logger.debug(
            f"Portfolio validation: keywords={has_keywords} "
            f"wallet={wallet} valid={has_valid_address}"
        )
        return has_keywords and has_valid_address

    async def handler(
        self,
        text: Optional[str],
        state: Optional[Dict] = None,
        callback: Optional[Callback] = None
    ) -> bool:
        """
        Run the pipeline for the address in `text`.

        Returns True on success. On any failure the callback gets a short
        error text and False is returned; exceptions never escape.
        """
        try:
            wallet = extract_wallet_address(text)
            if not wallet:
                raise ValueError("No wallet address found")

            logger.info(f"📊 Processing wallet: {wallet[:8]}...")

            metrics = await self.data_fetcher.fetch_portfolio_data(wallet)
            response = {
                'text': self.format_response(wallet, metrics),
                'content': metrics.to_dict(),
                'action': self.name
            }

            if callback:
                await callback(response)

            if state is not None:
                state['response_data'] = response

            return True

        except Exception as e:
            logger.error(f"❌ Error in portfolio handler: {e}")
            if isinstance(e, PortfolioError):
                portfolio_error = e
            else:
                portfolio_error = PortfolioError(str(e), ErrorCode.HANDLER_ERROR, e)

            if callback:
                try:
                    await callback({
                        'text': f"Error analyzing portfolio: {portfolio_error.message}",
                        'action': self.name
                    })
                except Exception as callback_error:
                    logger.error(f"Error callback failed: {callback_error}")

            return False

    def format_response(self, wallet: str, metrics: PortfolioMetrics) -> str:
        holdings = '\n'.join(
            f"{i}. {token}" for i, token in enumerate(metrics.top_holdings, 1)
        )
        sub = metrics.metrics

        return f"""📊 Portfolio Analysis Results for {wallet[:4]}...{wallet[-4:]}

🏆 DEFAI Score: {round_half_up(metrics.defai_score)}/100

📈 Key Metrics:
• Capital Management: {round_half_up(sub.capital_management)}/100
• Risk Index: {round_half_up(metrics.risk)}/100
• DeFi Savviness: {round_half_up(sub.defi_savviness)}/100
• Degen Index: {round_half_up(sub.degen_index)}/100

🎯 Trading Style:
• Entry Score: {round_half_up(metrics.entry_score)}/100
• Exit Score: {round_half_up(metrics.exit_score)}/100
• Gas Optimization: {round_half_up(metrics.gas_score)}/100

📊 Performance:
• 24h Change: {_signed(metrics.performance_daily)}%
• vs CMC100: {_signed(metrics.performance_vs_cmc100)}%

💪 Portfolio Health:
• Diversification: {round_half_up(metrics.diversification)}/100
• Liquidity: {round_half_up(metrics.liquidity)}/100
• Risk Exposure: {round_half_up(metrics.risk)}/100

🌊 Market Adaptation:
• Trend Following: {round_half_up(metrics.trend_score)}/100
• Volatility Management: {round_half_up(metrics.volatility_score)}/100
• Alpha Generation: {round_half_up(metrics.alpha_score)}/100

🏦 DeFi Engagement:
• Protocol Diversity: {round_half_up(metrics.protocol_score)}/100
• Yield Optimization: {round_half_up(metrics.yield_score)}/100
• Smart Contract Risk: {round_half_up(metrics.contract_score)}/100

🔝 Top Holdings:
{holdings}

💡 Analysis:
{metrics.ai_analysis}"""
