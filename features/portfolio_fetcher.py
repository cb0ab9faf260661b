"""
Portfolio data pipeline
✅ Token accounts → priced balances (per-token failures isolated)
✅ Recent signatures (degrades to empty history)
✅ Metrics + narrative, cached per wallet for 5 minutes
✅ Every failure leaves as PortfolioError(DATA_FETCH_ERROR)
"""

import asyncio
import logging
import time
from dataclasses import replace
from typing import Awaitable, Callable, Dict, List, Optional

from features.cache import PortfolioCache
from features.config import Config
from features.http_session import SessionFactory
from features.metrics_calculator import MetricsCalculator, short_mint
from features.models import (
    BalanceBatch, ErrorCode, PortfolioError, PortfolioMetrics, TokenBalance
)
from features.portfolio_analyzer import PortfolioAnalyzer
from features.price_resolver import PriceResolver
from features.price_sources import PriceSource, default_price_sources
from features.retry import retry
from features.solana_rpc import SolanaRpcClient

logger = logging.getLogger(__name__)

# Well-known SPL mints; anything else falls back to RPC metadata or a short mint
KNOWN_TOKENS = {
    "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v": "USDC",
    "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB": "USDT",
    "So11111111111111111111111111111111111111112": "WSOL",
    "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263": "BONK",
    "JUPyiwrYJFskUPiHa7hkeR8VUtAeFoSYbKedZNsDvCN": "JUP",
    "4k3Dyjzvzp8eMZWUXbBCjEvwSkkk59S5iCNLY3QrkX6R": "RAY",
    "MNDEFzGvMt87ueuHvVU9VcTqsAP5b3fTGPsHuuPA5ey": "MNDE",
    "7dHbWXmci3dT8UFYWYZweBLXgycu7Y3iL6trKn1Y7ARj": "stSOL",
}


class BalanceAggregator:
    """Turn jsonParsed token accounts into priced TokenBalance rows"""

    def __init__(
        self,
        price_resolver: PriceResolver,
        rpc_client: SolanaRpcClient,
        retry_attempts: int = Config.RETRY_ATTEMPTS,
        retry_delay: float = Config.RETRY_DELAY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self.price_resolver = price_resolver
        self.rpc_client = rpc_client
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay
        self._sleep = sleep

    async def process_token_balances(self, accounts: List[Dict]) -> BalanceBatch:
        batch = BalanceBatch()

        for account in accounts:
            mint = None
            try:
                info = account['account']['data']['parsed']['info']
                mint = info['mint']
                amount = float(info['tokenAmount'].get('uiAmount') or 0)

                if amount <= 0:
                    continue

                price = await retry(
                    lambda: self.price_resolver.get_token_price(mint),
                    attempts=self.retry_attempts,
                    delay=self.retry_delay,
                    sleep=self._sleep
                )
                symbol = await self.get_token_symbol(mint)

                batch.balances.append(TokenBalance(
                    mint=mint,
                    amount=amount,
                    symbol=symbol,
                    price=price,
                    value=price * amount
                ))

            except Exception as e:
                batch.errors.append(f"Failed to process token {mint}: {e}")
                continue

        if batch.errors:
            logger.warning(f"⚠️ {len(batch.errors)} tokens failed to process: {batch.errors}")

        logger.info(f"💎 Processed {len(batch.balances)} token balances")
        return batch

    async def get_token_symbol(self, mint: str) -> str:
        if mint in KNOWN_TOKENS:
            return KNOWN_TOKENS[mint]

        try:
            metadata = await self.rpc_client.get_token_supply(mint)
            if metadata.symbol:
                return metadata.symbol
        except Exception as e:
            logger.debug(f"Symbol lookup failed for {mint[:8]}: {e}")

        return short_mint(mint)


class TransactionFetcher:
    """Recent signatures for a wallet; empty list on any failure"""

    def __init__(
        self,
        rpc_client: SolanaRpcClient,
        limit: int = Config.SIGNATURE_LIMIT,
        retry_attempts: int = Config.RETRY_ATTEMPTS,
        retry_delay: float = Config.RETRY_DELAY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self.rpc_client = rpc_client
        self.limit = limit
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay
        self._sleep = sleep

    async def fetch_transaction_history(self, wallet: str) -> List[Dict]:
        try:
            return await retry(
                lambda: self.rpc_client.get_signatures_for_address(wallet, self.limit),
                attempts=self.retry_attempts,
                delay=self.retry_delay,
                sleep=self._sleep
            )
        except Exception as e:
            logger.error(f"Error fetching transaction history: {e}")
            return []


class PortfolioDataFetcher:
    """
    Orchestrates one wallet analysis.

    cache lookup → token accounts → balances → transactions →
    metrics → narrative → cache

    Collaborators are injectable; anything not passed is built from Config.
    """

    def __init__(
        self,
        session_factory: Optional[SessionFactory] = None,
        rpc_client: Optional[SolanaRpcClient] = None,
        price_sources: Optional[List[PriceSource]] = None,
        portfolio_cache: Optional[PortfolioCache] = None,
        price_cache: Optional[PortfolioCache] = None,
        calculator: Optional[MetricsCalculator] = None,
        analyzer: Optional[PortfolioAnalyzer] = None,
        retry_attempts: int = Config.RETRY_ATTEMPTS,
        retry_delay: float = Config.RETRY_DELAY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self._owns_sessions = session_factory is None
        self.session_factory = session_factory or SessionFactory()
        self.rpc_client = rpc_client or SolanaRpcClient(self.session_factory)

        self.cache = portfolio_cache or PortfolioCache(Config.PORTFOLIO_CACHE_TTL, name='portfolio')
        self.price_cache = price_cache or PortfolioCache(Config.PRICE_CACHE_TTL, name='prices')

        if price_sources is None:
            price_sources = default_price_sources(self.session_factory, self.rpc_client)
        self.price_resolver = PriceResolver(price_sources, self.price_cache)

        self.calculator = calculator or MetricsCalculator()
        self.analyzer = analyzer or PortfolioAnalyzer()

        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay
        self._sleep = sleep

        self.balance_aggregator = BalanceAggregator(
            self.price_resolver, self.rpc_client, retry_attempts, retry_delay, sleep
        )
        self.transaction_fetcher = TransactionFetcher(
            self.rpc_client,
            retry_attempts=retry_attempts,
            retry_delay=retry_delay,
            sleep=sleep
        )

    async def fetch_portfolio_data(self, wallet: str) -> PortfolioMetrics:
        cached = self.cache.get(wallet)
        if cached is not None:
            logger.info(f"💾 Returning cached portfolio for {wallet[:8]}...")
            return cached

        start = time.time()
        logger.info(f"⚡ Analyzing portfolio {wallet[:8]}...")

        try:
            accounts = await self.fetch_token_accounts(wallet)
            batch = await self.balance_aggregator.process_token_balances(accounts)
            transactions = await self.transaction_fetcher.fetch_transaction_history(wallet)

            metrics = self.calculator.calculate_metrics(batch.balances, transactions)
            metrics = replace(metrics, ai_analysis=self.analyzer.analyze_portfolio(metrics))

            self.cache.set(wallet, metrics)

        except Exception as e:
            logger.error(f"❌ Error fetching portfolio data: {e}", exc_info=True)
            raise PortfolioError(
                'Failed to fetch portfolio data',
                ErrorCode.DATA_FETCH_ERROR,
                e
            ) from e

        logger.info(
            f"✅ {wallet[:8]}... DEFAI {metrics.defai_score:g} "
            f"({len(batch.balances)} tokens, {len(transactions)} txs) "
            f"in {time.time() - start:.2f}s"
        )
        return metrics

    async def fetch_token_accounts(self, wallet: str) -> List[Dict]:
        return await retry(
            lambda: self.rpc_client.get_token_accounts_by_owner(wallet),
            attempts=self.retry_attempts,
            delay=self.retry_delay,
            sleep=self._sleep
        )

    def get_stats(self) -> Dict:
        return {
            'prices': self.price_resolver.get_stats(),
            'portfolio_cache': self.cache.get_stats(),
        }

    async def close(self):
        if self._owns_sessions:
            await self.session_factory.cleanup()
