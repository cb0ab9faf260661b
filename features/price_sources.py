"""
USD price sources for SPL tokens
Each source knows its own endpoint and response shape and returns a
strictly positive price or None.

Order used by the resolver:
DexScreener → CoinGecko → Solscan → supply/market-cap fallback
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

import aiohttp

from features.config import Config

logger = logging.getLogger(__name__)


def _positive_price(value: Any) -> Optional[float]:
    """Parse a price field, keeping only finite values > 0"""
    try:
        price = float(value)
    except (TypeError, ValueError):
        return None

    if price != price or price == float('inf') or price <= 0:
        return None
    return price


class PriceSource(ABC):
    """Single external USD price lookup"""

    name = 'unknown'

    def __init__(self, session_factory=None, timeout: float = Config.HTTP_TIMEOUT):
        self.session_factory = session_factory
        self.timeout = timeout

    @abstractmethod
    def build_request(self, mint: str) -> Tuple[str, Optional[Dict]]:
        """Return (url, query params) for this mint"""

    @abstractmethod
    def parse_price(self, data: Any, mint: str) -> Optional[float]:
        """Extract a positive USD price from this source's JSON shape"""

    async def fetch_price(self, mint: str) -> Optional[float]:
        url, params = self.build_request(mint)
        session = await self.session_factory.get_session('api')

        async with session.get(
            url,
            params=params,
            timeout=aiohttp.ClientTimeout(total=self.timeout)
        ) as resp:
            if resp.status != 200:
                logger.debug(f"{self.name} HTTP {resp.status} for {mint[:8]}")
                return None
            data = await resp.json()

        return self.parse_price(data, mint)


class DexScreenerSource(PriceSource):
    """DexScreener pair aggregator - {pairs: [{priceUsd}, ...]}"""

    name = 'dexscreener'

    def __init__(self, session_factory=None, base_url: str = Config.DEXSCREENER_BASE, **kwargs):
        super().__init__(session_factory, **kwargs)
        self.base_url = base_url

    def build_request(self, mint: str) -> Tuple[str, Optional[Dict]]:
        return f"{self.base_url}/dex/tokens/{mint}", None

    def parse_price(self, data: Any, mint: str) -> Optional[float]:
        pairs = (data or {}).get('pairs') or []
        if not pairs:
            return None
        return _positive_price(pairs[0].get('priceUsd'))


class CoinGeckoSource(PriceSource):
    """CoinGecko token price - {<contract>: {usd}}"""

    name = 'coingecko'

    def __init__(self, session_factory=None, base_url: str = Config.COINGECKO_BASE, **kwargs):
        super().__init__(session_factory, **kwargs)
        self.base_url = base_url

    def build_request(self, mint: str) -> Tuple[str, Optional[Dict]]:
        return (
            f"{self.base_url}/simple/token_price/solana",
            {"contract_addresses": mint, "vs_currencies": "usd"}
        )

    def parse_price(self, data: Any, mint: str) -> Optional[float]:
        data = data or {}
        # CoinGecko sometimes lower-cases contract keys
        entry = data.get(mint) or data.get(mint.lower()) or {}
        return _positive_price(entry.get('usd'))


class SolscanSource(PriceSource):
    """Solscan token meta - {priceUsdt}"""

    name = 'solscan'

    def __init__(self, session_factory=None, base_url: str = Config.SOLSCAN_BASE, **kwargs):
        super().__init__(session_factory, **kwargs)
        self.base_url = base_url

    def build_request(self, mint: str) -> Tuple[str, Optional[Dict]]:
        return f"{self.base_url}/token/meta", {"tokenAddress": mint}

    def parse_price(self, data: Any, mint: str) -> Optional[float]:
        return _positive_price((data or {}).get('priceUsdt'))


class SupplyPriceSource(PriceSource):
    """
    Last resort: market cap / supply from token metadata.
    Plain RPC supply carries no market cap, so this only prices tokens
    whose metadata provider supplies one.
    """

    name = 'supply'

    def __init__(self, rpc_client, **kwargs):
        super().__init__(None, **kwargs)
        self.rpc_client = rpc_client

    def build_request(self, mint: str) -> Tuple[str, Optional[Dict]]:
        return self.rpc_client.endpoint, None

    def parse_price(self, data: Any, mint: str) -> Optional[float]:
        market_cap = getattr(data, 'market_cap', None)
        supply = getattr(data, 'supply', None)
        if not market_cap or not supply or supply <= 0:
            return None
        return _positive_price(market_cap / supply)

    async def fetch_price(self, mint: str) -> Optional[float]:
        metadata = await self.rpc_client.get_token_supply(mint)
        return self.parse_price(metadata, mint)


def default_price_sources(session_factory, rpc_client) -> List[PriceSource]:
    """Primary, ordered fallbacks, then the synthetic supply source"""
    return [
        DexScreenerSource(session_factory),
        CoinGeckoSource(session_factory),
        SolscanSource(session_factory),
        SupplyPriceSource(rpc_client),
    ]
