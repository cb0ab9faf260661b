"""
Multi-source token price resolution
✅ 5-minute per-mint cache
✅ Ordered source chain, first strictly positive price wins
✅ Per-source failures logged and swallowed
✅ 0.0 means "unpriced", never an error
"""

import logging
import time
from dataclasses import dataclass
from typing import Dict, List, Optional

from features.cache import PortfolioCache
from features.price_sources import PriceSource

logger = logging.getLogger(__name__)


@dataclass
class PriceQuote:
    price: float
    source: str


class PriceResolver:
    """Resolve a mint's USD price through cache and an ordered source list"""

    def __init__(self, sources: List[PriceSource], cache: PortfolioCache):
        self.sources = sources
        self.cache = cache

        self.source_stats = {
            source.name: {'success': 0, 'failures': 0, 'total_time': 0.0}
            for source in sources
        }

    async def get_token_price(self, mint: str) -> float:
        """USD price for mint, or 0.0 when every source fails"""
        cached = self.cache.get(mint)
        if cached is not None:
            return cached

        quote = await self.resolve(mint)
        if quote is None:
            logger.debug(f"No price for {mint[:8]}... from any source")
            return 0.0

        self.cache.set(mint, quote.price)
        return quote.price

    async def resolve(self, mint: str) -> Optional[PriceQuote]:
        """Walk the source chain, skipping the cache"""
        for source in self.sources:
            start_time = time.time()
            stats = self.source_stats.setdefault(
                source.name, {'success': 0, 'failures': 0, 'total_time': 0.0}
            )

            try:
                price = await source.fetch_price(mint)
            except Exception as e:
                logger.warning(f"Failed to fetch price from {source.name} for {mint[:8]}: {e}")
                price = None

            stats['total_time'] += time.time() - start_time

            if price is not None and price > 0:
                stats['success'] += 1
                logger.debug(f"💰 {mint[:8]}... = ${price} ({source.name})")
                return PriceQuote(price, source.name)

            stats['failures'] += 1

        return None

    def get_stats(self) -> Dict:
        """Get performance statistics"""
        stats = {}

        for source, counts in self.source_stats.items():
            total = counts['success'] + counts['failures']
            if total > 0:
                stats[source] = {
                    'success': counts['success'],
                    'failures': counts['failures'],
                    'success_rate': round(counts['success'] / total * 100, 1),
                    'total_attempts': total,
                    'avg_time_ms': round(counts['total_time'] / total * 1000, 0)
                }

        stats['cache'] = self.cache.get_stats()
        return stats
