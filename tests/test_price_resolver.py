"""
Tests for multi-source price resolution.
"""

import pytest

from features.cache import PortfolioCache
from features.price_resolver import PriceResolver

MINT = "JUPyiwrYJFskUPiHa7hkeR8VUtAeFoSYbKedZNsDvCN"


class StubSource:
    def __init__(self, name, price=None, error=None):
        self.name = name
        self.price = price
        self.error = error
        self.calls = 0

    async def fetch_price(self, mint):
        self.calls += 1
        if self.error:
            raise self.error
        return self.price


@pytest.fixture
def cache():
    return PortfolioCache(ttl=300, name='prices')


class TestPriceResolver:

    @pytest.mark.asyncio
    async def test_primary_wins_without_fallbacks(self, cache):
        primary = StubSource('dexscreener', 1.5)
        fallback = StubSource('coingecko', 9.0)
        resolver = PriceResolver([primary, fallback], cache)

        assert await resolver.get_token_price(MINT) == 1.5
        assert fallback.calls == 0
        assert cache.get(MINT) == 1.5

    @pytest.mark.asyncio
    async def test_falls_through_failures_and_zero(self, cache):
        sources = [
            StubSource('dexscreener', error=ConnectionError('timeout')),
            StubSource('coingecko', 0.0),
            StubSource('solscan', 0.42),
            StubSource('supply', 7.0),
        ]
        resolver = PriceResolver(sources, cache)

        assert await resolver.get_token_price(MINT) == 0.42
        assert sources[3].calls == 0

    @pytest.mark.asyncio
    async def test_synthetic_source_last(self, cache):
        sources = [
            StubSource('dexscreener'),
            StubSource('coingecko'),
            StubSource('solscan'),
            StubSource('supply', 5.0),
        ]
        resolver = PriceResolver(sources, cache)

        quote = await resolver.resolve(MINT)
        assert quote.price == 5.0
        assert quote.source == 'supply'

    @pytest.mark.asyncio
    async def test_unpriced_returns_zero_and_is_not_cached(self, cache):
        sources = [StubSource('dexscreener'), StubSource('coingecko', error=ValueError('bad json'))]
        resolver = PriceResolver(sources, cache)

        assert await resolver.get_token_price(MINT) == 0.0
        assert MINT not in cache

        await resolver.get_token_price(MINT)
        assert sources[0].calls == 2

    @pytest.mark.asyncio
    async def test_cache_hit_skips_sources(self, cache):
        cache.set(MINT, 3.25)
        primary = StubSource('dexscreener', 1.5)
        resolver = PriceResolver([primary], cache)

        assert await resolver.get_token_price(MINT) == 3.25
        assert primary.calls == 0

    @pytest.mark.asyncio
    async def test_stats(self, cache):
        sources = [StubSource('dexscreener'), StubSource('coingecko', 2.0)]
        resolver = PriceResolver(sources, cache)

        await resolver.get_token_price(MINT)
        stats = resolver.get_stats()

        assert stats['dexscreener']['failures'] == 1
        assert stats['dexscreener']['success_rate'] == 0.0
        assert stats['coingecko']['success'] == 1
        assert stats['coingecko']['success_rate'] == 100.0
        assert stats['cache']['size'] == 1
