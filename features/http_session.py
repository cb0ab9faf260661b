"""
Shared aiohttp session pools
✅ One session per pool name ('rpc', 'api')
✅ Lazy creation, recreated if closed
✅ Graceful cleanup on shutdown
"""

import asyncio
import logging
from typing import Dict

import aiohttp

from features.config import Config

logger = logging.getLogger(__name__)


class SessionFactory:
    """Pooled aiohttp sessions keyed by pool name"""

    POOL_CONFIGS = {
        'default': {'limit': 100, 'limit_per_host': 30},
        'rpc': {'limit': 50, 'limit_per_host': 10},
        'api': {'limit': 100, 'limit_per_host': 20},
    }

    def __init__(self, timeout: float = Config.HTTP_TIMEOUT):
        self.timeout = timeout
        self._sessions: Dict[str, aiohttp.ClientSession] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._closed = False

    async def get_session(self, pool_name: str = 'default') -> aiohttp.ClientSession:
        """Get or create session with automatic initialization"""
        if self._closed:
            raise RuntimeError("SessionFactory is closed")

        if pool_name not in self._locks:
            self._locks[pool_name] = asyncio.Lock()

        async with self._locks[pool_name]:
            if pool_name not in self._sessions or self._sessions[pool_name].closed:
                self._sessions[pool_name] = self._create_session(pool_name)
                logger.info(f"🔗 Session pool created: {pool_name}")

            return self._sessions[pool_name]

    def _create_session(self, pool_name: str) -> aiohttp.ClientSession:
        config = self.POOL_CONFIGS.get(pool_name, self.POOL_CONFIGS['default'])

        connector = aiohttp.TCPConnector(
            limit=config['limit'],
            limit_per_host=config['limit_per_host'],
            ttl_dns_cache=300,
            enable_cleanup_closed=True
        )

        return aiohttp.ClientSession(
            connector=connector,
            timeout=aiohttp.ClientTimeout(total=self.timeout),
            headers={
                'Accept': 'application/json',
                'User-Agent': f'DefaiPortfolioBot/{pool_name}'
            }
        )

    async def cleanup(self):
        """Close every pooled session"""
        if self._closed:
            return

        self._closed = True
        logger.info("🧹 Cleaning up sessions...")

        if self._sessions:
            await asyncio.gather(
                *[session.close() for session in self._sessions.values()],
                return_exceptions=True
            )

        self._sessions.clear()
        self._locks.clear()
        logger.info("✅ All sessions closed")
