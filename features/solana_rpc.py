"""
Read-only Solana JSON-RPC client
Only the three calls the portfolio pipeline needs:
getTokenAccountsByOwner, getTokenSupply, getSignaturesForAddress.
"""

import logging
from typing import Any, Dict, List, Optional

import aiohttp

from features.config import Config
from features.models import TokenMetadata

logger = logging.getLogger(__name__)


class SolanaRpcError(Exception):
    """Non-2xx response or JSON-RPC error member"""

    def __init__(self, method: str, message: str, status: Optional[int] = None):
        super().__init__(f"{method}: {message}")
        self.method = method
        self.status = status


class SolanaRpcClient:
    """Thin JSON-RPC wrapper over a pooled aiohttp session"""

    def __init__(
        self,
        session_factory,
        endpoint: str = Config.SOLANA_RPC_ENDPOINT,
        token_program: str = Config.SOLANA_TOKEN_PROGRAM,
        timeout: float = Config.HTTP_TIMEOUT
    ):
        self.session_factory = session_factory
        self.endpoint = endpoint
        self.token_program = token_program
        self.timeout = timeout

    async def _call(self, method: str, params: List[Any]) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": method,
            "params": params
        }

        session = await self.session_factory.get_session('rpc')
        async with session.post(
            self.endpoint,
            json=payload,
            headers={'Content-Type': 'application/json'},
            timeout=aiohttp.ClientTimeout(total=self.timeout)
        ) as resp:
            if resp.status < 200 or resp.status >= 300:
                raise SolanaRpcError(method, f"HTTP error! status: {resp.status}", resp.status)

            data = await resp.json()

        if data.get('error'):
            error = data['error']
            message = error.get('message', str(error)) if isinstance(error, dict) else str(error)
            raise SolanaRpcError(method, message)

        return data.get('result')

    async def get_token_accounts_by_owner(self, owner: str) -> List[Dict]:
        """SPL token accounts of a wallet, jsonParsed encoding"""
        result = await self._call(
            'getTokenAccountsByOwner',
            [
                owner,
                {"programId": self.token_program},
                {"encoding": "jsonParsed"}
            ]
        )
        if not result:
            raise SolanaRpcError('getTokenAccountsByOwner', 'missing result')
        return result.get('value') or []

    async def get_token_supply(self, mint: str) -> TokenMetadata:
        result = await self._call('getTokenSupply', [mint])
        value = (result or {}).get('value') or {}

        return TokenMetadata(
            supply=float(value.get('uiAmount') or 0),
            decimals=int(value.get('decimals') or 0)
        )

    async def get_signatures_for_address(
        self,
        address: str,
        limit: int = Config.SIGNATURE_LIMIT
    ) -> List[Dict]:
        result = await self._call('getSignaturesForAddress', [address, {"limit": limit}])
        return result or []
