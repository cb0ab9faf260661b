"""
Shared fixtures: in-memory HTTP doubles for aiohttp sessions.
"""

import pytest

from features.solana_rpc import SolanaRpcClient


class FakeResponse:
    def __init__(self, status=200, payload=None, error=None):
        self.status = status
        self._payload = payload
        self._error = error

    async def json(self):
        if self._error:
            raise self._error
        return self._payload

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """
    Routes requests to handlers.

    post_handler(url, json) and get_handler(url, params) return a
    FakeResponse or raise.
    """

    def __init__(self, post_handler=None, get_handler=None):
        self.post_handler = post_handler
        self.get_handler = get_handler
        self.posts = []
        self.gets = []
        self.closed = False

    def post(self, url, json=None, headers=None, timeout=None):
        self.posts.append({'url': url, 'json': json, 'headers': headers})
        return self.post_handler(url, json)

    def get(self, url, params=None, timeout=None):
        self.gets.append({'url': url, 'params': params})
        return self.get_handler(url, params)

    async def close(self):
        self.closed = True


class FakeSessionFactory:
    def __init__(self, session):
        self.session = session
        self.pools = []

    async def get_session(self, pool_name='default'):
        self.pools.append(pool_name)
        return self.session

    async def cleanup(self):
        await self.session.close()


def token_account(mint, ui_amount, decimals=6):
    """jsonParsed getTokenAccountsByOwner entry"""
    return {
        'pubkey': f"acct-{mint[:6]}",
        'account': {
            'data': {
                'parsed': {
                    'info': {
                        'mint': mint,
                        'tokenAmount': {
                            'uiAmount': ui_amount,
                            'decimals': decimals
                        }
                    }
                }
            }
        }
    }


async def no_sleep(_seconds):
    return None


@pytest.fixture
def rpc_factory():
    """Build an RPC client whose POSTs are answered by `handler(method, params)`"""
    def build(handler):
        def post_handler(url, payload):
            return handler(payload['method'], payload['params'])

        session = FakeSession(post_handler=post_handler)
        client = SolanaRpcClient(FakeSessionFactory(session), endpoint='https://rpc.test')
        return client, session

    return build
