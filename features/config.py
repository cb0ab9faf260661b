import os
from dotenv import load_dotenv

load_dotenv()

class Config:
    """Bot configuration"""

    # Telegram
    TELEGRAM_BOT_TOKEN = os.getenv('TELEGRAM_BOT_TOKEN')
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

    # Solana RPC
    SOLANA_RPC_ENDPOINT = os.getenv('SOLANA_RPC_ENDPOINT', 'https://api.mainnet-beta.solana.com')
    SOLANA_TOKEN_PROGRAM = os.getenv('SOLANA_TOKEN_PROGRAM', 'TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA')
    SIGNATURE_LIMIT = int(os.getenv('SIGNATURE_LIMIT', '100'))

    # Price sources
    DEXSCREENER_BASE = os.getenv('DEXSCREENER_BASE', 'https://api.dexscreener.com/latest')
    COINGECKO_BASE = os.getenv('COINGECKO_BASE', 'https://api.coingecko.com/api/v3')
    SOLSCAN_BASE = os.getenv('SOLSCAN_BASE', 'https://public-api.solscan.io')

    # Caching (seconds)
    PORTFOLIO_CACHE_TTL = int(os.getenv('PORTFOLIO_CACHE_TTL', '300'))
    PRICE_CACHE_TTL = int(os.getenv('PRICE_CACHE_TTL', '300'))

    # Retry / timeouts
    RETRY_ATTEMPTS = int(os.getenv('RETRY_ATTEMPTS', '3'))
    RETRY_DELAY = float(os.getenv('RETRY_DELAY', '1.0'))
    HTTP_TIMEOUT = float(os.getenv('HTTP_TIMEOUT', '10'))

    @classmethod
    def validate(cls):
        """Validate required configuration"""
        required = {
            'TELEGRAM_BOT_TOKEN': cls.TELEGRAM_BOT_TOKEN,
        }

        missing = [k for k, v in required.items() if not v]
        if missing:
            raise ValueError(f"Missing required config: {', '.join(missing)}")

        return True
