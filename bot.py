"""
DEFAI Portfolio Bot - Telegram host
✅ Detects "analyze my portfolio <address>" style messages
✅ Runs the portfolio pipeline and replies with the DEFAI report
✅ /health exposes price-source and cache statistics
✅ Graceful shutdown of HTTP sessions
"""

import asyncio
import logging
import signal
import sys
from datetime import datetime
from typing import Dict

from telegram import Update
from telegram.constants import ParseMode
from telegram.ext import (
    ApplicationBuilder, CommandHandler, ContextTypes, MessageHandler, filters
)
from telegram.request import HTTPXRequest

from features.config import Config
from features.http_session import SessionFactory
from features.portfolio_action import PortfolioMetricsAction
from features.portfolio_fetcher import PortfolioDataFetcher

logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO),
    handlers=[logging.StreamHandler(), logging.FileHandler('bot.log')]
)
logger = logging.getLogger(__name__)

logging.getLogger('telegram.ext.Application').setLevel(logging.ERROR)
logging.getLogger('telegram.ext.Updater').setLevel(logging.ERROR)
logging.getLogger('httpx').setLevel(logging.WARNING)

# ============================================================================
# GLOBAL INSTANCES
# ============================================================================

session_factory = SessionFactory()
data_fetcher = PortfolioDataFetcher(session_factory=session_factory)
portfolio_action = PortfolioMetricsAction(data_fetcher)

started_at = datetime.now()


def html_escape(text: str) -> str:
    """Escape HTML entities"""
    if not text:
        return ""
    return str(text).replace('&', '&amp;').replace('<', '&lt;').replace('>', '&gt;')


# ============================================================================
# COMMANDS
# ============================================================================

async def start(update: Update, context: ContextTypes.DEFAULT_TYPE):
    await update.message.reply_text(
        "👋 <b>DEFAI Portfolio Bot</b>\n\n"
        "Send me a message like:\n"
        "<code>analyze my portfolio 9qVPMhnXVbr7TD1EoeKbutpm8AoNm7yBzB8JJZ7PYEPS</code>\n\n"
        "I'll score diversification, risk, liquidity and on-chain activity "
        "and return your DEFAI score.",
        parse_mode=ParseMode.HTML
    )


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    await update.message.reply_text(
        "<b>📖 Help</b>\n\n"
        "• Include a Solana wallet address\n"
        "• Include one of: portfolio, analyze, check, metrics, address\n"
        "• Results are cached for 5 minutes per wallet\n\n"
        "/health - data source status",
        parse_mode=ParseMode.HTML
    )


def format_health(stats: Dict) -> str:
    lines = ["<b>🩺 Health</b>", ""]

    uptime = (datetime.now() - started_at).total_seconds()
    lines.append(f"⏱️ Uptime: {int(uptime // 3600)}h {int(uptime % 3600 // 60)}m")

    cache = stats['portfolio_cache']
    lines.append(
        f"💾 Portfolio cache: {cache['size']} entries, {cache['hit_rate']}% hit rate"
    )

    price_stats = dict(stats['prices'])
    price_cache = price_stats.pop('cache')
    lines.append(
        f"💰 Price cache: {price_cache['size']} entries, {price_cache['hit_rate']}% hit rate"
    )

    if price_stats:
        lines.append("")
        lines.append("<b>📡 Price sources</b>")
        for source, s in price_stats.items():
            lines.append(
                f"• {html_escape(source)}: {s['success_rate']}% "
                f"({s['success']}/{s['total_attempts']}) ~{s['avg_time_ms']:.0f}ms"
            )

    return '\n'.join(lines)


async def health_command(update: Update, context: ContextTypes.DEFAULT_TYPE):
    await update.message.reply_text(
        format_health(data_fetcher.get_stats()),
        parse_mode=ParseMode.HTML
    )


async def handle_message(update: Update, context: ContextTypes.DEFAULT_TYPE):
    """Route portfolio requests to the action"""
    text = update.message.text or ''

    if not portfolio_action.validate(text):
        return

    progress = await update.message.reply_text("⏳ Analyzing portfolio...")

    async def deliver(response: Dict):
        await progress.edit_text(response['text'])

    success = await portfolio_action.handler(text, state=context.user_data, callback=deliver)
    logger.info(f"Portfolio request from {update.effective_user.id}: success={success}")


async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE):
    """Global error handler"""
    logger.error(f"Exception: {context.error}", exc_info=context.error)

    if isinstance(update, Update) and update.effective_message:
        try:
            await update.effective_message.reply_text(
                "❌ <b>An error occurred</b>\n\nPlease try again.",
                parse_mode=ParseMode.HTML
            )
        except Exception as e:
            logger.error(f"Failed to send error message: {e}")


# ============================================================================
# LIFECYCLE
# ============================================================================

async def shutdown(application):
    logger.info("🛑 Shutting down...")

    for name, coro in (
        ("Telegram updates", application.updater.stop()),
        ("Sessions", session_factory.cleanup()),
        ("Application", application.stop()),
        ("Application shutdown", application.shutdown()),
    ):
        try:
            await asyncio.wait_for(coro, timeout=3.0)
            logger.info(f"✅ {name} stopped")
        except asyncio.TimeoutError:
            logger.warning(f"⏱️ {name} stop timeout")
        except Exception as e:
            logger.error(f"❌ {name} stop error: {e}")


async def main():
    try:
        Config.validate()
    except ValueError as e:
        logger.error(f"❌ Config error: {e}")
        return

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except NotImplementedError:
            pass

    request = HTTPXRequest(connection_pool_size=20, connect_timeout=10.0, read_timeout=30.0)
    application = (
        ApplicationBuilder()
        .token(Config.TELEGRAM_BOT_TOKEN)
        .request(request)
        .concurrent_updates(True)
        .build()
    )

    try:
        await application.initialize()

        application.add_handler(CommandHandler("start", start))
        application.add_handler(CommandHandler("help", help_command))
        application.add_handler(CommandHandler("health", health_command))
        application.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, handle_message))
        application.add_error_handler(error_handler)

        await application.start()
        await application.updater.start_polling(
            allowed_updates=Update.ALL_TYPES,
            drop_pending_updates=True
        )

        logger.info("🤖 Bot is running! Press Ctrl+C to stop")
        await stop_event.wait()

    except Exception as e:
        logger.error(f"❌ Fatal error: {e}", exc_info=True)
    finally:
        await shutdown(application)


if __name__ == '__main__':
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\n👋 Stopped by user")
        sys.exit(0)
