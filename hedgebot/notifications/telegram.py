"""Telegram notification service."""
import asyncio
import html
import logging
import ssl

import aiohttp
import certifi

from ..config import TelegramConfig

logger = logging.getLogger(__name__)

API_URL = "https://api.telegram.org/bot{token}/sendMessage"
# Telegram rejects longer texts
MAX_MESSAGE_LENGTH = 4096
_SEND_TIMEOUT = 10


def format_message(text: str) -> str:
    """Escape for HTML parse mode and cut to the API's length limit.

    Error contexts carry Move type tags (``Pool<A, B>``) that would otherwise
    be read as markup.
    """
    escaped = html.escape(text, quote=False)
    if len(escaped) <= MAX_MESSAGE_LENGTH:
        return escaped
    return escaped[: MAX_MESSAGE_LENGTH - 1] + "…"


class TelegramNotifier:
    """Operator notifications through two Telegram bots.

    Aborted cycles go to the alert bot with sound on; submitted corrections go
    to the log bot. Delivery problems are logged and reported as ``False``.
    """

    def __init__(self, config: TelegramConfig) -> None:
        self.alert_bot_token = config.alert_bot_token
        self.log_bot_token = config.log_bot_token
        self.chat_id = config.chat_id

    async def _post(self, bot_token: str, text: str, silent: bool) -> bool:
        if not bot_token or not self.chat_id:
            logger.warning("Telegram credentials not configured")
            return False

        payload = {
            "chat_id": self.chat_id,
            "text": format_message(text),
            "parse_mode": "HTML",
            "disable_notification": silent,
        }
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context)
        timeout = aiohttp.ClientTimeout(total=_SEND_TIMEOUT)

        try:
            async with aiohttp.ClientSession(connector=connector) as session:
                async with session.post(
                    API_URL.format(token=bot_token), json=payload, timeout=timeout
                ) as response:
                    if response.status != 200:
                        logger.error("Telegram API returned HTTP %s", response.status)
                        return False
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error("Telegram request failed: %s", e)
            return False
        return True

    async def send_alert(self, message: str, subject: str = "") -> bool:
        """Unmuted alert; ``subject`` becomes the first line."""
        text = f"{subject}\n\n{message}" if subject else message
        sent = await self._post(self.alert_bot_token, text, silent=False)
        if sent:
            logger.info("Telegram alert sent")
        return sent

    async def send_log(self, message: str, silent: bool = True) -> bool:
        sent = await self._post(self.log_bot_token, message, silent=silent)
        if sent:
            logger.debug("Telegram log sent")
        return sent
