"""Alert service for sending operator notifications to Telegram."""

from typing import Optional

import httpx

from app.logging_config import get_logger

logger = get_logger("alert_service")


class AlertService:
    def __init__(
        self,
        bot_token: Optional[str] = None,
        chat_id: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.bot_token = bot_token
        self.chat_id = chat_id
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.bot_token and self.chat_id)

    async def send_alert(self, level: str, message: str, context: Optional[dict] = None) -> bool:
        """Send alert to Telegram.

        Args:
            level: INFO, WARNING, ERROR, CRITICAL
            message: Alert message
            context: Optional context dict

        Returns:
            True if sent successfully
        """
        if not self.configured:
            logger.warning(f"Alert not configured: {level} - {message}")
            return False

        emoji = {"INFO": "ℹ️", "WARNING": "⚠️", "ERROR": "❌", "CRITICAL": "🔥"}

        text = f"{emoji.get(level, '📢')} *{level}*\n\n{message}"

        if context:
            context_str = "\n".join(f"  {k}: {v}" for k, v in context.items())
            text += f"\n\n```\n{context_str}\n```"

        try:
            async with httpx.AsyncClient(timeout=10, transport=self._transport) as client:
                response = await client.post(
                    f"https://api.telegram.org/bot{self.bot_token}/sendMessage",
                    json={"chat_id": self.chat_id, "text": text, "parse_mode": "Markdown"},
                )
                return response.status_code == 200
        except httpx.HTTPError as e:
            logger.error(f"Failed to send alert: {e}")
            return False

    async def circuit_opened(self, service: str, last_error: Optional[str] = None) -> None:
        """Breaker hook: one ERROR alert each time a circuit opens."""
        await self.send_alert("ERROR", f"Circuit opened: {service}", {"service": service, "last_error": last_error})
