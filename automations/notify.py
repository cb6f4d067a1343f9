import asyncio
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Set

import httpx

from constants import WEBHOOK_SOURCE
from logging_config import get_logger

logger = get_logger("notify")

TELEGRAM_API = "https://api.telegram.org"


class NotificationRelay:
    """
    Best-effort, at-most-once side notifications (n8n webhook, Telegram, email).

    Every `notify*` call schedules the delivery on the running loop and returns
    immediately. Failures are logged with the event and target, never raised.
    There is no retry.
    """

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        telegram_token: Optional[str] = None,
        telegram_chat_id: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 5.0,
    ):
        self.webhook_url = webhook_url
        self.telegram_token = telegram_token
        self.telegram_chat_id = telegram_chat_id
        self._transport = transport
        self._timeout = timeout
        self._pending: Set[asyncio.Task] = set()

    @classmethod
    def from_config(cls, cfg) -> "NotificationRelay":
        return cls(
            webhook_url=cfg.N8N_WEBHOOK_URL,
            telegram_token=cfg.TELEGRAM_BOT_TOKEN,
            telegram_chat_id=cfg.TELEGRAM_CHAT_ID,
        )

    # --- Public API (never raises, never blocks) ---

    def notify(self, event: str, data: Dict[str, Any]) -> None:
        if not self.webhook_url:
            logger.debug(f"Webhook [{event}] skipped, N8N_WEBHOOK_URL not set")
            return
        self._spawn(self._post_webhook(event, data), event)

    def notify_telegram(self, text: str, event: str = "telegram") -> None:
        if not (self.telegram_token and self.telegram_chat_id):
            logger.debug(f"Telegram [{event}] skipped, credentials not set")
            return
        self._spawn(self._post_telegram(text, event), event)

    def notify_email(self, send: Callable[..., Any], event: str = "email", **kwargs: Any) -> None:
        """`send` is a blocking email helper from utils.email; it runs in a worker thread."""
        self._spawn(self._send_email(send, event, kwargs), event)

    async def drain(self) -> None:
        """Wait for in-flight deliveries (shutdown and tests)."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # --- Internals ---

    def _spawn(self, coro, event: str) -> None:
        try:
            task = asyncio.get_running_loop().create_task(coro)
        except RuntimeError:
            coro.close()
            logger.warning(f"No running loop, notification [{event}] dropped")
            return
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport, timeout=self._timeout)

    async def _post_webhook(self, event: str, data: Dict[str, Any]) -> bool:
        payload = {
            "event": event,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "data": data,
            "source": WEBHOOK_SOURCE,
        }
        try:
            async with self._client() as client:
                response = await client.post(
                    self.webhook_url,
                    json=payload,
                    headers={"X-Lumen-Event": event},
                )
            if response.is_success:
                logger.info(f"Webhook [{event}] delivered", extra={"data": {"status": response.status_code}})
                return True
            logger.warning(
                f"Webhook [{event}] rejected by {self.webhook_url}",
                extra={"data": {"status": response.status_code, "body": response.text[:200]}}
            )
        except httpx.HTTPError as e:
            logger.error(f"HTTP Error delivering webhook [{event}] to {self.webhook_url}: {str(e)}")
        except Exception as e:
            logger.error(f"Unexpected error delivering webhook [{event}]: {str(e)}", exc_info=True)
        return False

    async def _post_telegram(self, text: str, event: str) -> bool:
        url = f"{TELEGRAM_API}/bot{self.telegram_token}/sendMessage"
        try:
            async with self._client() as client:
                response = await client.post(url, json={
                    "chat_id": self.telegram_chat_id,
                    "text": text,
                    "parse_mode": "Markdown",
                })
            if response.is_success:
                logger.info(f"Telegram [{event}] delivered")
                return True
            logger.warning(
                f"Telegram [{event}] rejected",
                extra={"data": {"status": response.status_code, "body": response.text[:200]}}
            )
        except httpx.HTTPError as e:
            logger.error(f"HTTP Error delivering Telegram [{event}]: {str(e)}")
        except Exception as e:
            logger.error(f"Unexpected error delivering Telegram [{event}]: {str(e)}", exc_info=True)
        return False

    async def _send_email(self, send: Callable[..., Any], event: str, kwargs: Dict[str, Any]) -> bool:
        try:
            await asyncio.to_thread(send, **kwargs)
            return True
        except Exception as e:
            logger.error(f"Email [{event}] failed: {str(e)}", exc_info=True)
            return False


def client_created_message(client: Dict[str, Any]) -> str:
    instagram = f"@{client['instagram']}" if client.get("instagram") else "No especificado"
    return (
        "🎉 *Nuevo Cliente Registrado*\n\n"
        f"👤 *Nombre:* {client.get('name')}\n"
        f"📱 *Instagram:* {instagram}\n"
        f"🏢 *Rubro:* {client.get('industry') or 'No especificado'}\n"
        f"📄 *ERPNext:* {client.get('erpId')}"
    )


def lead_received_message(lead: Dict[str, Any], lead_name: str) -> str:
    lines = [
        "🚀 *Nuevo Lead Recibido* 🚀",
        "",
        f"👤 *Nombre:* {lead.get('nombre')}",
        f"🏢 *Institución:* {lead.get('institucion') or 'No especificado'}",
        f"📱 *WhatsApp:* {lead.get('whatsapp')}",
        f"📧 *Email:* {lead.get('email')}",
    ]
    if lead.get("instagram"):
        lines.append(f"📸 *IG:* {lead['instagram']}")
    lines += [
        "",
        "💭 *Necesidad:*",
        lead.get("necesidad") or "No especificado",
        "",
        f"📄 *ERPNext:* {lead_name}",
    ]
    return "\n".join(lines)
