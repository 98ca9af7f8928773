"""Telegram Bot API client and the notifier built on top of it.

`TelegramClient` is a thin async wrapper over the handful of Bot API methods
Premiarr uses. Every failure surfaces as `TelegramError`, a `DeliveryError`
subclass, so the delivery retrier can act on it; a 429 carries the
`retry_after` the API asked for.

`TelegramNotifier` binds a client to one chat (and optional forum topic) and
routes every send through a `DeliveryRetrier`.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from datetime import date
from typing import Any

import httpx

from premiarr.schemas.media import MediaItem
from premiarr.services.delivery import DeliveryError, DeliveryRetrier
from premiarr.utils.formatting import format_media_message, format_request_confirmation

logger = logging.getLogger(__name__)

TELEGRAM_API_BASE = "https://api.telegram.org"
HTTP_TOO_MANY_REQUESTS = 429

DEFAULT_ALLOWED_UPDATES = ("message", "message_reaction")

# Slack on top of the long-poll timeout so the HTTP read does not expire first
_POLL_TIMEOUT_SLACK_SECONDS = 10.0


class TelegramError(DeliveryError):
    """Raised when a Bot API call fails."""

    def __init__(
        self,
        message: str,
        *,
        error_code: int | None = None,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message, retry_after=retry_after)
        self.error_code = error_code


class TelegramClient:
    """Async client for the Telegram Bot API."""

    def __init__(
        self,
        token: str,
        *,
        api_base: str = TELEGRAM_API_BASE,
        timeout_seconds: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._token = token
        self.api_base = api_base.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=f"{self.api_base}/bot{self._token}",
                    timeout=httpx.Timeout(self._timeout_seconds),
                    transport=self._transport,
                )
        return self._client

    async def call(
        self,
        method: str,
        payload: Mapping[str, Any] | None = None,
        *,
        timeout: float | None = None,
    ) -> Any:
        """Invoke a Bot API method and return its `result`."""
        client = await self._ensure_client()
        request_timeout = (
            httpx.Timeout(timeout) if timeout is not None else httpx.USE_CLIENT_DEFAULT
        )
        try:
            response = await client.post(
                f"/{method}", json=dict(payload or {}), timeout=request_timeout
            )
        except httpx.HTTPError as exc:
            raise TelegramError(f"Telegram {method} failed: {exc}") from exc

        try:
            body = response.json()
        except ValueError as exc:
            raise TelegramError(
                f"Telegram {method} returned invalid JSON (HTTP {response.status_code})",
                error_code=response.status_code,
            ) from exc

        if not body.get("ok", False):
            error_code = body.get("error_code", response.status_code)
            description = body.get("description", "unknown error")
            retry_after = None
            if error_code == HTTP_TOO_MANY_REQUESTS:
                parameters = body.get("parameters") or {}
                retry_after = float(parameters.get("retry_after", 1))
            raise TelegramError(
                f"Telegram {method} error {error_code}: {description}",
                error_code=error_code,
                retry_after=retry_after,
            )

        return body.get("result")

    async def send_message(self, chat_id: str | int, text: str, **options: Any) -> int:
        """Send *text* to *chat_id* and return the new message id."""
        payload = {"chat_id": chat_id, "text": text}
        payload.update({key: value for key, value in options.items() if value is not None})
        result = await self.call("sendMessage", payload)
        return int(result["message_id"])

    async def get_updates(
        self,
        offset: int | None = None,
        *,
        timeout: int = 30,
        allowed_updates: Sequence[str] = DEFAULT_ALLOWED_UPDATES,
    ) -> list[Mapping[str, Any]]:
        """Long-poll for updates newer than *offset*."""
        payload: dict[str, Any] = {"timeout": timeout, "allowed_updates": list(allowed_updates)}
        if offset is not None:
            payload["offset"] = offset
        result = await self.call(
            "getUpdates", payload, timeout=timeout + _POLL_TIMEOUT_SLACK_SECONDS
        )
        return list(result or [])

    async def get_chat(self, chat_id: str | int) -> Mapping[str, Any]:
        return await self.call("getChat", {"chat_id": chat_id})

    async def close(self) -> None:
        """Clean up underlying HTTP client resources."""
        async with self._client_lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None


class TelegramNotifier:
    """Sends announcements and replies to the configured chat."""

    def __init__(
        self,
        client: TelegramClient,
        chat_id: str | int,
        *,
        topic_id: int | None = None,
        retrier: DeliveryRetrier | None = None,
    ) -> None:
        self.client = client
        self.chat_id = chat_id
        self.topic_id = topic_id
        self.retrier = retrier or DeliveryRetrier()

    def _options(self, reply_to: int | None = None, **extra: Any) -> dict[str, Any]:
        options = dict(extra)
        if self.topic_id:
            options["message_thread_id"] = self.topic_id
        if reply_to is not None:
            options["reply_parameters"] = {
                "message_id": reply_to,
                "allow_sending_without_reply": True,
            }
        return options

    async def _send(self, text: str, name: str, options: Mapping[str, Any]) -> int:
        return await self.retrier.run(
            lambda: self.client.send_message(self.chat_id, text, **options),
            name=f"[TELEGRAM] {name}",
        )

    async def send_media_message(self, item: MediaItem, today: date | None = None) -> int:
        """Announce *item* and return the message id it was sent as."""
        text = format_media_message(item, today)
        options = self._options(parse_mode="HTML", link_preview_options={"is_disabled": False})
        return await self._send(text, f"send_media_message({item.title})", options)

    async def send_message(self, text: str, *, reply_to: int | None = None) -> int:
        return await self._send(
            text, "send_message", self._options(reply_to, parse_mode="HTML")
        )

    async def send_request_confirmation(
        self, username: str | None, title: str, *, reply_to: int | None = None
    ) -> int:
        text = format_request_confirmation(username, title)
        return await self._send(
            text, "send_request_confirmation", self._options(reply_to, parse_mode="HTML")
        )

    async def send_error(self, error: str, *, reply_to: int | None = None) -> int:
        """Send a plain-text error notice prefixed with a cross mark."""
        return await self._send(f"❌ {error}", "send_error", self._options(reply_to))

    async def reply(
        self, chat_id: str | int, text: str, *, thread_id: int | None = None
    ) -> int:
        """Answer a command in the chat (and topic) it came from."""
        return await self.retrier.run(
            lambda: self.client.send_message(chat_id, text, message_thread_id=thread_id),
            name="[TELEGRAM] reply",
        )

    async def verify_chat(self) -> Mapping[str, Any]:
        """Fetch the target chat, confirming the bot can reach it."""
        chat = await self.client.get_chat(self.chat_id)
        logger.info(
            "[TELEGRAM] Chat verified: %s - %r",
            chat.get("type"),
            chat.get("title") or "private",
        )
        return chat
