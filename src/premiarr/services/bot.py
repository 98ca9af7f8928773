"""Long-polling Telegram worker: heart reactions and chat commands."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Mapping
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from premiarr.clients.seerr import SeerrError
from premiarr.clients.telegram import TelegramClient, TelegramError, TelegramNotifier
from premiarr.services.announcer import ReleaseAnnouncer
from premiarr.services.delivery import DeliveryError

logger = logging.getLogger(__name__)

HELP_TEXT = (
    "\U0001f3ac Premiarr Bot\n\n"
    "I'll notify this group about new TV show premieres with Rotten Tomatoes scores.\n\n"
    "React with ❤️ to any show to request it on Jellyseerr!\n\n"
    "Commands:\n"
    "/tonight - Show new TV premieres tonight\n"
    "/movies - Show new movies at home\n"
    "/stats - Show notification counts"
)
STATUS_TEXT = "✅ Premiarr bot is running!"

_ERROR_BACKOFF_SECONDS = 5.0


def parse_command(text: str | None) -> str | None:
    """Return the bare command name of a "/command@bot args" message."""
    if not text or not text.startswith("/"):
        return None
    head = text.split(maxsplit=1)[0][1:]
    return head.split("@", 1)[0].lower() or None


def reaction_emojis(reaction: Mapping[str, Any]) -> list[str]:
    return [
        entry["emoji"]
        for entry in reaction.get("new_reaction") or []
        if entry.get("type") == "emoji" and "emoji" in entry
    ]


class BotWorker:
    """Polls `getUpdates` and dispatches each update on its own task."""

    def __init__(
        self,
        client: TelegramClient,
        notifier: TelegramNotifier,
        announcer: ReleaseAnnouncer,
        *,
        poll_timeout: int = 30,
    ) -> None:
        self.client = client
        self.notifier = notifier
        self.announcer = announcer
        self.poll_timeout = poll_timeout
        self.offset: int | None = None
        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()
        self._inflight: set[asyncio.Task[None]] = set()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start the background polling loop."""
        if self._task is None or self._task.done():
            self._stopping.clear()
            self._task = asyncio.create_task(self._run())
            logger.info("Starting Telegram bot...")

    async def stop(self) -> None:
        """Stop polling and cancel any update still being handled."""
        if self._task is None:
            return

        self._stopping.set()
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

        for task in list(self._inflight):
            task.cancel()
        if self._inflight:
            await asyncio.gather(*self._inflight, return_exceptions=True)

    async def _run(self) -> None:
        while not self._stopping.is_set():
            try:
                updates = await self.client.get_updates(self.offset, timeout=self.poll_timeout)
            except TelegramError as exc:
                logger.warning("BotWorker failed to poll updates: %s", exc)
                await asyncio.sleep(_ERROR_BACKOFF_SECONDS)
                continue

            for update in updates:
                try:
                    self.offset = int(update["update_id"]) + 1
                except (ValueError, TypeError, KeyError) as exc:
                    logger.error("Skipping malformed update %r: %s", update, exc, exc_info=True)
                    continue
                task = asyncio.create_task(self.dispatch(update))
                self._inflight.add(task)
                task.add_done_callback(self._inflight.discard)

    def _is_target_chat(self, chat: Mapping[str, Any] | None) -> bool:
        target = str(self.notifier.chat_id)
        if not chat or not target.lstrip("-").isdigit():
            return True
        return str(chat.get("id")) == target

    async def dispatch(self, update: Mapping[str, Any]) -> None:
        """Handle one update; failures are logged and never escape."""
        try:
            if "message_reaction" in update:
                await self._on_reaction(update["message_reaction"])
            elif "message" in update:
                await self._on_message(update["message"])
        except (DeliveryError, SeerrError) as exc:
            logger.error("Failed to handle update %s: %s", update.get("update_id"), exc)
        except SQLAlchemyError as exc:
            logger.error("Ledger error handling update %s: %s", update.get("update_id"), exc)
        except (ValueError, TypeError, KeyError, AttributeError) as exc:
            logger.error(
                "Malformed update %s: %s", update.get("update_id"), exc, exc_info=True
            )

    async def _on_reaction(self, reaction: Mapping[str, Any]) -> None:
        if not self._is_target_chat(reaction.get("chat")):
            return

        message_id = int(reaction["message_id"])
        emojis = reaction_emojis(reaction)
        logger.debug("[REACTION] Received reaction on message %s: %s", message_id, emojis)

        user = reaction.get("user") or {}
        await self.announcer.handle_reaction(
            message_id, emojis, user.get("id"), user.get("username")
        )

    async def _on_message(self, message: Mapping[str, Any]) -> None:
        command = parse_command(message.get("text"))
        if command is None:
            return

        chat_id = (message.get("chat") or {}).get("id")
        thread_id = message.get("message_thread_id")
        logger.debug("Received /%s from chat %s", command, chat_id)

        if command == "start":
            await self.notifier.reply(chat_id, HELP_TEXT, thread_id=thread_id)
        elif command == "status":
            await self.notifier.reply(chat_id, STATUS_TEXT, thread_id=thread_id)
        elif command == "stats":
            await self.notifier.reply(chat_id, self.announcer.stats_text(), thread_id=thread_id)
        elif command == "tonight":
            await self.announcer.send_new_tv()
        elif command == "movies":
            await self.announcer.send_new_movies()
