# src/taskline/connectors/matrix_connector.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import time

from nio import AsyncClient, MatrixRoom, RoomMessageText

from ..config import Settings
from ..core.dispatcher import CommandDispatcher
from ..core.ports import OutboundMessage
from ..core.render import to_plain_text
from .matrix_client import create_matrix_client

logger = logging.getLogger(__name__)


def _ms_now() -> int:
    return int(time.time() * 1000)


def _room_allowlist(settings_rooms: list[str]) -> set[str] | None:
    rooms = [r.strip() for r in (settings_rooms or []) if str(r).strip()]
    return set(rooms) if rooms else None


def is_matrix_id(user_id: str) -> bool:
    return user_id.startswith("@") and ":" in user_id


async def _send_text(client: AsyncClient, *, room_id: str, text: str) -> None:
    await client.room_send(
        room_id=room_id,
        message_type="m.room.message",
        content={"msgtype": "m.text", "body": text},
    )


class MatrixMessenger:
    """
    Messenger over Matrix rooms.

    The reply token is the room id the message came from. Pushes go to the last
    room the user wrote in, else to the first allowed room, addressed by user id.
    """

    def __init__(self, client: AsyncClient | None = None, *, fallback_rooms: list[str] | None = None) -> None:
        self._client = client
        self._fallback_rooms = list(fallback_rooms or [])
        self._last_room: dict[str, str] = {}

    def attach(self, client: AsyncClient | None) -> None:
        self._client = client

    def remember(self, user_id: str, room_id: str) -> None:
        self._last_room[user_id] = room_id

    def _require_client(self) -> AsyncClient:
        if self._client is None:
            raise RuntimeError("Matrix client is not connected")
        return self._client

    def room_for(self, user_id: str) -> str | None:
        room_id = self._last_room.get(user_id)
        if room_id:
            return room_id
        if self._fallback_rooms:
            return self._fallback_rooms[0]
        client = self._client
        if client is not None and client.rooms:
            return next(iter(client.rooms.keys()))
        return None

    async def reply(self, token: str, message: OutboundMessage) -> None:
        await _send_text(self._require_client(), room_id=token, text=to_plain_text(message))

    async def push(self, user_id: str, message: OutboundMessage) -> None:
        client = self._require_client()
        room_id = self.room_for(user_id)
        if not room_id:
            raise LookupError(f"no Matrix room to reach {user_id}")
        await _send_text(client, room_id=room_id, text=f"{user_id}: {to_plain_text(message)}")
        logger.info("Pushed to %s via room %s", user_id, room_id)


async def run_matrix_connector(
    settings: Settings,
    dispatcher: CommandDispatcher,
    messenger: MatrixMessenger,
    stop_event: asyncio.Event | None = None,
) -> None:
    """
    Matrix connector: init -> callbacks -> sync loop.

    Runs on the application's event loop; stop it by setting `stop_event` or
    cancelling the task.
    """
    if not settings.matrix_enabled:
        logger.info("Matrix connector disabled via settings.")
        return

    stop_event = stop_event or asyncio.Event()
    startup_ts = _ms_now()

    allowed_rooms = _room_allowlist(settings.matrix_rooms)
    logger.info("Matrix allowed_rooms=%s", allowed_rooms if allowed_rooms is not None else "ALL")

    client = await create_matrix_client(settings)
    if client is None:
        logger.error("Matrix client creation failed; connector will stop.")
        return

    messenger.attach(client)
    logger.info("Matrix client started (user=%s, homeserver=%s).", settings.matrix_user_id, settings.matrix_homeserver)

    async def message_callback(room: MatrixRoom, event: RoomMessageText) -> None:
        # Ignore history replayed by the first sync.
        ts = getattr(event, "server_timestamp", None)
        if ts is not None and ts <= startup_ts:
            return

        if event.sender == client.user_id:
            return

        if allowed_rooms is not None and room.room_id not in allowed_rooms:
            return

        body = (event.body or "").strip()
        if not body:
            return

        logger.info("Matrix <%s> %s: %r", room.display_name, event.sender, body)
        messenger.remember(event.sender, room.room_id)

        try:
            await client.room_typing(room.room_id, typing_state=True, timeout=30000)
        except Exception:
            logger.debug("Failed to send typing notification.", exc_info=True)

        try:
            await dispatcher.handle_text(event.sender, body, room.room_id)
        finally:
            with contextlib.suppress(Exception):
                await client.room_typing(room.room_id, typing_state=False, timeout=30000)

    client.add_event_callback(message_callback, RoomMessageText)

    try:
        logger.info("Matrix initial sync...")
        await client.sync(timeout=30000, full_state=True)
        logger.info("Matrix initial sync done. Joined rooms: %d", len(client.rooms))

        while not stop_event.is_set():
            await client.sync(timeout=30000, full_state=False)

    except asyncio.CancelledError:
        logger.info("Matrix connector cancelled.")
        raise
    except Exception:
        logger.exception("Matrix connector crashed.")
    finally:
        messenger.attach(None)
        with contextlib.suppress(Exception):
            await client.close()
        logger.info("Matrix connector stopped.")
