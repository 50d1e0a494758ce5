# backend/mindfulness/realtime/gateway.py
"""
Socket.IO gateway for group-session rooms: presence, typing and chat.

Connections authenticate once at handshake with `auth={"token": <jwt>}`.
Every inbound event goes through one dispatch wrapper that turns a failed
EventResult (or an exception) into an `error` event for that socket only.
"""
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Set

import socketio
import structlog
from socketio.exceptions import ConnectionRefusedError as SocketConnectionRefused

from mindfulness.api.deps import principal_from_token
from mindfulness.core.config import Settings
from mindfulness.core.errors import AppError
from mindfulness.crud import chat as chat_crud
from mindfulness.db.mongo import MongoDatabase
from mindfulness.schemas.social import ChatMessageRead

logger = structlog.get_logger(__name__)

EventHandler = Callable[[str, Any], Awaitable["EventResult"]]


@dataclass(frozen=True)
class EventResult:
    ok: bool = True
    error: Optional[str] = None

    @classmethod
    def success(cls) -> "EventResult":
        return cls()

    @classmethod
    def failure(cls, message: str) -> "EventResult":
        return cls(ok=False, error=message)


def _session_id_of(data: Any) -> Optional[str]:
    """Clients send either the bare id or {"sessionId": id}."""
    if isinstance(data, dict):
        data = data.get("sessionId")
    if isinstance(data, str) and data.strip():
        return data.strip()
    return None


class SessionGateway:
    def __init__(self, settings: Settings, database: MongoDatabase):
        self.settings = settings
        self.sio = socketio.AsyncServer(
            async_mode="asgi",
            cors_allowed_origins=[settings.CLIENT_URL],
            logger=False,
            engineio_logger=False,
        )
        self._database = database
        self._accepting = True
        self._closed = False
        self.active_sids: Set[str] = set()
        self._register_handlers()

    def _register_handlers(self) -> None:
        self.sio.on("connect", handler=self.connect)
        self.sio.on("disconnect", handler=self.disconnect)
        events: Dict[str, EventHandler] = {
            "join_session": self.join_session,
            "leave_session": self.leave_session,
            "send_message": self.send_message,
            "typing_start": self.typing_start,
            "typing_end": self.typing_end,
        }
        for event, handler in events.items():
            self.sio.on(event, handler=self.dispatch(event, handler))

    def dispatch(self, event: str, handler: EventHandler):
        async def wrapper(sid: str, data: Any = None) -> None:
            try:
                result = await handler(sid, data)
            except AppError as exc:
                result = EventResult.failure(exc.message)
            except Exception:
                logger.exception("Socket event failed", event=event, sid=sid)
                result = EventResult.failure(f"Failed to {event.replace('_', ' ')}")

            if not result.ok:
                await self.sio.emit("error", {"message": result.error}, to=sid)

        return wrapper

    async def _user(self, sid: str) -> Optional[Dict[str, Any]]:
        try:
            session = await self.sio.get_session(sid)
        except KeyError:
            return None
        if not session or not session.get("user_id"):
            return None
        return session

    # ---------- lifecycle ----------
    async def connect(self, sid: str, environ: dict, auth: Optional[dict] = None) -> None:
        if not self._accepting:
            raise SocketConnectionRefused("Server is shutting down")

        token = auth.get("token") if isinstance(auth, dict) else None
        if not token:
            raise SocketConnectionRefused("Authentication error")
        try:
            principal = principal_from_token(token, self.settings)
        except AppError as exc:
            logger.info("Socket authentication failed", sid=sid, reason=exc.message)
            raise SocketConnectionRefused("Authentication error")

        await self.sio.save_session(
            sid,
            {"user_id": principal.user_id, "username": principal.username, "is_admin": principal.is_admin},
        )
        self.active_sids.add(sid)
        logger.info("Socket connected", sid=sid, user_id=principal.user_id)

    async def disconnect(self, sid: str, reason: Any = None) -> None:
        self.active_sids.discard(sid)
        logger.info("Socket disconnected", sid=sid, reason=str(reason) if reason else None)

    async def close(self) -> None:
        """Refuse new connections, drop the open ones, stop background tasks."""
        if self._closed:
            return
        self._closed = True
        self._accepting = False
        for sid in list(self.active_sids):
            await self.sio.disconnect(sid)
        self.active_sids.clear()
        await self.sio.shutdown()
        logger.info("Socket gateway closed")

    # ---------- events ----------
    async def join_session(self, sid: str, data: Any) -> EventResult:
        user = await self._user(sid)
        if user is None:
            return EventResult.failure("Not authenticated")
        session_id = _session_id_of(data)
        if session_id is None:
            return EventResult.failure("sessionId is required")

        await chat_crud.add_system_message(self._database.db, session_id, f"{user['username']} joined the session")
        await self.sio.enter_room(sid, session_id)
        await self.sio.emit(
            "user_joined",
            {"userId": user["user_id"], "username": user["username"]},
            room=session_id,
        )
        return EventResult.success()

    async def leave_session(self, sid: str, data: Any) -> EventResult:
        user = await self._user(sid)
        if user is None:
            return EventResult.failure("Not authenticated")
        session_id = _session_id_of(data)
        if session_id is None:
            return EventResult.failure("sessionId is required")

        await self.sio.leave_room(sid, session_id)
        await chat_crud.add_system_message(self._database.db, session_id, f"{user['username']} left the session")
        payload = {"userId": user["user_id"], "username": user["username"]}
        await self.sio.emit("user_left", payload, room=session_id)
        # the actor is no longer in the room
        await self.sio.emit("user_left", payload, to=sid)
        return EventResult.success()

    async def send_message(self, sid: str, data: Any) -> EventResult:
        user = await self._user(sid)
        if user is None:
            return EventResult.failure("Not authenticated")
        if not isinstance(data, dict):
            return EventResult.failure("Invalid message payload")
        session_id = _session_id_of(data)
        content = data.get("content")
        if session_id is None:
            return EventResult.failure("sessionId is required")
        if not isinstance(content, str) or not content.strip():
            return EventResult.failure("Message content is required")

        message = await chat_crud.add_message(self._database.db, session_id, user["user_id"], content.strip())
        await self.broadcast_message(message, user["username"])
        return EventResult.success()

    async def _typing(self, event: str, sid: str, data: Any) -> EventResult:
        user = await self._user(sid)
        if user is None:
            return EventResult.failure("Not authenticated")
        session_id = _session_id_of(data)
        if session_id is None:
            return EventResult.failure("sessionId is required")
        await self.sio.emit(
            event,
            {"userId": user["user_id"], "username": user["username"]},
            room=session_id,
        )
        return EventResult.success()

    async def typing_start(self, sid: str, data: Any) -> EventResult:
        return await self._typing("typing_start", sid, data)

    async def typing_end(self, sid: str, data: Any) -> EventResult:
        return await self._typing("typing_end", sid, data)

    # ---------- used by the REST chat route ----------
    async def broadcast_message(self, message: ChatMessageRead, username: Optional[str] = None) -> None:
        await self.sio.emit(
            "new_message",
            {
                "id": message.id,
                "content": message.content,
                "type": message.type.value,
                "userId": message.sender_id,
                "username": username,
                "createdAt": message.created_at.isoformat(),
            },
            room=message.session_id,
        )
