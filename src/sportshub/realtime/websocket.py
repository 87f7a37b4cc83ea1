"""WebSocket endpoints — team chat and live notifications.

Learn: Two sockets, one per intent:
- `/notifications`: the client sends {type:'register', userEmail} and
  from then on receives {type:'notification', notification} frames
  pushed by the admin fan-out. Answered with {type:'registered'}.
- `/` (chat): the client sends {type:'join', teamName}, gets the recent
  history back as {type:'history', teamName, messages}, and then every
  {type:'message', sender, text} it sends is stored and broadcast to
  all connections joined to the same team.

Both accept an optional ?token=<access token>. An invalid token closes
the socket with 4001 before it is accepted. A valid token pins the
identity: chat messages carry the token's full name as sender, and a
notification registration always uses the token's email.

Every frame is handled on its own. A malformed or failing frame is
logged and dropped; the connection stays up.
"""

import json
from typing import Any, Optional

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from sportshub.auth.dependencies import CurrentIdentity, identity_from_token
from sportshub.config import settings
from sportshub.db.engine import async_session_factory
from sportshub.errors import AppError
from sportshub.realtime.registry import ClientConnection, RealtimeRegistry
from sportshub.services.chat_service import ChatService, message_frame

logger = structlog.get_logger()
router = APIRouter()


async def _authenticate(websocket: WebSocket) -> tuple[bool, Optional[CurrentIdentity]]:
    """(accepted, identity). Rejected sockets are already closed."""
    token = websocket.query_params.get("token")
    if not token:
        return True, None
    try:
        return True, identity_from_token(token)
    except AppError as e:
        logger.info("realtime.auth_rejected", path=websocket.url.path, code=e.code)
        await websocket.close(code=4001, reason="Invalid or expired token")
        return False, None


async def _receive_text(websocket: WebSocket) -> Optional[str]:
    """Next text frame, or None for a binary one (logged and dropped)."""
    message = await websocket.receive()
    if message["type"] == "websocket.disconnect":
        raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))
    text = message.get("text")
    if text is None:
        logger.warning("realtime.frame_malformed", kind="binary")
    return text


def _parse(raw: str) -> Optional[dict[str, Any]]:
    try:
        frame = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("realtime.frame_malformed", size=len(raw))
        return None
    if not isinstance(frame, dict):
        logger.warning("realtime.frame_malformed", kind=type(frame).__name__)
        return None
    return frame


def _error(message: str) -> dict[str, str]:
    return {"type": "error", "message": message}


# ─── Chat ───────────────────────────────────────────────


async def _chat_join(conn: ClientConnection, registry: RealtimeRegistry, frame: dict) -> None:
    team_name = str(frame.get("teamName") or "").strip()
    if not team_name:
        await conn.send_json(_error("teamName is required."))
        return
    registry.join_team(conn, team_name)
    async with async_session_factory() as db:
        history = await ChatService(db).recent(team_name, settings.chat_history_limit)
    await conn.send_json(
        {
            "type": "history",
            "teamName": team_name,
            "messages": [message_frame(m) for m in history],
        }
    )


async def _chat_message(conn: ClientConnection, registry: RealtimeRegistry, frame: dict) -> None:
    team_name = conn.team_name
    if team_name is None:
        await conn.send_json(_error("Join a team before sending messages."))
        return
    text = str(frame.get("text") or "").strip()
    if not text:
        return
    sender = conn.sender_name or str(frame.get("sender") or "").strip() or "Anonymous"

    async with async_session_factory() as db:
        saved = await ChatService(db).save_message(team_name, sender, text)
    delivered = await registry.broadcast(team_name, message_frame(saved))
    logger.info("realtime.chat_message", team=team_name, delivered=delivered)


async def _handle_chat_frame(
    conn: ClientConnection, registry: RealtimeRegistry, raw: str
) -> None:
    frame = _parse(raw)
    if frame is None:
        return
    kind = frame.get("type")
    if kind == "join":
        await _chat_join(conn, registry, frame)
    elif kind == "message":
        await _chat_message(conn, registry, frame)
    elif kind == "ping":
        await conn.send_json({"type": "pong"})
    else:
        logger.debug("realtime.frame_ignored", kind=kind)


@router.websocket("/")
async def chat_websocket(websocket: WebSocket):
    """Team chat socket. Connected → (join) → Joined(team) → Closed."""
    accepted, identity = await _authenticate(websocket)
    if not accepted:
        return
    await websocket.accept()

    registry: RealtimeRegistry = websocket.app.state.realtime
    conn = ClientConnection(
        websocket, sender_name=identity.full_name if identity else None
    )
    registry.add_chat(conn)
    logger.info("realtime.chat_connected")

    try:
        while True:
            raw = await _receive_text(websocket)
            if raw is None:
                continue
            try:
                await _handle_chat_frame(conn, registry, raw)
            except WebSocketDisconnect:
                raise
            except Exception:
                logger.exception("realtime.chat_frame_failed", team=conn.team_name)
    except WebSocketDisconnect:
        pass
    finally:
        registry.remove_chat(conn)
        logger.info("realtime.chat_disconnected", team=conn.team_name)


# ─── Notifications ──────────────────────────────────────


@router.websocket("/notifications")
async def notifications_websocket(websocket: WebSocket):
    """Live notification socket; one registered connection per email."""
    accepted, identity = await _authenticate(websocket)
    if not accepted:
        return
    await websocket.accept()

    registry: RealtimeRegistry = websocket.app.state.realtime
    conn = ClientConnection(websocket)

    try:
        while True:
            raw = await _receive_text(websocket)
            if raw is None:
                continue
            frame = _parse(raw)
            if frame is None:
                continue
            try:
                kind = frame.get("type")
                if kind == "register":
                    email = identity.email if identity else str(frame.get("userEmail") or "").strip()
                    if not email:
                        await conn.send_json(_error("userEmail is required."))
                        continue
                    registry.register_notifications(email, conn)
                    await conn.send_json({"type": "registered", "userEmail": email})
                elif kind == "ping":
                    await conn.send_json({"type": "pong"})
            except WebSocketDisconnect:
                raise
            except Exception:
                logger.exception("realtime.notification_frame_failed")
    except WebSocketDisconnect:
        pass
    finally:
        registry.unregister_notifications(conn)
