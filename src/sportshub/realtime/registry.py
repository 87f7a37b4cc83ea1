"""Realtime session registry — who is connected, and to what.

Learn: Two registries behind one object, both process-scoped and owned
by the app (created in create_app, cleared in lifespan shutdown,
handed to handlers as a dependency):

1. Notifications: email → one ClientConnection. A second registration
   for the same email replaces the first (last one wins; one live
   session per user). Removal scans for the connection object itself,
   because a socket may close before — or without ever — registering.
2. Chat: a set of ClientConnections, each tagged with the team it
   joined (None until it sends a join). Broadcast goes to every open
   connection tagged with exactly that team name.

Every mutation here is synchronous. Sends snapshot the recipients
first and only then await, so no registry change ever straddles an
await point.
"""

import json
from dataclasses import dataclass
from typing import Any, Optional

import structlog
from starlette.websockets import WebSocket, WebSocketState

logger = structlog.get_logger()


@dataclass(eq=False)
class ClientConnection:
    """One live duplex connection. Identity-hashed (eq=False)."""

    websocket: WebSocket
    team_name: Optional[str] = None
    user_email: Optional[str] = None
    sender_name: Optional[str] = None  # from a verified ?token=, if any

    @property
    def is_open(self) -> bool:
        return self.websocket.client_state == WebSocketState.CONNECTED

    async def send_json(self, payload: dict[str, Any]) -> None:
        await self.websocket.send_text(json.dumps(payload, default=str))


class RealtimeRegistry:
    """Process-scoped registry of notification and chat connections."""

    def __init__(self) -> None:
        self._notification_clients: dict[str, ClientConnection] = {}
        self._chat_clients: set[ClientConnection] = set()

    # ─── Notifications ──────────────────────────────────

    def register_notifications(self, email: str, conn: ClientConnection) -> None:
        previous = self._notification_clients.get(email)
        self._notification_clients[email] = conn
        conn.user_email = email
        if previous is not None and previous is not conn:
            logger.info("realtime.notification_client_replaced", email=email)
        else:
            logger.info("realtime.notification_client_registered", email=email)

    def unregister_notifications(self, conn: ClientConnection) -> Optional[str]:
        """Forget this connection wherever it is registered."""
        for email, registered in list(self._notification_clients.items()):
            if registered is conn:
                del self._notification_clients[email]
                logger.info("realtime.notification_client_disconnected", email=email)
                return email
        return None

    def notification_client(self, email: str) -> Optional[ClientConnection]:
        return self._notification_clients.get(email)

    async def send_notification(self, email: str, notification: dict[str, Any]) -> bool:
        """Best-effort push to one user. True only if the frame went out."""
        conn = self._notification_clients.get(email)
        if conn is None or not conn.is_open:
            return False
        try:
            await conn.send_json({"type": "notification", "notification": notification})
        except Exception as e:
            logger.warning("realtime.notification_send_failed", email=email, error=str(e))
            self.unregister_notifications(conn)
            return False
        return True

    # ─── Chat ───────────────────────────────────────────

    def add_chat(self, conn: ClientConnection) -> None:
        self._chat_clients.add(conn)

    def join_team(self, conn: ClientConnection, team_name: str) -> None:
        """Tag (or re-tag) a chat connection with a team."""
        self._chat_clients.add(conn)
        conn.team_name = team_name
        logger.info("realtime.chat_joined", team=team_name)

    def remove_chat(self, conn: ClientConnection) -> None:
        self._chat_clients.discard(conn)

    def team_connections(self, team_name: str) -> list[ClientConnection]:
        return [
            c for c in self._chat_clients if c.team_name == team_name and c.is_open
        ]

    async def broadcast(self, team_name: str, payload: dict[str, Any]) -> int:
        """Send a frame to every open connection on the team. Returns deliveries."""
        recipients = self.team_connections(team_name)
        delivered = 0
        for conn in recipients:
            try:
                await conn.send_json(payload)
                delivered += 1
            except Exception as e:
                logger.warning("realtime.chat_send_failed", team=team_name, error=str(e))
                self.remove_chat(conn)
        return delivered

    # ─── Lifecycle ──────────────────────────────────────

    def stats(self) -> dict[str, int]:
        return {
            "notification_clients": len(self._notification_clients),
            "chat_clients": len(self._chat_clients),
        }

    async def close_all(self) -> None:
        """Close every tracked socket and empty both registries (shutdown)."""
        conns = set(self._notification_clients.values()) | self._chat_clients
        self._notification_clients.clear()
        self._chat_clients.clear()
        for conn in conns:
            if conn.is_open:
                try:
                    await conn.websocket.close(code=1001)
                except Exception as e:
                    logger.debug("realtime.close_failed", error=str(e))
        logger.info("realtime.registry_cleared", closed=len(conns))
