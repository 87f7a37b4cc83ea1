"""Chat service — persisting and reading team chat messages."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from sportshub.db.models import ChatMessage, utcnow


class ChatService:
    """Business logic for team chat history."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def save_message(self, team_name: str, sender: str, text: str) -> ChatMessage:
        """Store a message; the server assigns the timestamp."""
        message = ChatMessage(
            team_name=team_name, sender=sender, text=text, timestamp=utcnow()
        )
        self.db.add(message)
        await self.db.commit()
        return message

    async def recent(self, team_name: str, limit: int = 100) -> list[ChatMessage]:
        """The team's last `limit` messages, oldest first."""
        result = await self.db.execute(
            select(ChatMessage)
            .where(ChatMessage.team_name == team_name)
            .order_by(ChatMessage.id.desc())
            .limit(limit)
        )
        return list(reversed(result.scalars().all()))


def message_frame(message: ChatMessage) -> dict:
    return {
        "type": "message",
        "teamName": message.team_name,
        "sender": message.sender,
        "text": message.text,
        "timestamp": message.timestamp.isoformat(),
    }
