"""Pydantic schemas for chat history."""

from datetime import datetime

from sportshub.schemas.common import CamelModel


class ChatMessageRead(CamelModel):
    id: int
    team_name: str
    sender: str
    text: str
    timestamp: datetime
