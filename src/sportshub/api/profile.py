"""Profile, notification-log and chat-history routes for the signed-in user."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from sportshub.auth.dependencies import CurrentIdentity, get_current_user
from sportshub.db.engine import get_db
from sportshub.schemas.chat import ChatMessageRead
from sportshub.schemas.common import MessageResponse
from sportshub.schemas.user import ProfileUpdate, ProfileUpdateResponse, UserRead
from sportshub.services.chat_service import ChatService
from sportshub.services.user_service import UserService

router = APIRouter()


def _svc(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)


@router.get("/profile", response_model=UserRead)
async def get_profile(
    identity: CurrentIdentity = Depends(get_current_user),
    svc: UserService = Depends(_svc),
):
    """Current user with derived joined teams and the notification log."""
    user = await svc.get_user(identity.account_id)
    return UserRead.model_validate(await svc.profile(user))


@router.post("/profile/update", response_model=ProfileUpdateResponse)
async def update_profile(
    body: ProfileUpdate,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: UserService = Depends(_svc),
):
    user = await svc.get_user(identity.account_id)
    user = await svc.update_profile(user, body.full_name, body.mobile_number)
    return ProfileUpdateResponse(
        message="Profile updated successfully!",
        user=UserRead.model_validate(await svc.profile(user)),
    )


@router.post("/notifications/mark-read", response_model=MessageResponse)
async def mark_notifications_read(
    identity: CurrentIdentity = Depends(get_current_user),
    svc: UserService = Depends(_svc),
):
    user = await svc.get_user(identity.account_id)
    await svc.notifications.mark_all_read(user.id)
    return MessageResponse(message="Notifications marked as read")


@router.get("/chat/{team_name}", response_model=list[ChatMessageRead])
async def chat_history(
    team_name: str,
    identity: CurrentIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """The team's last 100 messages, oldest first."""
    return await ChatService(db).recent(team_name, limit=100)
