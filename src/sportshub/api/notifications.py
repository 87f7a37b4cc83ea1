"""Admin notification routes — fan-out send and paginated history."""

import math
from datetime import timezone

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from sportshub.api.deps import get_realtime
from sportshub.auth.dependencies import CurrentIdentity, require_admin
from sportshub.db.engine import get_db
from sportshub.errors import ValidationError
from sportshub.realtime.registry import RealtimeRegistry
from sportshub.schemas.notification import (
    NotificationHistoryPage,
    NotificationHistoryRead,
    NotificationSend,
    NotificationSendResult,
    Pagination,
)
from sportshub.services.notification_service import (
    NotificationPayload,
    NotificationService,
)

router = APIRouter(prefix="/admin/notifications")


def _svc(
    db: AsyncSession = Depends(get_db),
    registry: RealtimeRegistry = Depends(get_realtime),
) -> NotificationService:
    return NotificationService(db, registry)


@router.post("/send", response_model=NotificationSendResult)
async def send_notification(
    body: NotificationSend,
    identity: CurrentIdentity = Depends(require_admin),
    svc: NotificationService = Depends(_svc),
):
    """Persist to every targeted log and push to whoever is online.

    sentCount counts persisted log entries; realTimeDelivered counts
    frames that actually went out over a live socket.
    """
    scheduled_for = None
    if body.scheduled:
        if body.schedule_date_time is None:
            raise ValidationError("Schedule date and time are required.")
        scheduled_for = body.schedule_date_time
        if scheduled_for.tzinfo is None:
            scheduled_for = scheduled_for.replace(tzinfo=timezone.utc)

    result = await svc.send(
        NotificationPayload(
            title=body.title,
            body=body.message,
            icon=body.icon,
            priority=body.priority,
        ),
        body.target,
        specific_email=body.specific_email,
        bulk_emails=body.bulk_emails,
        sent_by=identity.full_name or identity.email,
        scheduled_for=scheduled_for,
    )
    return NotificationSendResult(
        message="Notification sent successfully!",
        sent_count=result.persisted_count,
        real_time_delivered=result.realtime_delivered,
    )


@router.get("/history", response_model=NotificationHistoryPage)
async def notification_history(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    svc: NotificationService = Depends(_svc),
):
    rows, total = await svc.history(page=page, limit=limit)
    return NotificationHistoryPage(
        notifications=[NotificationHistoryRead.model_validate(r) for r in rows],
        pagination=Pagination(
            page=page, limit=limit, total=total, pages=math.ceil(total / limit)
        ),
    )
