"""Notification routes: the push stream and the admin connection report."""
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from src.ff_common.response import ApiResponse, success_response
from src.ff_gateway.auth.dependencies import get_stream_user, require_admin
from src.ff_gateway.user.db_models import UserModel
from src.ff_notify.domain.hub import NotificationHub

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])

_SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def get_notification_hub(request: Request) -> NotificationHub:
    """FastAPI dependency: the hub created by the app lifespan."""
    return request.app.state.notification_hub


@router.get("/stream", summary="Open the push notification stream")
async def notification_stream(
    request: Request,
    current_user: UserModel = Depends(get_stream_user),
    hub: NotificationHub = Depends(get_notification_hub),
) -> StreamingResponse:
    user_key = current_user.discord_id
    channel = hub.open_channel(user_key)
    logger.info("Push stream opened for %s", user_key)
    return StreamingResponse(
        hub.stream(user_key, channel, request.is_disconnected),
        media_type="text/event-stream",
        headers=_SSE_HEADERS,
    )


@router.get("/status", response_model=ApiResponse, summary="Push connection report (admin)")
async def notification_status(
    request: Request,
    _admin: UserModel = Depends(require_admin),
    hub: NotificationHub = Depends(get_notification_hub),
) -> ApiResponse:
    return success_response(
        {
            "connected_users": len(hub),
            "user_ids": hub.connected_users(),
            "heartbeat_seconds": hub.heartbeat_seconds,
        },
        request=request,
    )
