from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse
from typing import List
from models.notification import NotificationModel, NotificationCreate, BulkDeleteRequest
from routes.deps import get_current_user_id, get_notifications_collection, get_broadcaster
from utils.realtime import NotificationBroadcaster, event_stream
from logging_config import get_logger
from config import config

router = APIRouter(prefix="/api/notifications", tags=["Notifications"])
logger = get_logger("notifications")


def parse_mongo_data(data):
    if isinstance(data, list):
        return [parse_mongo_data(item) for item in data]
    if isinstance(data, dict):
        return {k: parse_mongo_data(v) for k, v in data.items() if k != "_id"}
    return data


@router.post("", status_code=201)
async def create_notification(
    payload: NotificationCreate,
    current_user_id: str = Depends(get_current_user_id),
    collection=Depends(get_notifications_collection),
    live: NotificationBroadcaster = Depends(get_broadcaster),
):
    """Store a notification and push it to the recipient's live stream, if connected."""
    notification = NotificationModel(
        user_id=payload.user_id or current_user_id,
        type=payload.type,
        title=payload.title,
        message=payload.message,
        task_id=payload.task_id,
    )
    await collection.insert_one(notification.model_dump())

    delivered = live.send_to_user(notification.user_id, notification)
    logger.info(
        "Notification created",
        extra={"data": {"notification_id": notification.id, "type": notification.type, "live": delivered}},
    )
    return notification.model_dump(mode="json")


@router.get("", response_model=List[dict])
async def get_notifications(
    unread_only: bool = False,
    current_user_id: str = Depends(get_current_user_id),
    collection=Depends(get_notifications_collection),
):
    """Get the current user's notifications, newest first."""
    query = {"user_id": current_user_id}
    if unread_only:
        query["read"] = False

    notifications = await collection.find(query).sort("created_at", -1).to_list(50)
    return parse_mongo_data(notifications)


@router.get("/unread-count")
async def get_unread_count(
    current_user_id: str = Depends(get_current_user_id),
    collection=Depends(get_notifications_collection),
):
    """Get count of unread notifications."""
    count = await collection.count_documents({"user_id": current_user_id, "read": False})
    return {"count": count}


@router.get("/stream")
async def stream_notifications(
    current_user_id: str = Depends(get_current_user_id),
    live: NotificationBroadcaster = Depends(get_broadcaster),
):
    """Server-Sent Events stream of live notifications for the current user."""
    return StreamingResponse(
        event_stream(current_user_id, live, heartbeat_interval=config.SSE_HEARTBEAT_SECONDS),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive", "X-Accel-Buffering": "no"},
    )


@router.patch("/mark-all-read")
async def mark_all_read(
    current_user_id: str = Depends(get_current_user_id),
    collection=Depends(get_notifications_collection),
):
    """Mark all notifications as read for the current user."""
    result = await collection.update_many(
        {"user_id": current_user_id, "read": False},
        {"$set": {"read": True}}
    )
    return {"message": "All notifications marked as read", "updated": result.modified_count}


@router.patch("/{notification_id}/read")
async def mark_as_read(
    notification_id: str,
    current_user_id: str = Depends(get_current_user_id),
    collection=Depends(get_notifications_collection),
):
    """Mark a notification as read."""
    result = await collection.update_one(
        {"id": notification_id, "user_id": current_user_id},
        {"$set": {"read": True}}
    )
    if result.matched_count == 0:
        logger.warning("Notification not found for mark-as-read", extra={"data": {"notification_id": notification_id}})
        raise HTTPException(status_code=404, detail="Notification not found")
    return {"message": "Marked as read"}


@router.delete("/bulk")
async def delete_notifications(
    payload: BulkDeleteRequest,
    current_user_id: str = Depends(get_current_user_id),
    collection=Depends(get_notifications_collection),
):
    """Delete several of the current user's notifications."""
    result = await collection.delete_many({"id": {"$in": payload.ids}, "user_id": current_user_id})
    return {"message": "Notifications deleted", "deleted": result.deleted_count}


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: str,
    current_user_id: str = Depends(get_current_user_id),
    collection=Depends(get_notifications_collection),
):
    result = await collection.delete_one({"id": notification_id, "user_id": current_user_id})
    if result.deleted_count == 0:
        logger.warning("Notification not found for delete", extra={"data": {"notification_id": notification_id}})
        raise HTTPException(status_code=404, detail="Notification not found")
    return {"message": "Notification deleted"}
