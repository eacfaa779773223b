from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, Literal, List
from datetime import datetime, timezone
import uuid

NotificationKind = Literal[
    'task_assigned', 'task_completed', 'task_overdue', 'task_deadline',
    'daily_progress', 'weekly_report', 'manager_summary', 'general'
]


class NotificationModel(BaseModel):
    """In-app notification for task lifecycle events and periodic reports."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str  # Who receives the notification
    type: NotificationKind = 'general'

    # Content
    title: str
    message: str

    # Reference
    task_id: Optional[str] = None  # Task this notification is about, if any

    # State
    read: bool = False
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class NotificationCreate(BaseModel):
    """Payload for creating a notification. user_id defaults to the caller."""
    user_id: Optional[str] = None
    type: NotificationKind = 'general'
    title: str = Field(min_length=1)
    message: str = Field(min_length=1)
    task_id: Optional[str] = None


class BulkDeleteRequest(BaseModel):
    ids: List[str] = Field(min_length=1)
