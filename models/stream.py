from pydantic import BaseModel, ConfigDict
from typing import Literal, Optional
from models.notification import NotificationModel


class ConnectedFrame(BaseModel):
    type: Literal['connected'] = 'connected'
    message: Optional[str] = None

    model_config = ConfigDict(extra="ignore")


class NotificationFrame(BaseModel):
    type: Literal['notification'] = 'notification'
    notification: NotificationModel

    model_config = ConfigDict(extra="ignore")


class HeartbeatFrame(BaseModel):
    type: Literal['heartbeat'] = 'heartbeat'
    timestamp: Optional[float] = None  # Epoch milliseconds; only used as a liveness marker

    model_config = ConfigDict(extra="ignore")
