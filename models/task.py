from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, Literal, List, Union
from datetime import datetime

TaskStatusValue = Literal['todo', 'in_progress', 'completed', 'blocker']
TaskPriorityValue = Literal['high', 'medium', 'low']


class SubtaskSummary(BaseModel):
    """Read-only view of a subtask as it appears in notifications and reports."""
    id: Optional[Union[int, str]] = None
    title: str
    description: Optional[str] = None
    deadline: Optional[datetime] = None  # A bare date parses as midnight
    priority: Optional[TaskPriorityValue] = None
    status: Optional[TaskStatusValue] = None
    blocker_reason: Optional[str] = None
    created_by: Optional[str] = None  # Creator display name

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class TaskSummary(SubtaskSummary):
    subtasks: List[SubtaskSummary] = Field(default_factory=list)
