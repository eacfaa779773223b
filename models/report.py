from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, Literal, List, Union, Annotated
from models.task import TaskSummary


class RecipientProfile(BaseModel):
    name: str
    email: str
    department: Optional[str] = None


class ProgressSnapshot(BaseModel):
    """
    Counters and task list feeding the daily/weekly reports.
    Derived figures (overdue, carried over, completion rate) are not stored
    here; see utils.progress.summarize_progress.
    """
    completed: int = Field(default=0, ge=0)
    pending: int = Field(default=0, ge=0)
    blockers: int = Field(default=0, ge=0)
    tasks: List[TaskSummary] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class TeamMemberSummary(BaseModel):
    name: str
    completed_tasks: int = Field(default=0, ge=0)  # Completed "today"
    tasks: List[TaskSummary] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


# --- Attachment requests: one variant per notification kind ---

class _AttachmentBase(BaseModel):
    recipient: RecipientProfile

    model_config = ConfigDict(frozen=True)


class TaskAssignedAttachment(_AttachmentBase):
    kind: Literal['task_assigned'] = 'task_assigned'
    task: TaskSummary


class TaskCompletedAttachment(_AttachmentBase):
    kind: Literal['task_completed'] = 'task_completed'
    task: TaskSummary


class TaskDeadlineAttachment(_AttachmentBase):
    kind: Literal['task_deadline'] = 'task_deadline'
    task: TaskSummary


class TaskOverdueAttachment(_AttachmentBase):
    kind: Literal['task_overdue'] = 'task_overdue'
    overdue: List[TaskSummary] = Field(min_length=1)


class DailyProgressAttachment(_AttachmentBase):
    kind: Literal['daily_progress'] = 'daily_progress'
    progress: ProgressSnapshot


class WeeklyReportAttachment(_AttachmentBase):
    kind: Literal['weekly_report'] = 'weekly_report'
    progress: ProgressSnapshot


class ManagerSummaryAttachment(_AttachmentBase):
    kind: Literal['manager_summary'] = 'manager_summary'
    team: List[TeamMemberSummary]


class GeneralAttachment(_AttachmentBase):
    kind: Literal['general'] = 'general'


AttachmentRequest = Annotated[
    Union[
        TaskAssignedAttachment,
        TaskCompletedAttachment,
        TaskDeadlineAttachment,
        TaskOverdueAttachment,
        DailyProgressAttachment,
        WeeklyReportAttachment,
        ManagerSummaryAttachment,
        GeneralAttachment,
    ],
    Field(discriminator="kind"),
]


class ProgressRequest(BaseModel):
    tasks: List[TaskSummary] = Field(default_factory=list)


class ProgressStatsResponse(BaseModel):
    completed: int
    pending: int
    blockers: int
    total: int
    overdue_count: int
    carried_over_count: int
    completion_rate: int
