"""
Notification attachment documents.

Turns an attachment request (one variant per notification kind) into a
paginated Word document (.docx). Every kind has a title, a one-line
description and a body builder; the dispatch table at the bottom of the
module ties them together.
"""

import io
import zipfile
from datetime import datetime
from typing import Callable, Dict, List, Optional

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.image.image import Image as DocxImage
from docx.shared import Inches, Mm, Pt, RGBColor
from pydantic import ValidationError

from config import config
from constants import NotificationKinds
from logging_config import get_logger
from models.report import (
    DailyProgressAttachment,
    GeneralAttachment,
    ManagerSummaryAttachment,
    TaskAssignedAttachment,
    TaskCompletedAttachment,
    TaskDeadlineAttachment,
    TaskOverdueAttachment,
    WeeklyReportAttachment,
)
from models.task import SubtaskSummary, TaskSummary
from utils.progress import summarize_progress

logger = get_logger("documents")

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

BRAND_COLOR = RGBColor(0x2E, 0x9D, 0x74)
SUCCESS_COLOR = RGBColor(0x00, 0x80, 0x00)
WARNING_COLOR = RGBColor(0xFF, 0xA5, 0x00)
DANGER_COLOR = RGBColor(0xFF, 0x00, 0x00)

LOGO_WIDTH = 100  # points
LOGO_MAX_HEIGHT = 60

# Zip entries get a fixed mtime so identical inputs give identical bytes
ZIP_TIMESTAMP = (1980, 1, 1, 0, 0, 0)


class DocumentDataError(ValueError):
    """The data block required by a notification kind is missing or malformed."""


TITLES = {
    NotificationKinds.TASK_ASSIGNED: "Task Assignment Notification",
    NotificationKinds.TASK_COMPLETED: "Task Completion Report",
    NotificationKinds.TASK_OVERDUE: "Overdue Tasks Alert",
    NotificationKinds.TASK_DEADLINE: "Deadline Reminder",
    NotificationKinds.DAILY_PROGRESS: "Daily Progress Summary",
    NotificationKinds.WEEKLY_REPORT: "Weekly Progress Report",
    NotificationKinds.MANAGER_SUMMARY: "Team Summary Report",
    NotificationKinds.GENERAL: "Task Management Notification",
}

DESCRIPTIONS = {
    NotificationKinds.TASK_ASSIGNED: "New task assignment details and requirements",
    NotificationKinds.TASK_COMPLETED: "Task completion confirmation and details",
    NotificationKinds.TASK_OVERDUE: "Overdue tasks requiring immediate attention",
    NotificationKinds.TASK_DEADLINE: "Upcoming deadline reminder and task details",
    NotificationKinds.DAILY_PROGRESS: "Daily task progress summary and statistics",
    NotificationKinds.WEEKLY_REPORT: "Weekly task progress summary and analytics",
    NotificationKinds.MANAGER_SUMMARY: "Team performance summary and completed tasks",
    NotificationKinds.GENERAL: "Task management system notification",
}

# Which keyword carries the data block for each kind (None = no block)
REQUIRED_BLOCKS = {
    NotificationKinds.TASK_ASSIGNED: "task",
    NotificationKinds.TASK_COMPLETED: "task",
    NotificationKinds.TASK_OVERDUE: "overdue",
    NotificationKinds.TASK_DEADLINE: "task",
    NotificationKinds.DAILY_PROGRESS: "progress",
    NotificationKinds.WEEKLY_REPORT: "progress",
    NotificationKinds.MANAGER_SUMMARY: "team",
    NotificationKinds.GENERAL: None,
}

_VARIANTS = {
    NotificationKinds.TASK_ASSIGNED: TaskAssignedAttachment,
    NotificationKinds.TASK_COMPLETED: TaskCompletedAttachment,
    NotificationKinds.TASK_OVERDUE: TaskOverdueAttachment,
    NotificationKinds.TASK_DEADLINE: TaskDeadlineAttachment,
    NotificationKinds.DAILY_PROGRESS: DailyProgressAttachment,
    NotificationKinds.WEEKLY_REPORT: WeeklyReportAttachment,
    NotificationKinds.MANAGER_SUMMARY: ManagerSummaryAttachment,
    NotificationKinds.GENERAL: GeneralAttachment,
}


def build_attachment_request(kind: str, recipient, task=None, progress=None, team=None, overdue=None):
    """
    Build the typed attachment request for callers holding loose data.

    Exactly the block required by `kind` must be supplied. A missing block,
    an extra block, or an unknown kind raises DocumentDataError.
    """
    if kind not in _VARIANTS:
        raise DocumentDataError(f"Unknown notification kind: {kind!r}")

    blocks = {"task": task, "progress": progress, "team": team, "overdue": overdue}
    required = REQUIRED_BLOCKS[kind]

    if required is not None and blocks[required] is None:
        raise DocumentDataError(f"'{kind}' documents require {required} data")

    foreign = sorted(name for name, value in blocks.items() if value is not None and name != required)
    if foreign:
        raise DocumentDataError(f"'{kind}' documents do not accept {', '.join(foreign)} data")

    payload = {"recipient": recipient}
    if required is not None:
        payload[required] = blocks[required]
    try:
        return _VARIANTS[kind](**payload)
    except ValidationError as e:
        raise DocumentDataError(f"Invalid {required or 'recipient'} data for '{kind}': {e}") from e


def load_branding_image(path: Optional[str] = None) -> Optional[bytes]:
    """Read the branding logo. No configured path, or an unreadable file, yields None."""
    path = path or config.BRANDING_LOGO_PATH
    if not path:
        return None
    try:
        with open(path, "rb") as fh:
            return fh.read()
    except OSError as e:
        logger.warning(f"Could not load branding image: {e}", extra={"data": {"path": path}})
        return None


# --- Formatting helpers ---

def format_date(value: Optional[datetime]) -> str:
    return value.strftime("%B %d, %Y") if value else "Not set"


def or_default(value: Optional[str], fallback: str) -> str:
    return value if value else fallback


class _Writer:
    """Appends styled single-run paragraphs to a python-docx Document."""

    def __init__(self, doc):
        self.doc = doc

    def line(self, text: str, size: float = 10, bold: bool = False, italic: bool = False, color=None,
             center: bool = False, indent: float = 0, space_before: float = 0, space_after: float = 2.5):
        paragraph = self.doc.add_paragraph()
        run = paragraph.add_run(text)
        run.font.size = Pt(size)
        if bold:
            run.bold = True
        if italic:
            run.italic = True
        if color is not None:
            run.font.color.rgb = color
        if center:
            paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
        fmt = paragraph.paragraph_format
        if indent:
            fmt.left_indent = Pt(indent)
        fmt.space_before = Pt(space_before)
        fmt.space_after = Pt(space_after)
        return paragraph

    def heading(self, text: str):
        paragraph = self.doc.add_heading(text, level=2)
        paragraph.paragraph_format.space_before = Pt(15)
        paragraph.paragraph_format.space_after = Pt(5)
        return paragraph

    def body(self, text: str):
        return self.line(text)

    def strong(self, text: str):
        return self.line(text, bold=True)

    def emphasis(self, text: str, color):
        return self.line(text, bold=True, color=color)

    def item(self, text: str, color=None):
        return self.line(text, bold=True, color=color, space_before=5)

    def detail(self, text: str):
        return self.line(text, size=9, indent=12)

    def sub_item(self, text: str):
        return self.line(text, size=8, indent=24)

    def blocker(self, text: str):
        return self.line(text, size=9, italic=True, color=DANGER_COLOR, indent=12)

    def note(self, text: str):
        return self.line(text, size=9, italic=True, indent=12)


# --- Shared body fragments ---

def _task_fields(task: TaskSummary, w: _Writer, deadline_color=None):
    if task.description:
        w.body(f"Description: {task.description}")
    w.body(f"Priority: {or_default(task.priority, 'Not specified')}")
    if deadline_color is not None:
        w.emphasis(f"Deadline: {format_date(task.deadline)}", deadline_color)
    else:
        w.body(f"Deadline: {format_date(task.deadline)}")


def _subtask_lines(subtasks: List[SubtaskSummary], w: _Writer):
    if not subtasks:
        return
    w.line("Subtasks:", size=9, bold=True, indent=12)
    for subtask in subtasks:
        w.sub_item(
            f"- {subtask.title} ({or_default(subtask.status, 'unknown')}, {or_default(subtask.priority, 'unspecified')})"
        )


def _task_list(tasks: List[TaskSummary], w: _Writer, show_status: bool = True):
    for task in tasks:
        w.item(f"• {task.title}")
        if show_status:
            w.detail(f"Status: {or_default(task.status, 'unknown')} | Deadline: {format_date(task.deadline)}")
        else:
            w.detail(f"Deadline: {format_date(task.deadline)}")
        _subtask_lines(task.subtasks, w)


# --- Body builders, one per kind ---

def _task_assigned_body(request: TaskAssignedAttachment, now: datetime, w: _Writer):
    task = request.task
    w.heading("Task Details")
    w.strong(f"Task Title: {task.title}")
    _task_fields(task, w)
    w.body(f"Created By: {or_default(task.created_by, 'System')}")
    if task.subtasks:
        w.heading("Subtasks")
        for subtask in task.subtasks:
            w.item(f"• {subtask.title}")
            w.detail(
                f"Status: {or_default(subtask.status, 'unknown')} | Priority: {or_default(subtask.priority, 'unspecified')}"
                f" | Deadline: {format_date(subtask.deadline)}"
            )
            if subtask.blocker_reason:
                w.blocker(f"Blocker Reason: {subtask.blocker_reason}")


def _task_completed_body(request: TaskCompletedAttachment, now: datetime, w: _Writer):
    task = request.task
    w.heading("Completed Task Details")
    w.strong(f"Task: {task.title}")
    w.emphasis("Status: Completed", SUCCESS_COLOR)
    _task_fields(task, w)
    w.strong(f"Completion Date: {format_date(now)}")


def _task_overdue_body(request: TaskOverdueAttachment, now: datetime, w: _Writer):
    overdue = request.overdue
    count = len(overdue)
    w.heading("Overdue Tasks Alert")
    w.emphasis(f"You have {count} overdue task{'s' if count != 1 else ''} that require immediate attention.", DANGER_COLOR)
    for task in overdue:
        w.item(f"• {task.title}", color=DANGER_COLOR)
        w.detail(f"Status: {or_default(task.status, 'unknown')} | Original Deadline: {format_date(task.deadline)}")
        _subtask_lines(task.subtasks, w)


def _task_deadline_body(request: TaskDeadlineAttachment, now: datetime, w: _Writer):
    task = request.task
    w.heading("Deadline Reminder")
    w.emphasis("You have a task deadline approaching!", WARNING_COLOR)
    w.strong(f"Task: {task.title}")
    _task_fields(task, w, deadline_color=WARNING_COLOR)
    w.body(f"Status: {or_default(task.status, 'Not specified')}")


def _progress_body(request, now: datetime, w: _Writer, weekly: bool):
    progress = request.progress
    stats = summarize_progress(progress, now)
    w.heading("Weekly Progress Report" if weekly else "Daily Progress Summary")
    if weekly:
        w.body(f"Week of {format_date(now)}")
    completed_label = "Tasks Completed This Week" if weekly else "Tasks Completed"
    w.emphasis(f"{completed_label}: {progress.completed}", SUCCESS_COLOR)
    w.emphasis(f"Tasks Pending: {progress.pending}", WARNING_COLOR)
    w.emphasis(f"Tasks Blocked: {progress.blockers}", DANGER_COLOR)
    w.body(
        f"Completion Rate: {stats.completion_rate}% | Overdue: {stats.overdue_count}"
        f" | Carried Over: {stats.carried_over_count}"
    )
    if progress.tasks:
        w.heading("This Week's Tasks" if weekly else "Task Details")
        _task_list(progress.tasks, w)


def _daily_progress_body(request: DailyProgressAttachment, now: datetime, w: _Writer):
    _progress_body(request, now, w, weekly=False)


def _weekly_report_body(request: WeeklyReportAttachment, now: datetime, w: _Writer):
    _progress_body(request, now, w, weekly=True)


def _manager_summary_body(request: ManagerSummaryAttachment, now: datetime, w: _Writer):
    w.heading("Team Summary Report")
    w.body("Daily completed tasks summary for your team")
    for member in request.team:
        w.line(f"Team Member: {member.name}", size=11, bold=True, space_before=10)
        w.emphasis(f"Completed Tasks Today: {member.completed_tasks}", SUCCESS_COLOR)
        if member.tasks:
            w.strong("Completed Tasks:")
            _task_list(member.tasks, w, show_status=False)
        else:
            w.note("No completed tasks today.")


def _general_body(request: GeneralAttachment, now: datetime, w: _Writer):
    w.heading("General Notification")
    w.body(f"You have received a notification from {config.ORG_NAME} Task Management System.")
    w.body("Please check your dashboard for more details.")


_BODY_BUILDERS: Dict[str, Callable[..., None]] = {
    NotificationKinds.TASK_ASSIGNED: _task_assigned_body,
    NotificationKinds.TASK_COMPLETED: _task_completed_body,
    NotificationKinds.TASK_OVERDUE: _task_overdue_body,
    NotificationKinds.TASK_DEADLINE: _task_deadline_body,
    NotificationKinds.DAILY_PROGRESS: _daily_progress_body,
    NotificationKinds.WEEKLY_REPORT: _weekly_report_body,
    NotificationKinds.MANAGER_SUMMARY: _manager_summary_body,
    NotificationKinds.GENERAL: _general_body,
}


def _add_branding(doc, image_bytes: Optional[bytes]):
    if not image_bytes:
        return
    try:
        image = DocxImage.from_blob(image_bytes)
        width, height = image.px_width, image.px_height
        if not width or not height:
            raise ValueError("image has no size")
    except Exception as e:
        logger.warning(f"Branding image unreadable, rendering without it: {e}")
        return
    draw_height = min(LOGO_MAX_HEIGHT, LOGO_WIDTH * height / float(width))
    doc.add_picture(io.BytesIO(image_bytes), width=Pt(draw_height * width / float(height)), height=Pt(draw_height))
    doc.paragraphs[-1].alignment = WD_ALIGN_PARAGRAPH.CENTER


def build_document(request, now: datetime, branding_image: Optional[bytes] = None):
    """Lay out the document for an attachment request. Returns a python-docx Document."""
    builder = _BODY_BUILDERS.get(getattr(request, "kind", None))
    if builder is None:
        raise DocumentDataError(f"Not an attachment request: {type(request).__name__}")

    doc = Document()
    section = doc.sections[0]
    section.page_width, section.page_height = Mm(210), Mm(297)  # A4
    section.left_margin = section.right_margin = Inches(0.75)
    section.top_margin = section.bottom_margin = Inches(0.75)

    props = doc.core_properties
    props.title = TITLES[request.kind]
    props.author = config.ORG_NAME
    props.last_modified_by = config.ORG_NAME
    props.revision = 1
    props.created = now
    props.modified = now

    w = _Writer(doc)
    recipient = request.recipient
    _add_branding(doc, branding_image)
    w.line(config.ORG_NAME, size=14, bold=True, color=BRAND_COLOR, center=True, space_after=10)
    w.line(TITLES[request.kind], size=16, bold=True, color=BRAND_COLOR, center=True, space_before=5, space_after=10)
    w.line(f"Generated on {format_date(now)}", center=True)
    w.line(f"For: {recipient.name}", center=True)
    if recipient.department:
        w.line(f"Department: {recipient.department}", center=True)
    w.line(DESCRIPTIONS[request.kind], center=True, space_after=10)
    builder(request, now, w)
    return doc


def _fix_zip_timestamps(package: bytes) -> bytes:
    source = zipfile.ZipFile(io.BytesIO(package))
    out = io.BytesIO()
    with zipfile.ZipFile(out, "w", compression=zipfile.ZIP_DEFLATED) as target:
        for info in source.infolist():
            entry = zipfile.ZipInfo(info.filename, date_time=ZIP_TIMESTAMP)
            entry.compress_type = zipfile.ZIP_DEFLATED
            entry.external_attr = 0o644 << 16
            target.writestr(entry, source.read(info.filename))
    return out.getvalue()


def render_document(request, now: datetime, branding_image: Optional[bytes] = None) -> bytes:
    """
    Render an attachment request to .docx bytes.

    Output is byte-identical for identical inputs: document properties are
    stamped with `now` and zip entries with a fixed time, so `now` must be
    supplied by the caller.
    """
    doc = build_document(request, now, branding_image)

    buffer = io.BytesIO()
    doc.save(buffer)
    data = _fix_zip_timestamps(buffer.getvalue())
    logger.debug(
        "Rendered notification document",
        extra={"data": {"kind": request.kind, "recipient": request.recipient.email, "bytes": len(data)}},
    )
    return data
