import pytest
from datetime import datetime, timezone
from config import config
from models.notification_prefs import NotificationPrefsModel
from models.report import ProgressSnapshot, RecipientProfile, TeamMemberSummary
from models.task import SubtaskSummary, TaskSummary
from utils import email as email_utils
from utils.documents import DocumentDataError, build_attachment_request

NOW = datetime(2026, 10, 19, 9, 30, tzinfo=timezone.utc)
RECIPIENT = RecipientProfile(name="Dana Ortiz", email="dana@example.org")
TASK = TaskSummary(title="Inspect fire doors", priority="high")
PAST = datetime(2026, 10, 1, tzinfo=timezone.utc)
PROGRESS = ProgressSnapshot(completed=1, pending=1, blockers=1, tasks=[
    TaskSummary(title="Publish minutes", status="completed"),
    TaskSummary(title="Renew permits", status="todo", deadline=PAST),
    TaskSummary(title="Replace boiler", status="blocker", subtasks=[
        SubtaskSummary(title="Order parts", status="blocker", priority="high", blocker_reason="waiting on vendor"),
    ]),
])


@pytest.fixture
def sent(monkeypatch):
    outbox = []

    def fake_send_email(to_email, subject, html_content, attachments=None):
        outbox.append({"to": to_email, "subject": subject, "html": html_content, "attachments": attachments})
        return {"id": "email-1"}

    monkeypatch.setattr(email_utils, "send_email", fake_send_email)
    return outbox


def test_email_carries_word_attachment(sent):
    request = build_attachment_request("task_assigned", RECIPIENT, task=TASK)

    assert email_utils.send_notification_email(request, NOW) is True

    message = sent[0]
    assert message["to"] == "dana@example.org"
    assert message["subject"] == "New Task Assigned: Inspect fire doors"
    attachment = message["attachments"][0]
    assert attachment["filename"] == "task_assigned_20261019.docx"
    assert bytes(attachment["content"]).startswith(b"PK")
    assert "Dana Ortiz" in message["html"]


def test_render_failure_sends_without_attachment(sent, monkeypatch):
    def broken_render(*args, **kwargs):
        raise DocumentDataError("bad block")

    monkeypatch.setattr(email_utils, "render_document", broken_render)
    request = build_attachment_request("general", RECIPIENT)

    assert email_utils.send_notification_email(request, NOW) is True
    assert sent[0]["attachments"] is None
    assert "The full report is attached" not in sent[0]["html"]


def test_preferences_can_suppress_email(sent):
    request = build_attachment_request("daily_progress", RECIPIENT, progress={"completed": 0, "tasks": []})
    prefs = NotificationPrefsModel(user_id="u-1", weekly_report=False)

    assert email_utils.send_notification_email(request, NOW, prefs=prefs) is False
    assert sent == []

    muted = NotificationPrefsModel(user_id="u-1", email_notifications=False)
    general = build_attachment_request("general", RECIPIENT)
    assert email_utils.send_notification_email(general, NOW, prefs=muted) is False


def test_subjects():
    overdue = build_attachment_request("task_overdue", RECIPIENT, overdue=[TASK])
    assert email_utils.notification_subject(overdue, NOW) == "Overdue Tasks Alert - 1 task need attention"
    weekly = build_attachment_request("weekly_report", RECIPIENT, progress={"tasks": []})
    assert email_utils.notification_subject(weekly, NOW) == "Weekly Progress Report - Week of October 19, 2026"


def test_send_email_without_api_key_is_mocked(monkeypatch):
    monkeypatch.setattr(email_utils.config, "RESEND_API_KEY", None)
    assert email_utils.send_email("dana@example.org", "Hello", "<p>Hi</p>") is None


def test_task_assigned_html_lists_subtasks_with_blocker_reason():
    task = TaskSummary(
        title="Inspect fire doors",
        priority="high",
        created_by="Facilities Manager",
        subtasks=[SubtaskSummary(title="Second floor", status="blocker", blocker_reason="waiting on vendor")],
    )
    html = email_utils.notification_email_html(build_attachment_request("task_assigned", RECIPIENT, task=task), NOW)

    assert "Inspect fire doors" in html
    assert "Facilities Manager" in html
    assert "Second floor" in html
    assert "Blocker Reason" in html
    assert "waiting on vendor" in html


def test_task_overdue_html_counts_tasks():
    overdue = [TaskSummary(title=f"Overdue {i}", status="todo", deadline=PAST) for i in range(3)]
    html = email_utils.notification_email_html(build_attachment_request("task_overdue", RECIPIENT, overdue=overdue), NOW)

    assert "you have 3 overdue tasks that need attention" in html
    assert "Overdue 2" in html
    assert "October 01, 2026" in html


def test_progress_html_carries_counters_and_derived_figures():
    html = email_utils.notification_email_html(build_attachment_request("daily_progress", RECIPIENT, progress=PROGRESS), NOW)

    assert "Completion Rate: <strong>33%</strong>" in html
    assert "Overdue: <strong>1</strong>" in html
    assert "Carried Over: <strong>1</strong>" in html
    assert "Order parts - blocker (high priority)" in html
    assert "Blocker: waiting on vendor" in html

    empty = build_attachment_request("weekly_report", RECIPIENT, progress={"tasks": []})
    assert "No tasks found for this week." in email_utils.notification_email_html(empty, NOW)


def test_manager_summary_html_shows_each_member():
    team = [
        TeamMemberSummary(name="Sam Lee", completed_tasks=1, tasks=[TaskSummary(title="Publish minutes")]),
        TeamMemberSummary(name="Robin Park", completed_tasks=0),
    ]
    html = email_utils.notification_email_html(build_attachment_request("manager_summary", RECIPIENT, team=team), NOW)

    assert "Sam Lee" in html
    assert "Publish minutes" in html
    assert "Robin Park" in html
    assert "No completed tasks today." in html


def test_user_text_is_escaped_in_html():
    task = TaskSummary(title="<script>alert(1)</script>", subtasks=[
        SubtaskSummary(title="Vent & duct", blocker_reason="<b>parts</b>"),
    ])
    html = email_utils.notification_email_html(build_attachment_request("task_assigned", RECIPIENT, task=task), NOW)

    assert "<script>" not in html
    assert "&lt;script&gt;alert(1)&lt;/script&gt;" in html
    assert "Vent &amp; duct" in html
    assert "&lt;b&gt;parts&lt;/b&gt;" in html


@pytest.mark.parametrize("kind,blocks,path", [
    ("task_assigned", {"task": TASK}, "/tasks"),
    ("task_overdue", {"overdue": [TASK]}, "/tasks"),
    ("weekly_report", {"progress": {"tasks": []}}, "/dashboard"),
    ("manager_summary", {"team": []}, "/dashboard"),
    ("general", {}, "/dashboard"),
])
def test_call_to_action_links_into_frontend(kind, blocks, path):
    html = email_utils.notification_email_html(build_attachment_request(kind, RECIPIENT, **blocks), NOW)
    assert f'href="{config.FRONTEND_URL.rstrip("/")}{path}"' in html
