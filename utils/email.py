import resend
from datetime import datetime
from typing import List, Optional
from xml.sax.saxutils import escape
from config import config
from constants import NotificationKinds
from logging_config import get_logger
from models.notification_prefs import NotificationPrefsModel
from utils.documents import DocumentDataError, TITLES, DESCRIPTIONS, format_date, or_default, render_document
from utils.progress import summarize_progress

logger = get_logger("email")

# Set the API key for the resend SDK
if config.RESEND_API_KEY:
    resend.api_key = config.RESEND_API_KEY

def send_email(to_email: str, subject: str, html_content: str, attachments: Optional[List[dict]] = None):
    """
    Utility function to send an email using Resend.
    Does nothing if RESEND_API_KEY is not configured.
    """
    if not config.RESEND_API_KEY or config.RESEND_API_KEY == "your_resend_api_key_here":
        logger.warning(f"Resend API key not configured. Mock sending email to {to_email} with subject '{subject}'")
        return None

    try:
        params = {
            "from": config.MAIL_FROM,
            "to": [to_email],
            "subject": subject,
            "html": html_content,
        }
        if attachments:
            params["attachments"] = attachments
        response = resend.Emails.send(params)
        logger.info(f"Email sent successfully to {to_email}", extra={"data": {"email_id": response.get("id")}})
        return response
    except Exception as e:
        logger.error(f"Failed to send email to {to_email}: {e}", exc_info=True)
        return None


def base_email_template(title: str, preheader: str, content: str, cta_url: str = None, cta_text: str = None, footer_text: str = "") -> str:
    """
    Generates the responsive HTML skeleton shared by all notification emails.
    """
    cta_html = f"""
    <div style="text-align: center; margin: 32px 0;">
        <a href="{cta_url}" style="background-color: #2e9d74; color: #ffffff; padding: 14px 28px; text-decoration: none; border-radius: 8px; font-weight: 600; font-size: 16px; display: inline-block;">
            {cta_text}
        </a>
    </div>
    """ if cta_url and cta_text else ""

    return f"""
    <!DOCTYPE html>
    <html lang="en">
    <head>
        <meta charset="UTF-8">
        <meta name="viewport" content="width=device-width, initial-scale=1.0">
        <title>{title}</title>
    </head>
    <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Helvetica, Arial, sans-serif; background-color: #f3f4f6; margin: 0; padding: 0; line-height: 1.6;">
        <div style="display: none; max-height: 0px; overflow: hidden;">
            {preheader}
        </div>
        <table width="100%" cellpadding="0" cellspacing="0" border="0" style="background-color: #f3f4f6; margin: 0; padding: 40px 20px;">
            <tr>
                <td align="center">
                    <table width="100%" cellpadding="0" cellspacing="0" border="0" style="max-width: 600px; background-color: #ffffff; border-radius: 12px; overflow: hidden;">
                        <tr>
                            <td style="background-color: #2e9d74; padding: 24px; text-align: center;">
                                <h1 style="color: #ffffff; font-size: 24px; margin: 0; font-weight: 700;">{escape(config.ORG_NAME)}</h1>
                            </td>
                        </tr>
                        <tr>
                            <td style="padding: 40px 32px; color: #374151;">
                                {content}
                                {cta_html}
                            </td>
                        </tr>
                        <tr>
                            <td style="background-color: #f9fafb; padding: 24px 32px; text-align: center; border-top: 1px solid #e5e7eb;">
                                <p style="color: #6b7280; font-size: 13px; margin: 0; line-height: 1.5;">
                                    {footer_text}<br>
                                    You are receiving this because email notifications are enabled for your account.
                                </p>
                            </td>
                        </tr>
                    </table>
                </td>
            </tr>
        </table>
    </body>
    </html>
    """


def notification_subject(request, now: datetime) -> str:
    """Subject line for a notification e-mail, by kind."""
    kind = request.kind
    if kind in (NotificationKinds.TASK_ASSIGNED, NotificationKinds.TASK_COMPLETED, NotificationKinds.TASK_DEADLINE):
        prefix = {
            NotificationKinds.TASK_ASSIGNED: "New Task Assigned",
            NotificationKinds.TASK_COMPLETED: "Task Completed",
            NotificationKinds.TASK_DEADLINE: "Upcoming Deadline",
        }[kind]
        return f"{prefix}: {request.task.title}"
    if kind == NotificationKinds.TASK_OVERDUE:
        count = len(request.overdue)
        return f"Overdue Tasks Alert - {count} task{'s' if count != 1 else ''} need attention"
    if kind == NotificationKinds.DAILY_PROGRESS:
        return f"Your Daily Task Progress Report - {now.strftime('%B %d, %Y')}"
    if kind == NotificationKinds.WEEKLY_REPORT:
        return f"Weekly Progress Report - Week of {now.strftime('%B %d, %Y')}"
    if kind == NotificationKinds.MANAGER_SUMMARY:
        return "Daily Completed Tasks Summary for Your Team"
    return f"Notification from {config.ORG_NAME}"


def attachment_filename(kind: str, now: datetime) -> str:
    return f"{kind}_{now.strftime('%Y%m%d')}.docx"


# Call-to-action per kind: (frontend path, button text)
CALLS_TO_ACTION = {
    NotificationKinds.TASK_ASSIGNED: ("/tasks", "View Task Details"),
    NotificationKinds.TASK_COMPLETED: ("/tasks", "View All Tasks"),
    NotificationKinds.TASK_OVERDUE: ("/tasks", "Update Task Status"),
    NotificationKinds.TASK_DEADLINE: ("/tasks", "View Task Details"),
    NotificationKinds.DAILY_PROGRESS: ("/dashboard", "View Dashboard"),
    NotificationKinds.WEEKLY_REPORT: ("/dashboard", "View Dashboard"),
    NotificationKinds.MANAGER_SUMMARY: ("/dashboard", "View Team Dashboard"),
    NotificationKinds.GENERAL: ("/dashboard", "View Dashboard"),
}


# --- Per-kind HTML bodies. All user-supplied text goes through _h. ---

def _h(value) -> str:
    return escape(str(value))


def _field(label: str, value, color: str = None) -> str:
    style = f' style="color: {color}; font-weight: bold;"' if color else ""
    return f'<p style="margin: 0 0 8px 0;"><strong>{label}:</strong> <span{style}>{_h(value)}</span></p>'


def _card(inner: str, accent: str = "#2e9d74") -> str:
    return (
        f'<div style="background-color: #f9fafb; border-left: 4px solid {accent}; border-radius: 8px; '
        f'padding: 16px; margin: 0 0 12px 0;">{inner}</div>'
    )


def _card_title(text: str, tag: str = "h3") -> str:
    return f'<{tag} style="color: #111827; margin: 0 0 8px 0;">{_h(text)}</{tag}>'


def _subtask_list(subtasks, with_blockers: bool = False) -> str:
    if not subtasks:
        return ""
    items = []
    for subtask in subtasks:
        line = (
            f"{_h(subtask.title)} - {_h(or_default(subtask.status, 'unknown'))}"
            f" ({_h(or_default(subtask.priority, 'unspecified'))} priority)"
        )
        if with_blockers and subtask.blocker_reason:
            line += f'<br><em style="color: #ef4444;">Blocker: {_h(subtask.blocker_reason)}</em>'
        items.append(f"<li>{line}</li>")
    return f'<p style="margin: 8px 0 4px 0;"><strong>Subtasks:</strong></p><ul style="margin: 0;">{"".join(items)}</ul>'


def _stat(label: str, value, color: str) -> str:
    return (
        f'<td align="center" style="padding: 12px; background-color: #f9fafb; border-radius: 8px;">'
        f'<div style="font-size: 24px; font-weight: 700; color: {color};">{_h(value)}</div>'
        f'<div style="font-size: 13px; color: #6b7280;">{label}</div></td>'
    )


def _task_assigned_html(request, now: datetime) -> str:
    task = request.task
    parts = [
        f"<p>Hello {_h(request.recipient.name)}, you have been assigned a new task!</p>",
        _card(
            _card_title(task.title, "h2")
            + (_field("Description", task.description) if task.description else "")
            + _field("Priority", or_default(task.priority, "Not specified"))
            + _field("Deadline", format_date(task.deadline))
            + _field("Created by", or_default(task.created_by, "System"))
        ),
    ]
    if task.subtasks:
        parts.append('<h3 style="color: #111827;">Subtasks:</h3>')
        for subtask in task.subtasks:
            parts.append(_card(
                _card_title(subtask.title, "h4")
                + _field("Status", or_default(subtask.status, "unknown"))
                + _field("Priority", or_default(subtask.priority, "unspecified"))
                + _field("Deadline", format_date(subtask.deadline))
                + (_field("Blocker Reason", subtask.blocker_reason, "#ef4444") if subtask.blocker_reason else ""),
                accent="#d1d5db",
            ))
    return "".join(parts)


def _task_completed_html(request, now: datetime) -> str:
    task = request.task
    return (
        f"<p>Hello {_h(request.recipient.name)}, a task has been completed.</p>"
        + _card(
            _card_title(task.title)
            + _field("Status", "Completed", "#008000")
            + (_field("Description", task.description) if task.description else "")
            + _field("Priority", or_default(task.priority, "Not specified"))
            + _field("Deadline", format_date(task.deadline))
            + _field("Completion Date", format_date(now))
        )
    )


def _task_overdue_html(request, now: datetime) -> str:
    count = len(request.overdue)
    parts = [
        f"<p>Hello {_h(request.recipient.name)}, you have {count} overdue task{'s' if count != 1 else ''}"
        " that need attention.</p>"
    ]
    for task in request.overdue:
        parts.append(_card(
            _card_title(task.title)
            + _field("Status", or_default(task.status, "unknown"))
            + _field("Original Deadline", format_date(task.deadline), "#ef4444")
            + _subtask_list(task.subtasks),
            accent="#ef4444",
        ))
    return "".join(parts)


def _task_deadline_html(request, now: datetime) -> str:
    task = request.task
    return (
        f"<p>Hello {_h(request.recipient.name)}, you have a task deadline approaching!</p>"
        + _card(
            _card_title(task.title)
            + (_field("Description", task.description) if task.description else "")
            + _field("Priority", or_default(task.priority, "Not specified"))
            + _field("Deadline", format_date(task.deadline), "#f59e0b")
            + _field("Status", or_default(task.status, "Not specified")),
            accent="#f59e0b",
        )
    )


def _progress_html(request, now: datetime, weekly: bool) -> str:
    progress = request.progress
    stats = summarize_progress(progress, now)
    period = "this week" if weekly else "today"
    parts = [
        f"<p>Hello {_h(request.recipient.name)}, here's your task progress for {period}!</p>",
        '<table width="100%" cellpadding="0" cellspacing="8" border="0"><tr>'
        + _stat("Completed", progress.completed, "#10b981")
        + _stat("Pending", progress.pending, "#f59e0b")
        + _stat("Blockers", progress.blockers, "#ef4444")
        + "</tr></table>",
        f'<p style="margin: 12px 0;">Completion Rate: <strong>{stats.completion_rate}%</strong>'
        f" | Overdue: <strong>{stats.overdue_count}</strong>"
        f" | Carried Over: <strong>{stats.carried_over_count}</strong></p>",
    ]
    if progress.tasks:
        parts.append('<h3 style="color: #111827;">Your Tasks:</h3>')
        for task in progress.tasks:
            parts.append(_card(
                _card_title(task.title, "h4")
                + _field("Status", or_default(task.status, "unknown"))
                + _field("Deadline", format_date(task.deadline))
                + _subtask_list(task.subtasks, with_blockers=True),
                accent="#d1d5db",
            ))
    else:
        parts.append(f"<p>No tasks found for {period}.</p>")
    return "".join(parts)


def _daily_progress_html(request, now: datetime) -> str:
    return _progress_html(request, now, weekly=False)


def _weekly_report_html(request, now: datetime) -> str:
    return _progress_html(request, now, weekly=True)


def _manager_summary_html(request, now: datetime) -> str:
    parts = [f"<p>Hello {_h(request.recipient.name)}, here's your team's completed tasks for today!</p>"]
    for member in request.team:
        inner = _card_title(member.name) + _field("Completed Tasks", member.completed_tasks)
        if member.tasks:
            inner += '<h4 style="margin: 8px 0;">Completed Tasks:</h4>'
            for task in member.tasks:
                inner += _card(
                    _card_title(task.title, "h5")
                    + _field("Deadline", format_date(task.deadline))
                    + _subtask_list(task.subtasks),
                    accent="#d1d5db",
                )
        else:
            inner += "<p><em>No completed tasks today.</em></p>"
        parts.append(_card(inner))
    return "".join(parts)


def _general_html(request, now: datetime) -> str:
    return (
        f"<p>Hello {_h(request.recipient.name)},</p>"
        f"<p>You have a new notification from {_h(config.ORG_NAME)} Task Management System.</p>"
        "<p>Please check your dashboard for more details.</p>"
    )


_HTML_BUILDERS = {
    NotificationKinds.TASK_ASSIGNED: _task_assigned_html,
    NotificationKinds.TASK_COMPLETED: _task_completed_html,
    NotificationKinds.TASK_OVERDUE: _task_overdue_html,
    NotificationKinds.TASK_DEADLINE: _task_deadline_html,
    NotificationKinds.DAILY_PROGRESS: _daily_progress_html,
    NotificationKinds.WEEKLY_REPORT: _weekly_report_html,
    NotificationKinds.MANAGER_SUMMARY: _manager_summary_html,
    NotificationKinds.GENERAL: _general_html,
}


def notification_email_html(request, now: datetime, attachment_included: bool = False) -> str:
    """Full HTML e-mail for an attachment request."""
    content = (
        f'<h2 style="color: #111827; font-size: 20px; font-weight: 600; margin-top: 0; margin-bottom: 16px;">'
        f"{TITLES[request.kind]}</h2>"
        + _HTML_BUILDERS[request.kind](request, now)
    )
    if attachment_included:
        content += '<p style="margin: 16px 0 0 0;">The full report is attached to this email.</p>'
    path, cta_text = CALLS_TO_ACTION[request.kind]
    return base_email_template(
        title=TITLES[request.kind],
        preheader=DESCRIPTIONS[request.kind],
        content=content,
        cta_url=f"{config.FRONTEND_URL.rstrip('/')}{path}",
        cta_text=cta_text,
        footer_text=f"This email was sent from {escape(config.ORG_NAME)} Task Management System.",
    )


def send_notification_email(
    request,
    now: datetime,
    branding_image: Optional[bytes] = None,
    prefs: Optional[NotificationPrefsModel] = None,
) -> bool:
    """
    E-mail a notification with its Word report attached.

    Respects the recipient's preferences when given. If the document cannot
    be rendered, the e-mail is still sent, without an attachment.
    Returns True when the e-mail was handed to the provider.
    """
    recipient = request.recipient
    if prefs is not None and not prefs.allows(request.kind):
        logger.info(
            "Notification email skipped by preferences",
            extra={"data": {"kind": request.kind, "user_id": prefs.user_id}},
        )
        return False

    attachments = None
    try:
        document = render_document(request, now, branding_image)
        attachments = [{"filename": attachment_filename(request.kind, now), "content": list(document)}]
    except DocumentDataError as e:
        logger.error(
            f"Skipping attachment, document could not be rendered: {e}",
            extra={"data": {"kind": request.kind, "recipient": recipient.email}},
        )

    html_content = notification_email_html(request, now, attachment_included=attachments is not None)
    return send_email(recipient.email, notification_subject(request, now), html_content, attachments) is not None
