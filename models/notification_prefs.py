from pydantic import BaseModel


class NotificationPrefsModel(BaseModel):
    user_id: str

    # Master e-mail toggle
    email_notifications: bool = True

    # Per-kind e-mail toggles
    task_assigned: bool = True
    task_completed: bool = True
    task_overdue: bool = True
    task_deadline: bool = True
    weekly_report: bool = True  # Also covers the daily progress summary

    def allows(self, kind: str) -> bool:
        """Whether an e-mail of this notification kind may be sent."""
        if not self.email_notifications:
            return False
        toggles = {
            "task_assigned": self.task_assigned,
            "task_completed": self.task_completed,
            "task_overdue": self.task_overdue,
            "task_deadline": self.task_deadline,
            "daily_progress": self.weekly_report,
            "weekly_report": self.weekly_report,
        }
        return toggles.get(kind, True)
