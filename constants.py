# Global Constants

class NotificationKinds:
    TASK_ASSIGNED = "task_assigned"
    TASK_COMPLETED = "task_completed"
    TASK_OVERDUE = "task_overdue"
    TASK_DEADLINE = "task_deadline"
    DAILY_PROGRESS = "daily_progress"
    WEEKLY_REPORT = "weekly_report"
    MANAGER_SUMMARY = "manager_summary"
    GENERAL = "general"

    ALL = (
        TASK_ASSIGNED,
        TASK_COMPLETED,
        TASK_OVERDUE,
        TASK_DEADLINE,
        DAILY_PROGRESS,
        WEEKLY_REPORT,
        MANAGER_SUMMARY,
        GENERAL,
    )



class TaskStatus:
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    BLOCKER = "blocker"

    PENDING = (TODO, IN_PROGRESS)

class FrameTypes:
    CONNECTED = "connected"
    NOTIFICATION = "notification"
    HEARTBEAT = "heartbeat"

class ConnectionState:
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"
    RECONNECTING = "reconnecting"
