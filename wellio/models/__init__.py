from .client import Client
from .goal import Goal
from .progress_event import ProgressEvent
from .schedule_item import WeeklyScheduleItem
from .client_plan import ClientPlan
from .reminder import ClientReminderSettings, SentReminder, PushSubscription

__all__ = [
    "Client",
    "Goal",
    "ProgressEvent",
    "WeeklyScheduleItem",
    "ClientPlan",
    "ClientReminderSettings",
    "SentReminder",
    "PushSubscription",
]
