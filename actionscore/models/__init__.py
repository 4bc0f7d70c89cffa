# Import all models so they register with SQLAlchemy Base.metadata
# This ensures Base.metadata.create_all() creates all tables

from actionscore.models.user import User
from actionscore.models.user_settings import UserSettings
from actionscore.models.pillar import Pillar
from actionscore.models.task import Task
from actionscore.models.task_completion import TaskCompletion
from actionscore.models.task_timer import TaskTimer
from actionscore.models.activity_log import ActivityLog
from actionscore.models.daily_score import DailyScore
from actionscore.models.user_stats import UserStats
from actionscore.models.cycle import Cycle
from actionscore.models.goal import Goal
from actionscore.models.weekly_target import WeeklyTarget
from actionscore.models.weekly_review import WeeklyReview
from actionscore.models.tactic import Tactic
from actionscore.models.generated_report import GeneratedReport

__all__ = [
    "User",
    "UserSettings",
    "Pillar",
    "Task",
    "TaskCompletion",
    "TaskTimer",
    "ActivityLog",
    "DailyScore",
    "UserStats",
    "Cycle",
    "Goal",
    "WeeklyTarget",
    "WeeklyReview",
    "Tactic",
    "GeneratedReport",
]
