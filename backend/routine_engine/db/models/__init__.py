"""ORM models exposed for metadata discovery."""
from routine_engine.db.models.activity_log import ActivityLog
from routine_engine.db.models.communication_plan import CommunicationPlan
from routine_engine.db.models.routine_completion import RoutineCompletion
from routine_engine.db.models.routine_task import RoutineTask
from routine_engine.db.models.user import User

__all__ = [
    "ActivityLog",
    "CommunicationPlan",
    "RoutineCompletion",
    "RoutineTask",
    "User",
]
