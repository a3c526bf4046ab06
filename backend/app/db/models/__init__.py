"""ORM models exposed for metadata discovery."""
from app.db.models.role_model import RoleModel
from app.db.models.user import User
from app.db.models.user_schedule import UserSchedule
from app.db.models.user_task import UserTask

__all__ = [
    "RoleModel",
    "User",
    "UserSchedule",
    "UserTask",
]
