from jewelshot.db.models import (
    Base, User, UserRole, Profile, Plan, Image, AIGeneration, Purchase,
    GenerationMode, GenerationStatus, PurchaseStatus,
)
from jewelshot.db.database import get_db, init_db, drop_db, async_session_maker, engine

__all__ = [
    "Base",
    "User",
    "UserRole",
    "Profile",
    "Plan",
    "Image",
    "AIGeneration",
    "Purchase",
    "GenerationMode",
    "GenerationStatus",
    "PurchaseStatus",
    # Database
    "get_db",
    "init_db",
    "drop_db",
    "async_session_maker",
    "engine",
]
