from jewelshot.api.auth import router as auth_router, get_current_user, get_optional_user
from jewelshot.api.studio import router as studio_router
from jewelshot.api.credits import router as credits_router
from jewelshot.api.storage import router as storage_router
from jewelshot.api.gallery import router as gallery_router
from jewelshot.api.profile import router as profile_router
from jewelshot.api.account import router as account_router

__all__ = [
    "auth_router",
    "studio_router",
    "credits_router",
    "storage_router",
    "gallery_router",
    "profile_router",
    "account_router",
    "get_current_user",
    "get_optional_user",
]
