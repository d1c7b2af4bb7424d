from jewelshot.services.auth_service import (
    verify_password, get_password_hash, create_access_token,
    decode_access_token, authenticate_user, create_user,
    get_user_by_id, get_user_by_email
)
from jewelshot.services.fal_service import FalClient, GenerationResult
from jewelshot.services.storage_service import ObjectStore
from jewelshot.services.view_cache import ViewCache, get_view_cache, revalidate_path

__all__ = [
    "verify_password",
    "get_password_hash",
    "create_access_token",
    "decode_access_token",
    "authenticate_user",
    "create_user",
    "get_user_by_id",
    "get_user_by_email",
    # External services
    "FalClient",
    "GenerationResult",
    "ObjectStore",
    # View cache
    "ViewCache",
    "get_view_cache",
    "revalidate_path",
]
