"""
Auth Module
- JWT session decoding (bearer header or session cookie)
- Actor and admin dependencies
"""
from .dependencies import ActorContext, get_actor, require_admin
from .session import SessionUser, create_access_token, get_session_user

__all__ = [
    "ActorContext",
    "SessionUser",
    "create_access_token",
    "get_actor",
    "get_session_user",
    "require_admin",
]
