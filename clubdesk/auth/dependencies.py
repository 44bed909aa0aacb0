"""
Actor dependencies

Auth and role checks for the club routes
"""
from fastapi import Depends, HTTPException, status

from clubdesk.database import ClubStore, get_store
from clubdesk.engine.models import AdultProfile

from .session import SessionUser, get_session_user


class ActorContext:
    """Signed-in adult acting on the club"""

    def __init__(self, profile: AdultProfile):
        self.profile = profile

    @property
    def profile_id(self) -> str:
        return self.profile.profile_id

    def is_admin(self) -> bool:
        return self.profile.is_admin


async def get_actor(
    user: SessionUser = Depends(get_session_user),
    store: ClubStore = Depends(get_store),
) -> ActorContext:
    """
    Resolve the session to an active adult profile
    """
    profile = await store.get_adult(user.profile_id)
    if profile is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Profile not registered with the club"
        )
    if not profile.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account disabled"
        )
    return ActorContext(profile)


def require_admin(actor: ActorContext = Depends(get_actor)) -> ActorContext:
    """Admin role required"""
    if not actor.is_admin():
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return actor
