"""
Club Module

Attendance & payment request handlers
- ClubService: store + engine orchestration
- club_router: FastAPI routes
"""

from .router import router as club_router
from .service import ClubService

__all__ = ["club_router", "ClubService"]
