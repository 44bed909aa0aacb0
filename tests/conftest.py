"""
Pytest configuration and fixtures for clubdesk tests
"""

import pytest
import sys
from datetime import date, datetime, timedelta, timezone
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from clubdesk.config import ClubRules
from clubdesk.database.memory import InMemoryClubStore
from clubdesk.engine.models import (
    AdultProfile,
    AgeRange,
    AttendanceFact,
    ChildProfile,
    Event,
)


# Monday 15 June 2026, 12:00 UTC
NOW = datetime(2026, 6, 15, 12, 0, tzinfo=timezone.utc)


# =============================================================================
# Profiles
# =============================================================================

@pytest.fixture
def now():
    return NOW


@pytest.fixture
def admin():
    return AdultProfile(profile_id="admin", name="Alice Admin", gender="Female", role="admin", groups=["Women"])


@pytest.fixture
def man():
    return AdultProfile(profile_id="p-men", name="Bob", gender="Male", groups=["Men"])


@pytest.fixture
def woman():
    return AdultProfile(profile_id="p-women", name="Carol", gender="Female", groups=["Women"])


@pytest.fixture
def student():
    return AdultProfile(
        profile_id="p-student", name="Dan", gender="Male", membership_type="student", groups=["Men"]
    )


@pytest.fixture
def junior():
    return AdultProfile(
        profile_id="p-junior", name="Eve", gender="Female", has_payment_manager=True, groups=["U-15", "Men"]
    )


@pytest.fixture
def parent():
    return AdultProfile(
        profile_id="parent", name="Pat", gender="Male", groups=["Men"], child_ids=["kid-14", "kid-ghost"]
    )


@pytest.fixture
def kid():
    # 14 years old on NOW
    return ChildProfile(
        profile_id="kid-14", name="Kim", birth_date=date(2012, 3, 1), groups=["U-15"], parent_ids=["parent"]
    )


# =============================================================================
# Events
# =============================================================================

@pytest.fixture
def practice_far():
    return Event(
        event_id="practice-far", title="Net practice", kind="net_practice",
        starts_at=NOW + timedelta(days=5), fee="10", target_groups=["Men", "Women"],
    )


@pytest.fixture
def practice_soon():
    return Event(
        event_id="practice-soon", title="Net practice (soon)", kind="net_practice",
        starts_at=NOW + timedelta(hours=40), fee="10", target_groups=["Men"],
    )


@pytest.fixture
def league_past():
    return Event(
        event_id="league-past", title="League vs Rovers", kind="league_match",
        starts_at=NOW - timedelta(days=3), fee="15", target_groups=["Men"],
    )


@pytest.fixture
def kids_13_15():
    return Event(
        event_id="kids-13-15", title="U-15 coaching", kind="family_event",
        starts_at=NOW + timedelta(days=7), fee="20", target_groups=["U-13", "U-15"],
        is_child_event=True, age_range=AgeRange(min=13, max=15),
    )


@pytest.fixture
def kids_16_18():
    return Event(
        event_id="kids-16-18", title="U-18 coaching", kind="family_event",
        starts_at=NOW + timedelta(days=7), fee="20", target_groups=["U-15", "U-18"],
        is_child_event=True, age_range=AgeRange(min=16, max=18),
    )


@pytest.fixture
def kids_fun():
    return Event(
        event_id="kids-fun", title="Kids fun day", kind="family_event",
        starts_at=NOW + timedelta(days=3), fee="5", target_groups=["Kids", "U-15"],
        is_child_event=True,
    )


@pytest.fixture
def membership():
    return Event(
        event_id="membership-2026", title="Membership 2026", kind="membership_fee",
        starts_at=datetime(2026, 1, 1, tzinfo=timezone.utc), fee="100", target_groups=["Men", "Women"],
    )


@pytest.fixture
def cancelled():
    return Event(
        event_id="cancelled", title="Rained off", kind="league_match",
        starts_at=NOW + timedelta(days=2), fee="15", target_groups=["Men"], status="cancelled",
    )


# =============================================================================
# Store / service
# =============================================================================

@pytest.fixture
def adults(admin, man, woman, student, junior, parent):
    return [admin, man, woman, student, junior, parent]


@pytest.fixture
def events(practice_far, practice_soon, league_past, kids_13_15, kids_16_18, kids_fun, membership, cancelled):
    return [practice_far, practice_soon, league_past, kids_13_15, kids_16_18, kids_fun, membership, cancelled]


@pytest.fixture
def store(adults, kid, events):
    return InMemoryClubStore(
        adults=adults,
        children=[kid],
        events=events,
        attendance=[
            # Bob went to the league match, admin confirmed, not paid yet
            AttendanceFact(event_id="league-past", profile_id="p-men", attending="yes", attended=True),
        ],
    )


@pytest.fixture
def rules():
    return ClubRules()


@pytest.fixture
def service(store, rules):
    from clubdesk.club.service import ClubService

    return ClubService(store, rules=rules, clock=lambda: NOW)


@pytest.fixture
def client(store):
    """TestClient bound to the in-memory store and a fixed clock"""
    from fastapi.testclient import TestClient

    from clubdesk.club.router import get_clock
    from clubdesk.database import get_store
    from clubdesk.server import app

    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_clock] = lambda: (lambda: NOW)
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Bearer header for a profile id"""
    from clubdesk.auth import create_access_token

    def _headers(profile_id: str) -> dict:
        return {"Authorization": f"Bearer {create_access_token(profile_id)}"}

    return _headers
