"""
Visibility Filter

Child events and adult events are disjoint universes. Inside a universe an
event is visible when its target groups intersect the profile's groups, or,
for events created before target groups existed, when the legacy group
allows it.
"""
from typing import Iterable, List

from .categories import profile_groups
from .models import Event, Profile


# Legacy event groups that are open to a given legacy profile group
_LEGACY_OPEN = {
    "all": None,       # everyone in the universe
    "all_kids": None,
    "mixed": {"men", "women"},
}


def _legacy_match(event: Event, profile: Profile) -> bool:
    event_group = str(event.legacy_group or "").strip().lower()
    if not event_group:
        return False

    if event_group in _LEGACY_OPEN:
        allowed = _LEGACY_OPEN[event_group]
        if allowed is None:
            return True
        return str(profile.legacy_group or "").strip().lower() in allowed

    return event_group == str(profile.legacy_group or "").strip().lower()


def is_visible(event: Event, profile: Profile, admin_listing: bool = False) -> bool:
    """
    Whether a profile may see / act on an event

    Args:
        event: the event
        profile: the profile the action is for (never the parent acting for it)
        admin_listing: admin listing/management bypass. Not for "my attendance".
    """
    if admin_listing:
        return True

    if event.is_child_event != profile.is_child:
        return False

    if event.target_groups:
        targets = {g.strip().lower() for g in event.target_groups}
        return bool(targets & profile_groups(profile))

    return _legacy_match(event, profile)


def visible_events(events: Iterable[Event], profile: Profile) -> List[Event]:
    return [e for e in events if is_visible(e, profile)]
