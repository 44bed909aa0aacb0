"""
Friends / Attendance Aggregator

"Who is going" summary for one event, bucketed by derived category.
"""
from typing import Dict, Iterable, List, Mapping

from pydantic import BaseModel

from .categories import category_of
from .models import Attending, AttendanceFact, Event, Profile
from .visibility import is_visible

ADULT_BUCKETS = ("men", "women", "juniors")
CHILD_BUCKETS = ("kids",)


class FriendEntry(BaseModel):
    profile_id: str
    name: str


class FriendsBucket(BaseModel):
    yes: int = 0
    total: int = 0
    people: List[FriendEntry] = []


def eligible_population(event: Event, population: Iterable[Profile]) -> List[Profile]:
    """Active profiles the event is open to"""
    return [p for p in population if p.is_active and is_visible(event, p)]


def _bucket_of(profile: Profile) -> str:
    if profile.is_child:
        return "kids"
    return category_of(profile).value


def summarize_friends(
    event: Event,
    population: Iterable[Profile],
    facts: Mapping[str, AttendanceFact],
) -> Dict[str, FriendsBucket]:
    """
    Args:
        event: the event
        population: every known profile, filtered here
        facts: attendance records keyed by profile_id

    Returns:
        bucket name -> FriendsBucket. `people` lists those marked going.
    """
    names = CHILD_BUCKETS if event.is_child_event else ADULT_BUCKETS
    buckets = {name: FriendsBucket() for name in names}

    for profile in eligible_population(event, population):
        bucket = buckets[_bucket_of(profile)]
        bucket.total += 1

        fact = facts.get(profile.profile_id)
        if fact is not None and fact.attending == Attending.yes:
            bucket.yes += 1
            bucket.people.append(FriendEntry(profile_id=profile.profile_id, name=profile.name))

    for bucket in buckets.values():
        bucket.people.sort(key=lambda p: p.name.lower())

    return buckets
