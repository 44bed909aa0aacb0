"""
Profile & Group Resolver

Category is derived at read time and never persisted, so changing a
profile's gender or payment-manager flag reclassifies it everywhere.
"""
from typing import Optional, Set

from .models import AdultProfile, Category, Profile


def resolve_category(
    gender: Optional[str],
    has_payment_manager: Optional[bool],
    legacy_group: Optional[str] = None,
) -> Category:
    """
    Classify a profile into men / women / juniors

    Priority:
        1. payment manager -> juniors
        2. gender Male / Female
        3. legacy group "women" / "juniors"
        4. men
    """
    if has_payment_manager is True:
        return Category.juniors

    g = str(gender or "").strip().lower()
    if g == "male":
        return Category.men
    if g == "female":
        return Category.women

    legacy = str(legacy_group or "").strip().lower()
    if legacy == "women":
        return Category.women
    if legacy == "juniors":
        return Category.juniors

    return Category.men


def category_of(profile: AdultProfile) -> Category:
    return resolve_category(
        profile.gender,
        profile.has_payment_manager,
        profile.legacy_group,
    )


def profile_groups(profile: Profile) -> Set[str]:
    """Lower-cased target groups a profile belongs to"""
    groups = {g.strip().lower() for g in profile.groups if g.strip()}
    if profile.is_child and not groups:
        groups = {"kids"}
    return groups
