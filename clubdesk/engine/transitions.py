"""
Transition results shared by the attendance and payment state machines
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from .models import AttendanceFact, PaidStatus


@dataclass
class Transition:
    """
    Outcome of a legal state change

    `patch` is the merge the store has to apply. An empty patch means the
    call was a repeat of the current state. `expected_paid_status`, when set,
    makes the store write conditional on the status it was computed from.
    """
    fact: AttendanceFact
    patch: Dict[str, Any] = field(default_factory=dict)
    expected_paid_status: Optional[PaidStatus] = None

    @property
    def changed(self) -> bool:
        return bool(self.patch)


def apply_patch(fact: AttendanceFact, patch: Dict[str, Any]) -> AttendanceFact:
    return fact.model_copy(update=patch)


def unchanged(fact: AttendanceFact) -> Transition:
    return Transition(fact=fact)


def changed(fact: AttendanceFact, patch: Dict[str, Any], expected: Optional[PaidStatus] = None) -> Transition:
    return Transition(fact=apply_patch(fact, patch), patch=patch, expected_paid_status=expected)


def patch_to_record(patch: Dict[str, Any]) -> Dict[str, Any]:
    """Store-ready values (enum values, ISO timestamps, float-free money)"""
    record = {}
    for key, value in patch.items():
        if isinstance(value, Enum):
            value = value.value
        elif hasattr(value, "isoformat"):
            value = value.isoformat()
        elif value is not None and key == "fee_due":
            value = str(value)
        record[key] = value
    return record
