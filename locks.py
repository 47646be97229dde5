"""
Lock state and constraint validation for the Deal Margin Balancer.

A LockState records which of the five primary fields the user has pinned,
plus the two group flags that pin a whole side (CPA and CRG together).
All transitions go through toggle_lock, solo_lock and clear_all, which
validate the candidate state and hand back the prior state when it is
rejected. Nothing here touches Streamlit.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, replace
from enum import Enum
from typing import Dict, Mapping, Optional, Tuple

from config import CONFLICT_MESSAGES, GROUP_FIELDS, GROUP_MEMBERS, PRIMARY_FIELDS

logger = logging.getLogger(__name__)

ALL_FIELDS = PRIMARY_FIELDS + GROUP_FIELDS


class ConflictReason(str, Enum):
    BOTH_SIDES_LOCKED = "both_sides_locked"
    ALL_THREE_LOCKED = "all_three_locked"
    TOO_MANY_LOCKED = "too_many_locked"

    @property
    def message(self) -> str:
        return CONFLICT_MESSAGES[self.value]


@dataclass(frozen=True)
class LockState:
    broker_cpa: bool = False
    broker_crg: bool = False
    affiliate_cpa: bool = False
    affiliate_crg: bool = False
    margin: bool = False
    broker_terms: bool = False
    affiliate_terms: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, bool]) -> "LockState":
        unknown = set(data) - set(ALL_FIELDS)
        if unknown:
            raise ValueError(f"Unknown lock field(s): {', '.join(sorted(unknown))}")
        return cls(**{k: bool(v) for k, v in data.items()})

    def as_dict(self) -> Dict[str, bool]:
        return asdict(self)

    @property
    def broker_pinned(self) -> bool:
        """Broker side is fixed by its group flag or by both members."""
        return self.broker_terms or (self.broker_cpa and self.broker_crg)

    @property
    def affiliate_pinned(self) -> bool:
        return self.affiliate_terms or (self.affiliate_cpa and self.affiliate_crg)

    @property
    def locked_count(self) -> int:
        """Number of individually locked primary fields (group flags excluded)."""
        return sum(1 for f in PRIMARY_FIELDS if getattr(self, f))

    def is_locked(self, field: str) -> bool:
        """Effective lock of a field, honouring group flags for members."""
        _check_field(field)
        if getattr(self, field):
            return True
        for group, members in GROUP_MEMBERS.items():
            if field in members and getattr(self, group):
                return True
        return False


def _check_field(field: str) -> None:
    if field not in ALL_FIELDS:
        raise ValueError(f"Unknown lock field: {field!r}")


# --------------------------- Validation ---------------------------

def validate(state: LockState) -> Optional[ConflictReason]:
    """
    Decide whether a lock state leaves the deal solvable.

    Returns None when solvable, otherwise the first matching conflict:
    - both group flags set -> BOTH_SIDES_LOCKED
    - both sides pinned and margin locked -> ALL_THREE_LOCKED
    - five primary fields locked individually -> TOO_MANY_LOCKED

    Both sides pinned with margin free is solvable: margin is then derived
    directly from the two fixed sides and no other field has to move.
    """
    if state.broker_terms and state.affiliate_terms:
        return ConflictReason.BOTH_SIDES_LOCKED

    both_pinned = state.broker_pinned and state.affiliate_pinned
    if both_pinned and state.margin:
        return ConflictReason.ALL_THREE_LOCKED
    if both_pinned:
        return None

    # unreachable: five individual locks pin both sides plus margin, which
    # ALL_THREE_LOCKED catches above. Kept as the last rule of the table.
    if state.locked_count >= len(PRIMARY_FIELDS):
        return ConflictReason.TOO_MANY_LOCKED

    return None


def _apply(
    current: LockState, candidate: LockState, action: str
) -> Tuple[LockState, Optional[ConflictReason]]:
    reason = validate(candidate)
    if reason is not None:
        logger.warning(f"Rejected {action}: {reason.message}")
        return current, reason
    logger.debug(f"Applied {action}: {candidate.as_dict()}")
    return candidate, None


# --------------------------- Transitions ---------------------------

def toggle_lock(state: LockState, field: str) -> Tuple[LockState, Optional[ConflictReason]]:
    """
    Flip one lock flag.

    Unlocking a member whose group flag is set also clears the group flag, so
    a group flag is never left asserted over a freed member. The new state is
    validated; on conflict the original state comes back with the reason.
    """
    _check_field(field)
    new_value = not getattr(state, field)
    changes = {field: new_value}

    if field not in GROUP_FIELDS and not new_value:
        for group, members in GROUP_MEMBERS.items():
            if field in members and getattr(state, group):
                changes[group] = False

    return _apply(state, replace(state, **changes), f"toggle {field}")


def solo_lock(state: LockState, keep_field: str) -> Tuple[LockState, Optional[ConflictReason]]:
    """Lock every primary field except keep_field, with both group flags cleared."""
    if keep_field not in PRIMARY_FIELDS:
        raise ValueError(f"Solo mode needs a primary field, got {keep_field!r}")
    candidate = LockState(**{f: f != keep_field for f in PRIMARY_FIELDS})
    return _apply(state, candidate, f"solo {keep_field}")


def clear_all(state: LockState) -> Tuple[LockState, Optional[ConflictReason]]:
    """Release every lock. A fully free deal is always solvable."""
    if state != LockState():
        logger.debug("Cleared all locks")
    return LockState(), None
