"""
Deal solver: effective values, margin and the locked-field recalculation.

Each side of a deal has an effective value, CPA x CRG/100, and the margin is
the share of the broker effective value the affiliate side does not take.
solve_deal keeps that identity true. With margin free it derives margin from
the two sides. With margin locked it solves one member of the free side so
the locked margin holds, anchoring on the broker side when neither side is
pinned. All outputs go through the two-decimal rounding policy, and the
margin is derived from the rounded effective values the caller sees.
"""
from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass, replace
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Mapping, Optional, Tuple

from config import ROUND_DECIMALS
from locks import ConflictReason, LockState, validate

logger = logging.getLogger(__name__)

_QUANT = Decimal(1).scaleb(-ROUND_DECIMALS)

# camelCase keys accepted by DealTerms.from_dict
_ALIASES = {
    "brokerCPA": "broker_cpa",
    "brokerCRG": "broker_crg",
    "affiliateCPA": "affiliate_cpa",
    "affiliateCRG": "affiliate_crg",
}


# --------------------------- Arithmetic ---------------------------

def to_number(value: Any) -> float:
    """Coerce raw input to a finite float; blanks, junk and NaN/Inf become 0."""
    if value is None:
        return 0.0
    try:
        num = float(value)
    except (TypeError, ValueError):
        return 0.0
    return num if math.isfinite(num) else 0.0


def round_value(value: Any) -> float:
    """Round to ROUND_DECIMALS places, half away from zero."""
    num = to_number(value)
    if abs(num) >= 1e15:
        # no fractional digits left to round at this magnitude
        return num
    rounded = float(Decimal(repr(num)).quantize(_QUANT, rounding=ROUND_HALF_UP))
    # avoid -0.0 leaking into the UI
    return rounded + 0.0


def effective_value(cpa: Any, crg: Any) -> float:
    """Effective value of one side: CPA x CRG/100."""
    return to_number(cpa) * (to_number(crg) / 100)


def compute_margin(broker_eff: float, affiliate_eff: float) -> float:
    """Margin in percent kept between broker and affiliate effective values (0 if broker is 0)."""
    if broker_eff == 0:
        return 0.0
    return (broker_eff - affiliate_eff) / broker_eff * 100


def _safe_div(numerator: float, denominator: float) -> float:
    if denominator == 0:
        return 0.0
    result = numerator / denominator
    return result if math.isfinite(result) else 0.0


# --------------------------- Data model ---------------------------

@dataclass(frozen=True)
class DealTerms:
    """
    The five primary deal values.

    Effective values are projections of CPA/CRG and cannot be set directly.
    """

    broker_cpa: float = 0.0
    broker_crg: float = 0.0
    affiliate_cpa: float = 0.0
    affiliate_crg: float = 0.0
    margin: float = 0.0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DealTerms":
        values = {}
        for key, raw in data.items():
            name = _ALIASES.get(key, key)
            if name in cls.__dataclass_fields__:
                values[name] = to_number(raw)
        return cls(**values)

    @property
    def broker_effective(self) -> float:
        return round_value(effective_value(self.broker_cpa, self.broker_crg))

    @property
    def affiliate_effective(self) -> float:
        return round_value(effective_value(self.affiliate_cpa, self.affiliate_crg))

    @property
    def affiliate_cpl(self) -> float:
        """Cost per lead shown to affiliates; an alias of the affiliate effective value."""
        return self.affiliate_effective

    def replace(self, **changes: Any) -> "DealTerms":
        return replace(self, **changes)

    def as_dict(self) -> Dict[str, float]:
        out = asdict(self)
        out["broker_effective"] = self.broker_effective
        out["affiliate_effective"] = self.affiliate_effective
        return out


def normalize_terms(terms: DealTerms) -> DealTerms:
    """Apply the rounding policy to every primary field."""
    return DealTerms(
        broker_cpa=round_value(terms.broker_cpa),
        broker_crg=round_value(terms.broker_crg),
        affiliate_cpa=round_value(terms.affiliate_cpa),
        affiliate_crg=round_value(terms.affiliate_crg),
        margin=round_value(terms.margin),
    )


# --------------------------- Solver ---------------------------

def _solve_side(
    cpa: float,
    crg: float,
    target_eff: float,
    cpa_locked: bool,
    crg_locked: bool,
    recompute_crg_hint: bool,
) -> Tuple[float, float]:
    """
    Hit target_eff on one side by moving a single member, rounded.

    CRG moves when CPA is locked, CPA moves when CRG is locked. With neither
    locked, CRG moves only if the hint asks for it, else CPA is recomputed,
    unless the pair already solves to itself through either member.
    """
    solved_crg = round_value(_safe_div(target_eff, cpa) * 100)
    solved_cpa = round_value(_safe_div(target_eff, crg / 100))
    if cpa_locked:
        return cpa, solved_crg
    if crg_locked:
        return solved_cpa, crg
    if recompute_crg_hint:
        return cpa, solved_crg
    if solved_crg == crg or solved_cpa == cpa:
        # already the output of an earlier solve
        return cpa, crg
    return solved_cpa, crg


def solve_deal(
    terms: DealTerms,
    locks: LockState,
    last_changed: Optional[str] = None,
) -> DealTerms:
    """
    Recompute free fields so the deal satisfies the margin identity.

    Parameters
    - terms: current values (raw user input is fine; it is normalised first)
    - locks: a lock state already accepted by locks.validate
    - last_changed: optional name of the field the user just edited; when the
      side being solved has no individually locked member, the other member
      of the pair is recomputed instead of CPA

    Returns
    - a new DealTerms rounded to two decimals

    Notes
    - Margin unlocked: only margin is derived, from the current CPA/CRG pairs.
    - Margin locked: the free side is solved against the pinned one. When no
      side is pinned the broker side anchors and the affiliate side moves.
    - Any division by zero yields 0 for the solved field. The function never
      raises on numeric input and never returns NaN or Infinity.
    """
    t = normalize_terms(terms)
    broker_cpa, broker_crg = t.broker_cpa, t.broker_crg
    affiliate_cpa, affiliate_crg = t.affiliate_cpa, t.affiliate_crg
    margin = t.margin
    keep = 1 - margin / 100

    if locks.margin:
        broker_pinned = locks.broker_pinned
        affiliate_pinned = locks.affiliate_pinned

        if broker_pinned and affiliate_pinned:
            # rejected by validate(); nothing left to move
            logger.debug("Margin and both sides locked, leaving terms as they are")
        elif affiliate_pinned:
            target = _safe_div(effective_value(affiliate_cpa, affiliate_crg), keep)
            logger.debug(f"Solving broker side for effective {target:.4f}")
            broker_cpa, broker_crg = _solve_side(
                broker_cpa,
                broker_crg,
                target,
                cpa_locked=locks.broker_cpa,
                crg_locked=locks.broker_crg,
                recompute_crg_hint=last_changed == "broker_cpa",
            )
        else:
            # broker pinned, or no side pinned: broker anchors either way
            target = effective_value(broker_cpa, broker_crg) * keep
            logger.debug(f"Solving affiliate side for effective {target:.4f}")
            affiliate_cpa, affiliate_crg = _solve_side(
                affiliate_cpa,
                affiliate_crg,
                target,
                cpa_locked=locks.affiliate_cpa,
                crg_locked=locks.affiliate_crg,
                recompute_crg_hint=last_changed == "affiliate_cpa",
            )

    solved = DealTerms(
        broker_cpa=broker_cpa,
        broker_crg=broker_crg,
        affiliate_cpa=affiliate_cpa,
        affiliate_crg=affiliate_crg,
        margin=margin,
    )
    if not locks.margin:
        solved = solved.replace(
            margin=round_value(compute_margin(solved.broker_effective, solved.affiliate_effective))
        )
    return solved


def calculate(
    terms: DealTerms,
    locks: LockState,
    last_changed: Optional[str] = None,
) -> Tuple[DealTerms, Optional[ConflictReason]]:
    """
    Validate the lock state, then solve.

    On conflict the input terms come back untouched together with the reason.
    """
    reason = validate(locks)
    if reason is not None:
        logger.warning(f"Calculation refused: {reason.message}")
        return terms, reason

    solved = solve_deal(terms, locks, last_changed)
    logger.info(
        f"Deal solved: margin {solved.margin:.2f}%, broker eff {solved.broker_effective:.2f}, "
        f"affiliate eff {solved.affiliate_effective:.2f}"
    )
    return solved, None
