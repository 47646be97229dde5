"""
Deal Margin Balancer

Run with: streamlit run main.py

This app balances a broker/affiliate deal: broker CPA and CRG, affiliate CPA
and CRG, and the margin kept between the two effective values
(effective = CPA x CRG/100).

Locking behavior:
- Each field has a padlock; each side has a "Keep Static" toggle that pins
  both of its fields at once.
- Unlocking a single field of a static side also releases the side toggle.
- Lock changes that leave the deal unsolvable are refused and the previous
  locks stay in place.
- "Calculate Deal" recomputes the free fields around the locked ones. The
  solved values replace the inputs.
"""

from __future__ import annotations
import logging
from typing import Optional
import streamlit as st

# --------------------------- Core Calculations ---------------------------
from config import DEFAULT_TERMS, FIELD_LABELS, GROUP_MEMBERS, PRIMARY_FIELDS, configure_logging
from engine import DealTerms, calculate, solve_deal
from formatting import format_currency, format_percentage
from locks import LockState, clear_all, solo_lock, toggle_lock

logger = logging.getLogger(__name__)


# --------------------------- State Initialization ---------------------------

def init_state() -> None:
    """Initialize session state with the default deal solved once."""
    locks = LockState()
    terms = solve_deal(DealTerms.from_dict(DEFAULT_TERMS), locks)
    st.session_state.locks = locks
    st.session_state.values = terms
    st.session_state.pending_inputs = terms
    st.session_state.calculation_error = ""
    st.session_state.lock_notice = ""
    st.session_state.last_changed = None
    logger.debug(f"Session initialized with margin {terms.margin:.2f}%")


def ensure_initialized() -> None:
    if "locks" not in st.session_state:
        configure_logging()
        init_state()


def apply_pending_inputs() -> None:
    """Copy solved values into the input widgets before they are rendered."""
    pending: Optional[DealTerms] = st.session_state.get("pending_inputs")
    if pending is None:
        return
    for field in PRIMARY_FIELDS:
        st.session_state[f"input_{field}"] = getattr(pending, field)
    st.session_state.margin_slider = min(100.0, max(0.0, pending.margin))
    st.session_state.pending_inputs = None


def current_inputs() -> DealTerms:
    return DealTerms.from_dict(
        {field: st.session_state.get(f"input_{field}", 0.0) for field in PRIMARY_FIELDS}
    )


def handle_lock_result(new_locks: LockState, reason) -> None:
    if reason is not None:
        st.session_state.lock_notice = reason.message
    else:
        st.session_state.locks = new_locks
        st.session_state.lock_notice = ""
        st.session_state.calculation_error = ""
    st.rerun()


def mark_changed(field: str) -> None:
    st.session_state.last_changed = field


def sync_margin_from_slider() -> None:
    st.session_state.input_margin = st.session_state.margin_slider
    mark_changed("margin")


def sync_slider_from_margin() -> None:
    st.session_state.margin_slider = min(100.0, max(0.0, st.session_state.input_margin or 0.0))
    mark_changed("margin")


def lock_help(field: str, locks: LockState) -> str:
    """Tooltip for a padlock, worded by the field's own flag."""
    label = FIELD_LABELS[field]
    if getattr(locks, field):
        return f"Unlock {label}"
    for group, members in GROUP_MEMBERS.items():
        if field in members and getattr(locks, group):
            return f"Locked by {FIELD_LABELS[group]}. Click to also lock {label} on its own"
    return f"Lock {label}"


# --------------------------- UI Rendering ---------------------------

def field_input(field: str, locks: LockState, unit: str) -> None:
    locked = locks.is_locked(field)
    c1, c2 = st.columns([5.0, 1.0], gap="small")
    with c1:
        # no min_value: solved values may fall below zero and must still display
        st.number_input(
            f"{FIELD_LABELS[field]} ({unit})",
            step=0.01,
            format="%.2f",
            key=f"input_{field}",
            disabled=locked,
            on_change=sync_slider_from_margin if field == "margin" else mark_changed,
            args=() if field == "margin" else (field,),
        )
    with c2:
        icon = "🔒" if locked else "🔓"
        st.write("")
        pressed = st.button(icon, key=f"lockbtn_{field}", help=lock_help(field, locks))
        if pressed:
            handle_lock_result(*toggle_lock(locks, field))


def side_header(title: str, group: str, locks: LockState) -> None:
    c1, c2 = st.columns([3.0, 2.0], gap="small")
    with c1:
        st.subheader(title)
    with c2:
        label = "Static" if getattr(locks, group) else "Keep Static"
        if st.button(label, key=f"groupbtn_{group}"):
            handle_lock_result(*toggle_lock(locks, group))


def main() -> None:
    st.set_page_config(page_title="DealCalc", layout="wide")
    ensure_initialized()
    apply_pending_inputs()

    st.title("DealCalc")
    st.caption("Affiliate deal calculator with locked-field margin solving")

    if st.session_state.lock_notice:
        st.toast(st.session_state.lock_notice, icon="⚠️")
        st.session_state.lock_notice = ""

    locks: LockState = st.session_state.locks

    with st.sidebar:
        st.markdown("### Locks")
        if st.button("Clear All Locks", help="Unlock every field and both sides."):
            handle_lock_result(*clear_all(locks))

        solo_field = st.selectbox(
            "Solo mode: keep only this field dynamic",
            PRIMARY_FIELDS,
            format_func=lambda f: FIELD_LABELS[f],
        )
        if st.button("Solo", help="Lock every other field."):
            handle_lock_result(*solo_lock(locks, solo_field))

    if st.session_state.calculation_error:
        st.error(st.session_state.calculation_error)

    col_broker, col_affiliate, col_margin = st.columns(3, gap="large")
    with col_broker:
        side_header("Broker Terms", "broker_terms", locks)
        field_input("broker_cpa", locks, "$")
        field_input("broker_crg", locks, "%")
    with col_affiliate:
        side_header("Affiliate Terms", "affiliate_terms", locks)
        field_input("affiliate_cpa", locks, "$")
        field_input("affiliate_crg", locks, "%")
    with col_margin:
        st.subheader("Target Margin")
        field_input("margin", locks, "%")
        st.slider(
            label="Margin",
            min_value=0.0,
            max_value=100.0,
            step=0.1,
            key="margin_slider",
            disabled=locks.margin,
            on_change=sync_margin_from_slider,
            label_visibility="collapsed",
        )

    if st.button("Calculate Deal", type="primary"):
        # last_changed stays set until another field is edited
        solved, reason = calculate(current_inputs(), locks, st.session_state.last_changed)
        if reason is not None:
            st.session_state.calculation_error = reason.message
        else:
            st.session_state.calculation_error = ""
            st.session_state.values = solved
            st.session_state.pending_inputs = solved
        st.rerun()

    values: DealTerms = st.session_state.values

    # Deal summary
    st.markdown("### Deal Summary")
    m1, m2, m3 = st.columns(3)
    m1.metric("Your Margin", format_percentage(values.margin))
    m2.metric("Broker Effective", format_currency(values.broker_effective))
    m3.metric("Affiliate Effective", format_currency(values.affiliate_effective))

    with st.expander("Live Calculations", expanded=True):
        st.markdown(
            f"- Broker Effective: {format_currency(values.broker_cpa)} × {values.broker_crg:.2f}% "
            f"= {format_currency(values.broker_effective)}"
        )
        st.markdown(
            f"- Affiliate Effective: {format_currency(values.affiliate_cpa)} × {values.affiliate_crg:.2f}% "
            f"= {format_currency(values.affiliate_effective)}"
        )
        st.markdown(
            f"- Margin: ({format_currency(values.broker_effective)} − {format_currency(values.affiliate_effective)}) "
            f"÷ {format_currency(values.broker_effective)} × 100 = {format_percentage(values.margin)}"
        )
        st.markdown(f"- Affiliate CPL: {format_currency(values.affiliate_cpl)}")
        locked_fields = [FIELD_LABELS[f] for f in PRIMARY_FIELDS if locks.is_locked(f)]
        if locked_fields:
            st.markdown(f"- Locked: {', '.join(locked_fields)}")


if __name__ == "__main__":

    main()
