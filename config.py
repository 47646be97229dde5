"""
Configuration for the Deal Margin Balancer.

Field names, default deal terms, conflict messages and logging settings live
here so the engine, the lock model and the Streamlit UI share one source.
"""
from __future__ import annotations

import logging
import os
from typing import Dict, Tuple

# --------------------------- Fields ---------------------------
PRIMARY_FIELDS: Tuple[str, ...] = (
    "broker_cpa",
    "broker_crg",
    "affiliate_cpa",
    "affiliate_crg",
    "margin",
)

GROUP_FIELDS: Tuple[str, ...] = ("broker_terms", "affiliate_terms")

# group flag -> (cpa field, crg field)
GROUP_MEMBERS: Dict[str, Tuple[str, str]] = {
    "broker_terms": ("broker_cpa", "broker_crg"),
    "affiliate_terms": ("affiliate_cpa", "affiliate_crg"),
}

FIELD_LABELS: Dict[str, str] = {
    "broker_cpa": "Broker CPA",
    "broker_crg": "Broker CRG",
    "affiliate_cpa": "Affiliate CPA",
    "affiliate_crg": "Affiliate CRG",
    "margin": "Margin",
    "broker_terms": "Broker Terms",
    "affiliate_terms": "Affiliate Terms",
}

# --------------------------- Defaults ---------------------------
DEFAULT_TERMS: Dict[str, float] = {
    "broker_cpa": 1200.0,
    "broker_crg": 10.0,
    "affiliate_cpa": 1000.0,
    "affiliate_crg": 10.0,
    "margin": 20.0,
}

ROUND_DECIMALS = 2
CURRENCY_SYMBOL = "$"

# --------------------------- Messages ---------------------------
CONFLICT_MESSAGES: Dict[str, str] = {
    "both_sides_locked": "Cannot lock both Broker and Affiliate terms at the same time.",
    "all_three_locked": "Cannot solve. All three sides (Broker, Affiliate, Margin) are locked.",
    "too_many_locked": "Too many variables are locked. At least one must be dynamic.",
}

# --------------------------- Logging ---------------------------
LOGGING_CONFIG = {
    "level": os.environ.get("DEALCALC_LOG_LEVEL", "INFO").upper(),
    "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    "date_format": "%Y-%m-%d %H:%M:%S",
}


def configure_logging() -> None:
    """Apply LOGGING_CONFIG to the root logger."""
    logging.basicConfig(
        level=LOGGING_CONFIG["level"],
        format=LOGGING_CONFIG["format"],
        datefmt=LOGGING_CONFIG["date_format"],
    )
