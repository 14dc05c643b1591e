"""
legacy_fields.py — Packed profile/settings text from the old schema
Older deployments kept two values in one text column:
    profiles.name   "Alice:::["h1","h2"]"   display name + selected habit ids
    settings.rules  "[STAKE:200] 1. Be honest"   stake amount + rules text
Reading this is always supported; writing it only when LEGACY_FIELD_ENCODING is on.
"""

import json
import logging
import math
import re

from config import DEFAULT_STAKE_AMOUNT

logger = logging.getLogger(__name__)

HABIT_SEP = ":::"
STAKE_TAG = re.compile(r"^\[STAKE:([^\]]*)\]\s*")


def unpack_name(raw: str | None) -> tuple[str, list[str] | None]:
    """
    Split a packed name. Returns (display_name, habit_ids) where habit_ids is
    None when the name carried no packed list, [] when the list was unreadable.
    """
    raw = raw or ""
    if HABIT_SEP not in raw:
        return raw.strip(), None
    name, _, payload = raw.partition(HABIT_SEP)
    try:
        ids = json.loads(payload)
        if not isinstance(ids, list):
            raise ValueError("not a list")
        return name.strip(), [str(i) for i in ids]
    except ValueError as e:
        logger.warning(f"Unreadable habit id list in profile name {raw!r}: {e}")
        return name.strip(), []


def pack_name(name: str, habit_ids: list[str] | None) -> str:
    name = (name or "").strip()
    if not habit_ids:
        return name
    return f"{name}{HABIT_SEP}{json.dumps(list(habit_ids))}"


def unpack_rules(raw: str | None) -> tuple[str, float | None]:
    """
    Strip a leading [STAKE:n] tag. Returns (rules, stake) with stake None
    when no tag is present; a malformed tag yields the default stake.
    """
    raw = raw or ""
    match = STAKE_TAG.match(raw)
    if not match:
        return raw, None
    rules = raw[match.end():]
    stake = parse_stake(match.group(1))
    if stake is None:
        logger.warning(f"Malformed stake tag {match.group(0)!r}; using {DEFAULT_STAKE_AMOUNT}")
        stake = float(DEFAULT_STAKE_AMOUNT)
    return rules, stake


def parse_stake(value) -> float | None:
    """A finite, non-negative amount, or None."""
    try:
        stake = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(stake) or stake < 0:
        return None
    return stake


def pack_rules(rules: str, stake_amount: float) -> str:
    # Old clients only read whole numbers in the tag
    stake = round(stake_amount)
    if stake != stake_amount:
        logger.warning(f"Stake {stake_amount} written to the legacy tag as {stake}")
    return f"[STAKE:{stake}] {rules or ''}"
