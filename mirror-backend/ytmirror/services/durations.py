"""
ISO-8601 duration parsing and the "is short" classification derived from it.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

# The subset YouTube emits: PnDTnHnMnS (e.g. PT58S, PT12M34S, P1DT2H).
DURATION_REGEX = re.compile(
    r'^P(?:(\d+)D)?(?:T(?:(\d+)H)?(?:(\d+)M)?(?:(\d+(?:\.\d+)?)S)?)?$',
    re.IGNORECASE,
)


@dataclass(frozen=True)
class DurationFields:
    duration: Optional[str]
    duration_seconds: Optional[int]
    is_short: bool
    short_rule_version: str


def parse_iso8601_duration(value: Optional[str]) -> Optional[int]:
    """Return the duration in whole seconds, or None when blank/unparseable."""
    if not value:
        return None
    value = value.strip()
    if not value or value.upper() in ("P", "PT"):
        return None

    m = DURATION_REGEX.match(value)
    if not m:
        return None

    days, hours, minutes, seconds = m.groups()
    total = (
        int(days or 0) * 86_400
        + int(hours or 0) * 3_600
        + int(minutes or 0) * 60
        + float(seconds or 0)
    )
    # rounds half up
    return int(total + 0.5)


def classify_short(duration_seconds: Optional[int], max_seconds: int) -> bool:
    if duration_seconds is None:
        return False
    return 0 < duration_seconds <= max_seconds


def derive_duration_fields(duration: Optional[str], max_seconds: int, rule_version: str) -> DurationFields:
    seconds = parse_iso8601_duration(duration)
    return DurationFields(
        duration=duration,
        duration_seconds=seconds,
        is_short=classify_short(seconds, max_seconds),
        short_rule_version=rule_version,
    )
