"""Split ratio helpers.

A split ratio is stored as ``"mine:theirs"`` from the owner's perspective, so
the same arrangement reads ``"3:2"`` for one partner and ``"2:3"`` for the
other.
"""

import re
from decimal import Decimal
from typing import Optional, Tuple

RATIO_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*:\s*(\d+(?:\.\d+)?)\s*$")


def parse_split_ratio(value: str) -> Tuple[str, str]:
    """Split ``"A:B"`` into its two share strings.

    Raises:
        ValueError: If the value is not two non-negative numbers joined by
            a colon, or both shares are zero
    """
    match = RATIO_PATTERN.match(value or "")
    if not match:
        raise ValueError("Split ratio must look like A:B, e.g. 1:1 or 3:2")
    mine, theirs = match.groups()
    if Decimal(mine) == 0 and Decimal(theirs) == 0:
        raise ValueError("Split ratio cannot be 0:0")
    return mine, theirs


def normalize_split_ratio(value: str) -> str:
    mine, theirs = parse_split_ratio(value)
    return f"{mine}:{theirs}"


def invert_split_ratio(value: Optional[str]) -> Optional[str]:
    """Return the same split seen from the partner's side."""
    if value is None:
        return None
    mine, theirs = parse_split_ratio(value)
    return f"{theirs}:{mine}"
