"""Parse operator row selections such as ``"1,3-5"`` or ``"all"``."""

from __future__ import annotations

import re
from typing import List

_RANGE_RE = re.compile(r"^(\d+)\s*-\s*(\d+)$")


def parse_selection(selection: str, count: int) -> List[int]:
    """Return zero-based indices selected by *selection*.

    Args:
        selection: Comma-separated one-based row numbers and inclusive ranges,
            or ``"all"``.
        count: Number of selectable rows.

    Returns:
        Indices in the order given, duplicates removed.

    Raises:
        ValueError: On empty input, malformed tokens or out-of-range rows.
    """
    text = (selection or "").strip().lower()
    if not text:
        raise ValueError("empty selection")
    if text in ("all", "*"):
        return list(range(count))

    picked: List[int] = []
    for token in (t.strip() for t in text.split(",")):
        if not token:
            continue
        m = _RANGE_RE.match(token)
        if m:
            start, end = int(m.group(1)), int(m.group(2))
            if start > end:
                raise ValueError(f"descending range {token!r}")
            numbers = range(start, end + 1)
        elif token.isdigit():
            numbers = [int(token)]
        else:
            raise ValueError(f"invalid token {token!r}")

        for n in numbers:
            if not 1 <= n <= count:
                raise ValueError(f"row {n} out of range 1-{count}")
            if n - 1 not in picked:
                picked.append(n - 1)

    if not picked:
        raise ValueError("empty selection")
    return picked
