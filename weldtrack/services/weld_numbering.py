"""Weld number pattern detection and next-number generation.

Weld numbers on a project follow a house style such as ``W-001``,
``FW-12`` or a bare ``7``. Given the numbers already in use, these helpers
detect the dominant style and propose the next free number, filling the
first gap in the sequence before extending it.
"""
import re
from collections import Counter
from dataclasses import dataclass
from typing import Iterable, Optional

_WELD_ID_RE = re.compile(r'^(.*?)(\d+)$')


@dataclass(frozen=True)
class WeldNumberPattern:
    """Prefix and zero-padding shared by a project's weld numbers."""
    prefix: str
    padding_length: int
    has_prefix: bool

    def to_dict(self) -> dict:
        return {
            'prefix': self.prefix,
            'padding_length': self.padding_length,
            'has_prefix': self.has_prefix,
        }


DEFAULT_PATTERN = WeldNumberPattern(prefix='W-', padding_length=3, has_prefix=True)


def _split_weld_id(weld_id: str):
    match = _WELD_ID_RE.match(weld_id.strip())
    if not match:
        return None
    prefix, digits = match.groups()
    padding = len(digits) if digits.startswith('0') else 0
    return prefix, padding


def detect_weld_pattern(weld_ids: Iterable[str]) -> WeldNumberPattern:
    """Return the most common numbering pattern among ``weld_ids``.

    Padding is only recorded when the digit run carries a leading zero, so
    ``FW-100`` counts towards an unpadded pattern while ``FW-098`` counts
    as padded to 3. Ties are broken by first appearance.
    """
    counts = Counter()
    for weld_id in weld_ids:
        if not weld_id:
            continue
        parts = _split_weld_id(weld_id)
        if parts is not None:
            counts[parts] += 1

    if not counts:
        return DEFAULT_PATTERN

    (prefix, padding), _ = counts.most_common(1)[0]
    return WeldNumberPattern(prefix=prefix, padding_length=padding, has_prefix=bool(prefix))


def parse_weld_number(weld_id: str, pattern: WeldNumberPattern) -> Optional[int]:
    """Extract the sequence number from ``weld_id`` or None if it doesn't fit."""
    if not weld_id:
        return None
    weld_id = weld_id.strip()
    if not weld_id.startswith(pattern.prefix):
        return None
    digits = weld_id[len(pattern.prefix):]
    if not digits or not (digits.isascii() and digits.isdigit()):
        return None
    return int(digits)


def format_weld_number(number: int, pattern: WeldNumberPattern) -> str:
    """Render ``number`` in ``pattern``; wider numbers are never truncated."""
    return f'{pattern.prefix}{str(number).zfill(pattern.padding_length)}'


def find_next_weld_number(weld_ids: Iterable[str]) -> str:
    """Propose the next weld number for a project.

    The first gap between the lowest and highest used number is filled;
    when the sequence is contiguous the number after the highest is used.
    Numbers below the lowest are never proposed.
    """
    ids = [w for w in weld_ids if w]
    pattern = detect_weld_pattern(ids)

    used = set()
    for weld_id in ids:
        number = parse_weld_number(weld_id, pattern)
        if number is not None:
            used.add(number)

    if not used:
        return format_weld_number(1, pattern)

    lowest, highest = min(used), max(used)
    for candidate in range(lowest, highest):
        if candidate not in used:
            return format_weld_number(candidate, pattern)
    return format_weld_number(highest + 1, pattern)
