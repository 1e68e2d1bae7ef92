"""
Ordering policy for work items and sections.

Work items order by phase, then by the numeric parts of their code
("02-010" -> 2, 10), then by the full code; items without a code fall back
to section and subsection. Text comparisons use a Russian-friendly collation
key so that ordering does not depend on the OS locale.
"""

import re
import unicodedata
from functools import cmp_to_key

from .config import settings

_CODE_SPLIT = re.compile(r"[-.]")
_SECTION_CODE_SPLIT = re.compile(r"[-–]")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def collation_key(text) -> tuple:
    """
    Sort key approximating locale-aware comparison:
    primary letters without diacritics (ё sorts with е), then diacritics,
    then case with lowercase first.
    """
    s = str(text or "")
    decomposed = unicodedata.normalize("NFKD", s).casefold()
    primary = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return (primary, decomposed, s.swapcase())


def locale_compare(a, b) -> int:
    ka, kb = collation_key(a), collation_key(b)
    return (ka > kb) - (ka < kb)


def _leading_int(part: str) -> int:
    """Integer prefix of a code segment; segments without one count as 0."""
    match = _LEADING_INT.match(part or "")
    return int(match.group(1)) if match else 0


def _attr(obj, name):
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def compare_work_items(a, b) -> int:
    """Three-way comparison of two work items (dataclasses, models or dicts)."""
    phase_a = _attr(a, "phase") or settings.DEFAULT_PHASE
    phase_b = _attr(b, "phase") or settings.DEFAULT_PHASE
    if phase_a != phase_b:
        return locale_compare(phase_a, phase_b)

    code_a = _attr(a, "code") or ""
    code_b = _attr(b, "code") or ""

    if code_a and code_b:
        parts_a = _CODE_SPLIT.split(code_a)
        parts_b = _CODE_SPLIT.split(code_b)
        prefix_a, prefix_b = _leading_int(parts_a[0]), _leading_int(parts_b[0])
        if prefix_a != prefix_b:
            return -1 if prefix_a < prefix_b else 1
        if len(parts_a) > 1 and len(parts_b) > 1:
            num_a, num_b = _leading_int(parts_a[1]), _leading_int(parts_b[1])
            if num_a != num_b:
                return -1 if num_a < num_b else 1
        return locale_compare(code_a, code_b)

    section_a = _attr(a, "section") or ""
    section_b = _attr(b, "section") or ""
    if section_a != section_b:
        return locale_compare(section_a, section_b)

    return locale_compare(_attr(a, "subsection") or "", _attr(b, "subsection") or "")


def sort_work_items(items: list) -> None:
    """Sort a section's items in place. Stable for items that compare equal."""
    items.sort(key=cmp_to_key(compare_work_items))


def section_code_for(code) -> str:
    """Section code is the leading token of a work code: "01" from "01-002"."""
    if not code:
        return settings.DEFAULT_SECTION_CODE
    return _SECTION_CODE_SPLIT.split(code)[0]


def sort_sections(sections: list) -> None:
    sections.sort(key=lambda s: collation_key(s.code or settings.DEFAULT_SECTION_CODE))
