"""Natural (human-friendly) sorting for batch labels with embedded numbers.

Sorts labels the way people expect: "plate2" before "plate10", "donor_1"
before "donor_12". Pure text (no digits) sorts after labels that contain
numbers. Non-string labels (e.g. integer plate numbers) are compared through
their string form.
"""

import re
from typing import Callable, Hashable, List, Optional


def natural_sort_key(text: str) -> tuple:
    """Build a key for natural sorting of strings with embedded numbers.

    Examples:
        - "plate10" is ordered after "plate2".
        - "3" is ordered before "12".
        - "run9" is ordered before "unassigned" (text-only goes last).

    Args:
        text: Input string.

    Returns:
        Tuple (has_digit, parts) used by ``sorted``.
    """
    has_digit = bool(re.search(r"\d", text))

    def convert(part: str) -> tuple:
        if part.isdigit():
            return (0, int(part))
        return (1, part.lower())

    parts = [convert(c) for c in re.split(r"([0-9]+)", text) if c]
    return (0 if has_digit else 1, parts)


def natural_sort(
    items: List[str],
    key_func: Optional[Callable[[str], tuple]] = None,
) -> List[str]:
    """Sort strings using natural (human-friendly) order.

    Args:
        items: Strings to sort.
        key_func: Optional custom key; defaults to :func:`natural_sort_key`.

    Returns:
        New list sorted in natural order.
    """
    if not items:
        return list(items)
    key = key_func if key_func is not None else natural_sort_key
    return sorted(items, key=key)


def order_batch_labels(labels: List[Hashable]) -> List[Hashable]:
    """Order batch labels naturally, keeping their original types.

    Args:
        labels: Unique batch labels (strings, integers, ...).

    Returns:
        Same labels sorted by the natural order of their string form.
    """
    return natural_sort(list(labels), key_func=lambda lab: natural_sort_key(str(lab)))
