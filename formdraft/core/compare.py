"""
Deep equality for draft snapshots.

With collapse_empty=True, values that are independently empty (None, absent, "", empty
sequence or mapping) are equal to each other, and numbers are compared after numeric
coercion so that 0 is never mistaken for an empty value.
"""

import math
from collections.abc import Mapping
from typing import Any

from .schema import MISSING

_SEQUENCES = (list, tuple)
_CONTAINERS = (Mapping,) + _SEQUENCES


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_empty(value: Any) -> bool:
    if value is None or value is MISSING:
        return True
    if isinstance(value, (str, bytes, list, tuple, set, frozenset, Mapping)):
        return len(value) == 0
    return False


def to_number(value: Any) -> float:
    """Numeric coercion in the manner of JavaScript Number().

    None, blank strings and empty sequences are 0. A one-item sequence coerces as its
    item. Anything unparseable is NaN.
    """
    if isinstance(value, bool):
        return float(value)
    if _is_number(value):
        return float(value)
    if value is None:
        return 0.0
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        try:
            return float(text)
        except ValueError:
            return math.nan
    if isinstance(value, _SEQUENCES):
        if not value:
            return 0.0
        # A bool item stringifies to "true"/"false", which is not numeric
        if len(value) == 1 and not isinstance(value[0], bool):
            return to_number(value[0])
    return math.nan


def deep_equal(a: Any, b: Any, collapse_empty: bool = False) -> bool:
    """Structural equality with the numeric and emptiness policy described above."""
    # Containers never take the numeric path; they compare structurally
    if (_is_number(a) or _is_number(b)) and not isinstance(a, _CONTAINERS) and not isinstance(b, _CONTAINERS):
        if collapse_empty:
            return to_number(a) == to_number(b)
        return _is_number(a) and _is_number(b) and a == b

    if collapse_empty and _is_empty(a) and _is_empty(b):
        return True

    if isinstance(a, Mapping) and isinstance(b, Mapping):
        return _mappings_equal(a, b, collapse_empty)

    if isinstance(a, _SEQUENCES) and isinstance(b, _SEQUENCES):
        if len(a) != len(b):
            return False
        return all(deep_equal(x, y, collapse_empty) for x, y in zip(a, b))

    if isinstance(a, _CONTAINERS) or isinstance(b, _CONTAINERS):
        return False

    if type(a) is not type(b) and not (isinstance(a, str) and isinstance(b, str)):
        return False

    return a == b


def _mappings_equal(a: Mapping, b: Mapping, collapse_empty: bool) -> bool:
    if not collapse_empty and set(a.keys()) != set(b.keys()):
        return False

    for key in set(a.keys()) | set(b.keys()):
        if not deep_equal(a.get(key, MISSING), b.get(key, MISSING), collapse_empty):
            return False
    return True
