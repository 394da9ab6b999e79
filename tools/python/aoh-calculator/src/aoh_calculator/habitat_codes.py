"""
AoH Calculator — Habitat Code Translation
==========================================
Flattens IUCN habitat classification codes into the integer code space
used by the Jung et al. habitat raster.

IUCN codes have up to three dotted levels (``9`` Marine Neritic,
``9.8`` Coral Reef, ``9.8.5`` Inter-reef substrate).  The Jung map has
only two levels and stores them as ``major * 100 + minor``, so ``9``
becomes ``900`` and ``9.8`` becomes ``908``.  Translation rules:

* a third-level code collapses to its second-level parent;
* a second-level code yields both itself and its parent;
* a top-level code yields itself and every child.

Only codes that actually occur in the Jung map are returned.

Usage::

    from aoh_calculator.habitat_codes import translate_codes

    translate_codes({"11.1.1", "9"})   # {900, 901, ..., 910, 1100, 1101}
"""

from __future__ import annotations

from typing import Iterable

from shared.python.exceptions import EmptyHabitatCodeError, NonNumericHabitatCodeError

VALID_JUNG_CODES: frozenset[int] = frozenset({
    100, 101, 102, 103, 104, 105, 106, 107, 108, 109,
    200, 201, 202,
    300, 301, 302, 303, 304, 305, 306, 307, 308,
    400, 401, 402, 403, 404, 405, 406, 407,
    500, 501, 502, 503, 504, 505, 506, 507, 508, 509,
    510, 511, 512, 513, 514, 515, 516, 517, 518,
    600,
    800, 801, 802, 803,
    900, 901, 902, 903, 904, 905, 906, 907, 908, 909, 910,
    1000, 1001, 1002, 1003, 1004,
    1100, 1101, 1102, 1103, 1104, 1105, 1106,
    1200, 1201, 1202, 1203, 1204, 1205, 1206, 1207,
    1400, 1401, 1402, 1403, 1404, 1405, 1406,
    1700,
})

# Highest second-level suffix seen in the IUCN scheme is 18; anything the
# map does not use is dropped by the final filter.
MAX_MINOR_CODE = 19


def parse_code(code: str) -> list[int]:
    """Split a dotted IUCN code into its integer levels.

    Args:
        code: A code such as ``"9.8.5"``.

    Returns:
        The levels in order, e.g. ``[9, 8, 5]``.

    Raises:
        EmptyHabitatCodeError: If *code* is empty.
        NonNumericHabitatCodeError: If any level is not a non-negative integer.
    """
    if not code:
        raise EmptyHabitatCodeError()
    parts = code.split(".")
    if not all(part.isdecimal() for part in parts):
        raise NonNumericHabitatCodeError(code)
    return [int(part) for part in parts]


def candidate_codes(levels: list[int]) -> set[int]:
    """Flat codes a single parsed IUCN code may map to, before filtering."""
    major = levels[0] * 100
    if len(levels) > 1:
        return {major, major + levels[1]}
    return {major} | {major + minor for minor in range(MAX_MINOR_CODE + 1)}


def translate_codes(
    codes: Iterable[str],
    valid_codes: frozenset[int] = VALID_JUNG_CODES,
) -> set[int]:
    """Convert IUCN habitat codes to the flat codes found in the habitat map.

    Args:
        codes: IUCN dotted habitat codes.
        valid_codes: Codes that exist in the target raster.

    Returns:
        The set of flat integer codes to search the habitat raster for.
        Empty input gives an empty set.

    Raises:
        EmptyHabitatCodeError: If any code is empty.
        NonNumericHabitatCodeError: If any code has a non-numeric level.
    """
    result: set[int] = set()
    for code in codes:
        result |= candidate_codes(parse_code(code))
    return result & valid_codes
