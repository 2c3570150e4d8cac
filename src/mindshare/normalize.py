"""Normalise attention values into basis points that sum to exactly 10,000.

Three cases:

* empty input → empty allocation
* all-zero total → even split, leftover bps to the lowest entity ids
* positive total → floor of each proportional share, leftover bps one each to
  the largest attention values (ties broken by entity id)

Shares are computed with exact rational arithmetic so the floor step never
overshoots and the leftover is always smaller than the number of entities.
"""

from __future__ import annotations

import logging
import math
import numbers
from collections.abc import Mapping
from fractions import Fraction

from mindshare.errors import InputContractViolation, InvariantViolation

logger = logging.getLogger(__name__)

BPS_TOTAL = 10_000


def normalize(values: Mapping[str, float]) -> dict[str, int]:
    """Return an integer bps allocation over the keys of *values*.

    The result has the same keys in the same order, every value is a
    non-negative int, and a non-empty result sums to :data:`BPS_TOTAL`.

    Raises :class:`InputContractViolation` for empty ids and for negative,
    NaN, infinite or non-numeric values.
    """
    if not values:
        return {}

    exact = _validated(values)
    total = sum(exact.values(), Fraction(0))

    if total == 0:
        bps = _even_split(list(exact))
    else:
        bps = _proportional(exact, total)

    return _enforce_total(bps)


def _validated(values: Mapping[str, float]) -> dict[str, Fraction]:
    exact: dict[str, Fraction] = {}
    for entity_id, value in values.items():
        if not entity_id:
            raise InputContractViolation("attention value keyed by an empty entity id")
        if isinstance(value, bool) or not isinstance(value, numbers.Real):
            raise InputContractViolation(
                f"attention value for {entity_id!r} is not a number: {value!r}"
            )
        if not math.isfinite(value):
            raise InputContractViolation(
                f"attention value for {entity_id!r} is not finite: {value!r}"
            )
        if value < 0:
            raise InputContractViolation(
                f"attention value for {entity_id!r} is negative: {value!r}"
            )
        exact[entity_id] = Fraction(value)
    return exact


def _even_split(entity_ids: list[str]) -> dict[str, int]:
    base, remainder = divmod(BPS_TOTAL, len(entity_ids))
    bps = dict.fromkeys(entity_ids, base)
    for entity_id in sorted(entity_ids)[:remainder]:
        bps[entity_id] += 1
    return bps


def _proportional(exact: dict[str, Fraction], total: Fraction) -> dict[str, int]:
    bps = {
        entity_id: math.floor(value * BPS_TOTAL / total)
        for entity_id, value in exact.items()
    }
    remainder = BPS_TOTAL - sum(bps.values())

    # Largest attention first; equal values fall back to entity id order
    ranked = sorted(exact, key=lambda entity_id: (-exact[entity_id], entity_id))
    for entity_id in ranked[:remainder]:
        bps[entity_id] += 1

    logger.debug(
        "Normalised %d entities; %d leftover bps to the top of the ranking",
        len(bps),
        remainder,
    )
    return bps


def _enforce_total(bps: dict[str, int]) -> dict[str, int]:
    """Re-check the sum and force it back onto the last entry if it drifted."""
    total = sum(bps.values())
    if total == BPS_TOTAL:
        return bps

    last_id = next(reversed(bps))
    corrected = bps[last_id] + (BPS_TOTAL - total)
    logger.error(
        "BPS allocation sums to %d, expected %d; adjusting %s by %+d",
        total,
        BPS_TOTAL,
        last_id,
        BPS_TOTAL - total,
    )
    if corrected < 0:
        raise InvariantViolation(
            f"cannot restore bps total: {last_id!r} would become {corrected}"
        )
    bps[last_id] = corrected
    return bps
