"""Pure rules over an item's unit buckets.

Nothing here touches the database: the service layer loads counts, applies
these functions and writes the result back.
"""

from __future__ import annotations

from fractions import Fraction
from math import floor
from typing import Optional

from shoptrack.models.ledger import MoveMode
from shoptrack.models.shopping import STAGE_ORDER, ItemStatus, UnitCounts


class NoUnitsAvailableError(ValueError):
    """Raised when a move draws from an empty bucket."""

    def __init__(self, source: ItemStatus):
        super().__init__(f"No units available in '{source.value}'")
        self.source = source


class UnitSumMismatchError(ValueError):
    """Raised when bucket counts do not add up to the item quantity."""

    def __init__(self, counts: UnitCounts, quantity: int):
        super().__init__(
            f"Unit counts sum to {counts.total} but the item quantity is {quantity}"
        )
        self.counts = counts
        self.quantity = quantity


# Forward progression for a single unit; success is terminal.
FORWARD_CHAIN: dict[ItemStatus, ItemStatus] = {
    ItemStatus.PENDING: ItemStatus.DONE,
    ItemStatus.DONE: ItemStatus.SHIPPED,
    ItemStatus.SHIPPED: ItemStatus.SUCCESS,
    ItemStatus.FAILED: ItemStatus.PENDING,
}

# Status-column rows that predate unit tracking cycle through four states.
LEGACY_CYCLE: dict[ItemStatus, ItemStatus] = {
    ItemStatus.PENDING: ItemStatus.DONE,
    ItemStatus.DONE: ItemStatus.SHIPPED,
    ItemStatus.SHIPPED: ItemStatus.FAILED,
    ItemStatus.SUCCESS: ItemStatus.FAILED,
    ItemStatus.FAILED: ItemStatus.PENDING,
}

COMPLETED_STAGES = (ItemStatus.DONE, ItemStatus.SHIPPED, ItemStatus.SUCCESS)
LEGACY_COMPLETED_STAGES = frozenset({ItemStatus.DONE, ItemStatus.SHIPPED})


def coerce_status(raw: str | ItemStatus | None) -> Optional[ItemStatus]:
    """Return the matching :class:`ItemStatus`, or ``None`` for unknown values."""

    if raw is None:
        return None
    try:
        return ItemStatus(raw)
    except ValueError:
        return None


def derive_primary_status(counts: UnitCounts) -> ItemStatus:
    """Bucket holding the most units; exact ties go to the later stage."""

    # max() keeps the first maximum it meets, so scan from the last stage.
    return max(reversed(STAGE_ORDER), key=counts.get)


def derive_completed(counts: UnitCounts) -> bool:
    return sum(counts.get(stage) for stage in COMPLETED_STAGES) > 0


def check_distribution(counts: UnitCounts, quantity: int) -> None:
    if counts.total != quantity:
        raise UnitSumMismatchError(counts, quantity)


def move(
    counts: UnitCounts,
    source: ItemStatus,
    target: ItemStatus,
    mode: MoveMode = MoveMode.ONE,
) -> UnitCounts:
    """Move one unit, or the whole bucket, from ``source`` to ``target``."""

    source = ItemStatus(source)
    target = ItemStatus(target)
    available = counts.get(source)
    if available == 0:
        raise NoUnitsAvailableError(source)
    if source is target:
        return counts

    amount = available if MoveMode(mode) is MoveMode.ALL else 1
    return counts.model_copy(
        update={
            source.value: available - amount,
            target.value: counts.get(target) + amount,
        }
    )


def next_stage(status: str | ItemStatus | None) -> Optional[ItemStatus]:
    """Stage a unit advances to from ``status``; ``None`` once it reached success.

    Unrecognised statuses behave as ``pending``.
    """

    current = coerce_status(status) or ItemStatus.PENDING
    return FORWARD_CHAIN.get(current)


def legacy_advance(status: str | ItemStatus | None) -> ItemStatus:
    current = coerce_status(status)
    if current is None:
        return ItemStatus.DONE
    return LEGACY_CYCLE[current]


def reconcile_quantity(counts: UnitCounts, new_quantity: int) -> UnitCounts:
    """Redistribute buckets for a new total quantity without discarding progress.

    Growth lands in ``pending``. Shrinking drains ``pending`` first; whatever
    deficit remains scales the other buckets by
    ``(other_total - remaining) / other_total``, flooring each. The units lost
    to flooring are handed back one per bucket by largest fractional part
    (exact ties to the later stage), so the result always sums to
    ``new_quantity``.
    """

    if new_quantity < 1:
        raise ValueError("Quantity must be at least 1")

    current = counts.total
    if new_quantity >= current:
        return counts.model_copy(update={"pending": counts.pending + new_quantity - current})

    deficit = current - new_quantity
    drained = min(counts.pending, deficit)
    remaining = deficit - drained
    if remaining == 0:
        return counts.model_copy(update={"pending": counts.pending - drained})

    others = STAGE_ORDER[1:]
    other_total = sum(counts.get(stage) for stage in others)
    ratio = Fraction(other_total - remaining, other_total)
    exact = {stage: counts.get(stage) * ratio for stage in others}
    scaled = {stage: floor(value) for stage, value in exact.items()}

    shortfall = new_quantity - sum(scaled.values())
    by_remainder = sorted(reversed(others), key=lambda stage: exact[stage] - scaled[stage], reverse=True)
    for stage in by_remainder[:shortfall]:
        scaled[stage] += 1

    return UnitCounts(pending=0, **{stage.value: scaled[stage] for stage in others})


__all__ = [
    "NoUnitsAvailableError",
    "UnitSumMismatchError",
    "FORWARD_CHAIN",
    "LEGACY_CYCLE",
    "coerce_status",
    "derive_primary_status",
    "derive_completed",
    "check_distribution",
    "move",
    "next_stage",
    "legacy_advance",
    "reconcile_quantity",
]
