"""Percentage distribution of categories for chart display."""

from typing import List, Mapping, Optional

from homecare_metrics.core.exceptions import EmptyInputError
from homecare_metrics.core.logging import get_logger
from homecare_metrics.db.schemas import ServiceDistributionEntry

logger = get_logger(__name__)

# Smallest share shown for a non-empty category
MIN_VISIBLE_PERCENTAGE = 1


def _percentages(counts: Mapping[str, int], total: int) -> List[int]:
    """
    Whole-number percentages in ``counts`` iteration order.

    Every category but the last is floored; the last takes the remainder so
    the floored shares add up to 100. The visibility floor is applied after,
    so the total can exceed 100 when many categories are small.
    """
    if not counts:
        raise EmptyInputError("No categories to distribute")

    floored = [count * 100 // total if total > 0 else 0 for count in counts.values()]
    floored[-1] = 100 - sum(floored[:-1])

    if total <= 0:
        return [0] * len(floored)
    return [max(MIN_VISIBLE_PERCENTAGE, percentage) for percentage in floored]


def normalize_distribution(
    counts: Mapping[str, int],
    total: Optional[int] = None
) -> List[ServiceDistributionEntry]:
    """
    Convert raw category counts into display percentages.

    Args:
        counts: Category label to count, in the order entries should appear
        total: Sum of all counts (computed when omitted)

    Returns:
        One entry per category; empty when there are no categories
    """
    if total is None:
        total = sum(counts.values())

    try:
        percentages = _percentages(counts, total)
    except EmptyInputError:
        logger.debug("Empty distribution input")
        return []

    return [
        ServiceDistributionEntry(service_type=label, count=count, percentage=percentage)
        for (label, count), percentage in zip(counts.items(), percentages)
    ]
