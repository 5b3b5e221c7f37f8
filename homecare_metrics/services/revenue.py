"""Platform commission revenue."""

from typing import Iterable, Optional

from homecare_metrics.core.config import settings


def calculate_commission(gross_cost: Optional[float], rate: Optional[float] = None) -> float:
    """Platform share of a completed appointment's gross cost; 0 when the cost is absent."""
    if gross_cost is None:
        return 0.0
    return gross_cost * (settings.commission_rate if rate is None else rate)


def total_commission(costs: Iterable[Optional[float]], rate: Optional[float] = None) -> float:
    """Sum of ``calculate_commission`` over ``costs``."""
    return sum((calculate_commission(cost, rate) for cost in costs), 0.0)
