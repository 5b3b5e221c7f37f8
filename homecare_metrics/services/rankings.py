"""Top-N rankings of grouped records."""

from dataclasses import dataclass
from typing import Dict, Iterable, List

from homecare_metrics.db.schemas import RankedEntry


@dataclass(frozen=True)
class RankingRow:
    """One record's contribution to its group."""
    group_key: str
    group_label: str
    metric_increment: float
    secondary_increment: float = 1
    eligible: bool = True


@dataclass
class _Accumulator:
    label: str
    metric: float = 0.0
    secondary: float = 0.0
    rows: int = 0


def _accumulate(rows: Iterable[RankingRow]) -> Dict[str, _Accumulator]:
    groups: Dict[str, _Accumulator] = {}
    for row in rows:
        if not row.eligible:
            continue
        # first label seen for a key wins
        acc = groups.setdefault(row.group_key, _Accumulator(label=row.group_label))
        acc.metric += row.metric_increment
        acc.secondary += row.secondary_increment
        acc.rows += 1
    return groups


def _top(entries: List[RankedEntry], limit: int) -> List[RankedEntry]:
    # sorted() is stable with reverse=True, ties keep first-seen order
    ranked = sorted(entries, key=lambda entry: entry.metric_value, reverse=True)
    return ranked[:max(limit, 0)]


def rank(rows: Iterable[RankingRow], limit: int) -> List[RankedEntry]:
    """Sum metric and secondary value per group and return the top ``limit`` groups."""
    groups = _accumulate(rows)
    entries = [
        RankedEntry(key=key, label=acc.label, metric_value=acc.metric, secondary_value=acc.secondary)
        for key, acc in groups.items()
    ]
    return _top(entries, limit)


def rank_by_mean(rows: Iterable[RankingRow], limit: int) -> List[RankedEntry]:
    """Rank groups by the mean metric (2 decimals); secondary value is the row count."""
    groups = _accumulate(rows)
    entries = [
        RankedEntry(
            key=key,
            label=acc.label,
            metric_value=round(acc.metric / acc.rows, 2) if acc.rows else 0.0,
            secondary_value=acc.rows,
        )
        for key, acc in groups.items()
    ]
    return _top(entries, limit)
