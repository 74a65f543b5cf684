"""
Ranking Trends Service

Derives summary statistics from a stored ranking-history window for one
keyword:
- Current and start position
- Average, best (minimum) and worst (maximum) position
- Net change (start - current; positive means the keyword moved up)

Rows without a position are excluded from every statistic. Fewer than two
positioned rows yield a summary whose trend fields are all None.
"""

from dataclasses import dataclass, asdict
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Union

MIN_TREND_POINTS = 2


@dataclass
class TrendSummary:
    """Trend statistics for one keyword over a history window."""
    current_position: Optional[float] = None
    start_position: Optional[float] = None
    average_position: Optional[float] = None
    best_position: Optional[float] = None
    worst_position: Optional[float] = None
    change: Optional[float] = None
    data_points: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


def _field(row: Union[Dict[str, Any], Any], name: str):
    if isinstance(row, dict):
        return row.get(name)
    return getattr(row, name, None)


def _sort_key(row) -> date:
    value = _field(row, 'date')
    if isinstance(value, str):
        return date.fromisoformat(value)
    return value


def calculate_trend(rows: Iterable[Union[Dict[str, Any], Any]]) -> TrendSummary:
    """
    Compute a TrendSummary from ranking-history rows.

    Args:
        rows: RankingHistory objects or dicts with 'date' and 'position',
            for a single keyword. Order does not matter; rows are sorted
            newest first before computing.

    Returns:
        TrendSummary
    """
    positioned: List = [
        row for row in rows
        if _field(row, 'position') is not None and _field(row, 'date') is not None
    ]
    positioned.sort(key=_sort_key, reverse=True)

    if len(positioned) < MIN_TREND_POINTS:
        return TrendSummary(data_points=len(positioned))

    positions = [float(_field(row, 'position')) for row in positioned]
    current = positions[0]
    start = positions[-1]

    return TrendSummary(
        current_position=current,
        start_position=start,
        average_position=round(sum(positions) / len(positions), 2),
        best_position=min(positions),
        worst_position=max(positions),
        change=start - current,
        data_points=len(positions),
    )
