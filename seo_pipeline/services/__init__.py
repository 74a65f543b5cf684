"""
SEO services: ranking history archiving and trend calculation.
"""

from .ranking_history import RankingHistoryArchiver
from .ranking_trends import TrendSummary, calculate_trend

__all__ = [
    'RankingHistoryArchiver',
    'TrendSummary',
    'calculate_trend',
]
