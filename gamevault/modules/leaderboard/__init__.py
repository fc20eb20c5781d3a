"""
Leaderboard Module
==================

Services:
- LeaderboardService: per-game rankings by save-data stat or credits
"""

from .service import LeaderboardService, rank_rows

__all__ = [
    "LeaderboardService",
    "rank_rows",
]
