"""Token ledger and statistics over the SQLite store."""

from maze_control.ledger.models import Action, Recharge, User
from maze_control.ledger.stats import Stats, StatsAggregator
from maze_control.ledger.store import TokenLedger

__all__ = ["Action", "Recharge", "Stats", "StatsAggregator", "TokenLedger", "User"]
