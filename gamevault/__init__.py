"""
GameVault - multi-tenant player account and virtual-economy backend core.

Identity and sessions, the credits ledger, inventory and cosmetics
ownership, admin bulk operations, leaderboards and the friend graph,
partitioned by game id so one deployment serves many games.
"""

__version__ = "1.0.0"
