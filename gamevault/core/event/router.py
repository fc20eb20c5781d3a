"""
Wildcard event-name matching.

Supported Patterns
------------------
- Exact:    "ledger.spent"            -> only "ledger.spent"
- Global:   "*"                       -> any event
- Prefix:   "ledger.*"                -> "ledger.spent", "ledger.added", ...
- Suffix:   "*.deleted"               -> "player.deleted", "cosmetic.deleted", ...
- Sandwich: "admin.*.completed"       -> "admin.bulk_ban.completed", ...

Matching is case-sensitive. Repeated wildcards ("**") collapse to one.
"""

from __future__ import annotations


class EventRouter:
    """
    Stateless matcher for event names against wildcard patterns.

    >>> router = EventRouter()
    >>> router.matches("ledger.spent", "ledger.*")
    True
    >>> router.matches("cosmetic.purchased", "ledger.*")
    False
    """

    def matches(self, event_name: str, pattern: str) -> bool:
        if pattern == "*":
            return True

        if "*" not in pattern:
            return event_name == pattern

        while "**" in pattern:
            pattern = pattern.replace("**", "*")

        parts = pattern.split("*")

        if parts[0] and not event_name.startswith(parts[0]):
            return False

        if parts[-1] and not event_name.endswith(parts[-1]):
            return False

        # Middle pieces must appear in order between prefix and suffix
        idx = len(parts[0])
        end = len(event_name) - len(parts[-1])
        for mid in parts[1:-1]:
            if not mid:
                continue
            next_idx = event_name.find(mid, idx, end)
            if next_idx == -1:
                return False
            idx = next_idx + len(mid)

        return idx <= end
