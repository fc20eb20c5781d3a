"""
GameVault domain modules.

Each subpackage owns one domain (identity, economy, inventory, cosmetics,
admin, leaderboard, social, savedata) and exposes its services; shared base
classes and domain exceptions live in ``gamevault.modules.shared``.
"""
