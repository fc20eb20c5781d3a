"""Persistence schema for GameVault (SQLAlchemy ORM models)."""
