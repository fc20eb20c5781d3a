"""
Admin Service
=============

Purpose
-------
Owner-only operations: ban state, player deletion, batched ban/credit/delete,
and the read-only dashboard views (player lists, search, stats, inventory
and save data of any player). Owners can also keep free-text notes on a
player.

Batch Semantics
---------------
Every bulk operation runs in ONE transaction covering the whole batch:
- Input ids are validated, de-duplicated and capped at ``admin.bulk_max_ids``
- Existing Player rows are locked in ascending id order
- Unknown ids are skipped for ban/credit batches
- Any failure (e.g. one balance that would go negative) rolls back the
  entire batch; nothing is applied

Deletion
--------
Foreign keys do not cascade. Deleting a player removes inventory, cosmetic
ownership, save data, owner notes and friend edges in both directions
before the Player row. Deleting an unknown id is a no-op.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

from sqlalchemy import func, or_, select

from gamevault.core.database.service import DatabaseService
from gamevault.core.infra.audit_logger import AuditLogger
from gamevault.core.logging.logger import get_logger
from gamevault.core.validation.input_validator import InputValidator
from gamevault.modules.economy.service import (
    DEFAULT_MAX_BALANCE,
    DEFAULT_MAX_TRANSACTION,
    apply_credit_delta,
)
from gamevault.modules.shared.base_repository import BaseRepository
from gamevault.modules.shared.base_service import BaseService
from gamevault.modules.shared.players import PlayerRepository

if TYPE_CHECKING:
    from logging import Logger

    from sqlalchemy.ext.asyncio import AsyncSession

    from gamevault.core.config.manager import ConfigManager
    from gamevault.core.event.bus import EventBus
    from gamevault.database.models import Player


def serialize_player(player: Player) -> Dict[str, Any]:
    return {
        "player_id": player.id,
        "game_id": player.game_id,
        "username": player.username,
        "credits": player.credits,
        "banned": player.banned,
        "created_at": player.created_at.isoformat() if player.created_at else None,
    }


class AdminService(BaseService):
    """
    Service for owner operations.

    Public Methods
    --------------
    Writes:
    - set_banned() / bulk_ban()
    - bulk_add_credits()
    - delete_player() / bulk_delete()
    - add_note() / delete_note()

    Reads:
    - list_players() / list_games() / search_players()
    - get_stats() / get_game_stats()
    - view_inventory() / view_save_data()
    - list_notes()
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)

        from gamevault.database.models import (
            CosmeticDefinition,
            CosmeticOwnership,
            FriendRelationship,
            InventoryEntry,
            PlayerNote,
            PlayerSaveData,
        )

        repo_logger = get_logger(f"{__name__}.AdminRepository")

        self._player_repo = PlayerRepository()
        self._inventory_repo = BaseRepository(InventoryEntry, repo_logger)
        self._ownership_repo = BaseRepository(CosmeticOwnership, repo_logger)
        self._catalog_repo = BaseRepository(CosmeticDefinition, repo_logger)
        self._friend_repo = BaseRepository(FriendRelationship, repo_logger)
        self._save_repo = BaseRepository(PlayerSaveData, repo_logger)
        self._note_repo = BaseRepository(PlayerNote, repo_logger)

    # ========================================================================
    # Helpers
    # ========================================================================

    def _validate_batch(self, player_ids: Any) -> List[str]:
        return InputValidator.validate_id_list(
            player_ids,
            field_name="player_ids",
            min_count=1,
            max_count=self.get_config("admin.bulk_max_ids", default=500),
        )

    async def _purge_players(self, session: AsyncSession, player_ids: Sequence[str]) -> int:
        """
        Delete players and every row that references them.

        Returns:
            Number of Player rows removed
        """
        ids = list(player_ids)
        locked = await self._player_repo.get_many_for_update(session, ids)

        await self._inventory_repo.delete_where(
            session, self._inventory_repo.model_class.player_id.in_(ids)
        )
        await self._ownership_repo.delete_where(
            session, self._ownership_repo.model_class.player_id.in_(ids)
        )
        await self._save_repo.delete_where(
            session, self._save_repo.model_class.player_id.in_(ids)
        )
        await self._note_repo.delete_where(
            session, self._note_repo.model_class.player_id.in_(ids)
        )
        friend = self._friend_repo.model_class
        await self._friend_repo.delete_where(
            session, or_(friend.player_id.in_(ids), friend.friend_id.in_(ids))
        )

        for player in locked:
            await self._player_repo.delete(session, player)

        return len(locked)

    # ========================================================================
    # PUBLIC API - Single-player Writes
    # ========================================================================

    async def set_banned(self, player_id: str, banned: bool) -> Dict[str, Any]:
        """
        Ban or unban one player.

        Raises:
            NotFoundError: If the player does not exist
        """
        player_id = InputValidator.validate_identifier(player_id, "player_id")
        banned = InputValidator.validate_bool(banned, "banned")

        self.log_operation("set_banned", player_id=player_id, banned=banned)

        async with DatabaseService.get_transaction() as session:
            player = await self._player_repo.get_existing(session, player_id)
            player.banned = banned

        await self.emit_event("admin.ban_changed", {"player_ids": [player_id], "banned": banned})

        return {"player_id": player_id, "banned": banned}

    async def delete_player(self, player_id: str) -> Dict[str, Any]:
        """Delete one player and all dependent rows. Unknown ids are a no-op."""
        player_id = InputValidator.validate_identifier(player_id, "player_id")

        self.log_operation("delete_player", player_id=player_id)

        async with DatabaseService.get_transaction() as session:
            deleted = await self._purge_players(session, [player_id])

        if deleted:
            await self.emit_event("admin.players_deleted", {"player_ids": [player_id]})

        return {"player_id": player_id, "deleted": bool(deleted)}

    # ========================================================================
    # PUBLIC API - Bulk Writes
    # ========================================================================

    async def bulk_ban(self, player_ids: List[str], banned: bool = True) -> Dict[str, Any]:
        """
        Set the ban flag on every listed player that exists.

        Returns:
            {"requested", "updated", "banned"}
        """
        ids = self._validate_batch(player_ids)
        banned = InputValidator.validate_bool(banned, "banned")

        self.log_operation("bulk_ban", count=len(ids), banned=banned)

        async with DatabaseService.get_transaction() as session:
            players = await self._player_repo.get_many_for_update(session, ids)
            for player in players:
                player.banned = banned
            updated_ids = [p.id for p in players]

        await self.emit_event("admin.ban_changed", {"player_ids": updated_ids, "banned": banned})

        self.log.info(
            f"Bulk ban applied to {len(updated_ids)} players",
            extra={"requested": len(ids), "updated": len(updated_ids), "banned": banned},
        )

        return {"requested": len(ids), "updated": len(updated_ids), "banned": banned}

    async def bulk_add_credits(self, player_ids: List[str], amount: int) -> Dict[str, Any]:
        """
        Apply a signed credit adjustment to every listed player that exists.

        All-or-nothing: if any balance would go negative the whole batch is
        rolled back.

        Raises:
            ValidationError: Bad id list or zero/out-of-range amount
            InsufficientFundsError: If any player cannot cover a deduction
        """
        ids = self._validate_batch(player_ids)
        limit = int(
            self.get_config("economy.max_transaction_amount", default=DEFAULT_MAX_TRANSACTION)
        )
        amount = InputValidator.validate_integer(
            amount, field_name="amount", min_value=-limit, max_value=limit, allow_zero=False
        )
        max_balance = int(self.get_config("economy.max_balance", default=DEFAULT_MAX_BALANCE))

        self.log_operation("bulk_add_credits", count=len(ids), amount=amount)

        changes: List[Dict[str, Any]] = []
        async with DatabaseService.get_transaction() as session:
            players = await self._player_repo.get_many_for_update(session, ids)
            for player in players:
                old_value = player.credits
                player.credits = apply_credit_delta(old_value, amount, max_balance)
                changes.append(
                    {
                        "player_id": player.id,
                        "game_id": player.game_id,
                        "old_value": old_value,
                        "new_value": player.credits,
                    }
                )

        for change in changes:
            await AuditLogger.log_credit_change(
                player_id=change["player_id"],
                old_value=change["old_value"],
                new_value=change["new_value"],
                reason="bulk_add",
                context="admin.bulk_add_credits",
                meta={"game_id": change["game_id"]},
                bus=self._events,
            )

        await self.emit_event(
            "admin.credits_bulk_added",
            {"player_ids": [c["player_id"] for c in changes], "amount": amount},
        )

        return {"requested": len(ids), "updated": len(changes), "amount": amount}

    async def bulk_delete(self, player_ids: List[str]) -> Dict[str, Any]:
        """
        Delete every listed player with all dependent rows.

        Returns:
            {"requested", "deleted"}
        """
        ids = self._validate_batch(player_ids)

        self.log_operation("bulk_delete", count=len(ids))

        async with DatabaseService.get_transaction() as session:
            deleted = await self._purge_players(session, ids)

        await self.emit_event("admin.players_deleted", {"player_ids": ids})

        self.log.warning(
            f"Bulk delete removed {deleted} players",
            extra={"requested": len(ids), "deleted": deleted},
        )

        return {"requested": len(ids), "deleted": deleted}

    # ========================================================================
    # PUBLIC API - Owner Notes
    # ========================================================================

    async def add_note(self, player_id: str, note: str) -> Dict[str, Any]:
        """
        Attach a note to a player.

        Raises:
            ValidationError: Empty or oversized note
            NotFoundError: If the player does not exist
        """
        player_id = InputValidator.validate_identifier(player_id, "player_id")
        note = InputValidator.validate_string(
            note,
            field_name="note",
            min_length=1,
            max_length=self.get_config("admin.note_max_length", default=2000),
        )

        self.log_operation("add_note", player_id=player_id)

        async with DatabaseService.get_transaction() as session:
            await self._player_repo.get_existing(session, player_id)
            entry = self._note_repo.add(
                session, self._note_repo.model_class(player_id=player_id, note=note)
            )
            await self._note_repo.flush(session)
            note_id = entry.id

        return {"note_id": note_id, "player_id": player_id}

    async def list_notes(self, player_id: str) -> List[Dict[str, Any]]:
        """Notes on one player, newest first."""
        player_id = InputValidator.validate_identifier(player_id, "player_id")
        row = self._note_repo.model_class

        async with DatabaseService.get_session() as session:
            notes = await self._note_repo.find_many_where(
                session,
                row.player_id == player_id,
                order_by=[row.created_at.desc(), row.id],
            )

        return [
            {
                "note_id": n.id,
                "player_id": n.player_id,
                "note": n.note,
                "created_by": n.created_by,
                "created_at": n.created_at.isoformat() if n.created_at else None,
            }
            for n in notes
        ]

    async def delete_note(self, note_id: str) -> Dict[str, Any]:
        """Delete one note. Unknown ids are a no-op."""
        note_id = InputValidator.validate_identifier(note_id, "note_id")

        self.log_operation("delete_note", note_id=note_id)

        async with DatabaseService.get_transaction() as session:
            deleted = await self._note_repo.delete_where(
                session, self._note_repo.model_class.id == note_id
            )

        return {"note_id": note_id, "deleted": bool(deleted)}

    # ========================================================================
    # PUBLIC API - Dashboard Reads
    # ========================================================================

    async def list_players(self, game_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """All players (optionally of one game), newest first."""
        player = self._player_repo.model_class
        conditions = []
        if game_id is not None:
            game_id = InputValidator.validate_identifier(game_id, "game_id")
            conditions.append(player.game_id == game_id)

        async with DatabaseService.get_session() as session:
            players = await self._player_repo.find_many_where(
                session,
                *conditions,
                order_by=[player.created_at.desc(), player.id],
            )

        return [serialize_player(p) for p in players]

    async def list_games(self) -> List[Dict[str, Any]]:
        """Every game id with its player count."""
        player = self._player_repo.model_class
        stmt = (
            select(player.game_id, func.count())
            .group_by(player.game_id)
            .order_by(player.game_id)
        )

        async with DatabaseService.get_session() as session:
            rows = (await session.execute(stmt)).all()

        return [{"game_id": game_id, "player_count": count} for game_id, count in rows]

    async def search_players(
        self, query: str, game_id: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Case-insensitive username substring search, capped at ``admin.search_limit``."""
        query = InputValidator.validate_string(query, field_name="query", min_length=1, max_length=64)

        player = self._player_repo.model_class
        conditions = [func.lower(player.username).contains(query.lower(), autoescape=True)]
        if game_id is not None:
            game_id = InputValidator.validate_identifier(game_id, "game_id")
            conditions.append(player.game_id == game_id)

        async with DatabaseService.get_session() as session:
            players = await self._player_repo.find_many_where(
                session,
                *conditions,
                order_by=[player.username, player.id],
                limit=self.get_config("admin.search_limit", default=20),
            )

        return [serialize_player(p) for p in players]

    async def get_stats(self) -> Dict[str, Any]:
        player = self._player_repo.model_class

        async with DatabaseService.get_session() as session:
            total_players = await self._player_repo.count(session)
            banned_players = await self._player_repo.count(session, player.banned.is_(True))
            total_games = (
                await session.execute(select(func.count(func.distinct(player.game_id))))
            ).scalar_one()
            total_credits = (
                await session.execute(select(func.coalesce(func.sum(player.credits), 0)))
            ).scalar_one()
            total_cosmetics = await self._catalog_repo.count(session)

        return {
            "total_players": total_players,
            "total_games": total_games,
            "total_credits": int(total_credits),
            "banned_players": banned_players,
            "total_cosmetics": total_cosmetics,
        }

    async def get_game_stats(self, game_id: str) -> Dict[str, Any]:
        """Per-game totals, average balance, richest and newest player."""
        game_id = InputValidator.validate_identifier(game_id, "game_id")
        player = self._player_repo.model_class
        in_game = player.game_id == game_id

        async with DatabaseService.get_session() as session:
            total = await self._player_repo.count(session, in_game)
            banned = await self._player_repo.count(session, in_game, player.banned.is_(True))
            total_credits = int(
                (
                    await session.execute(
                        select(func.coalesce(func.sum(player.credits), 0)).where(in_game)
                    )
                ).scalar_one()
            )
            richest = await self._player_repo.find_many_where(
                session,
                in_game,
                order_by=[player.credits.desc(), player.created_at, player.id],
                limit=1,
            )
            newest = await self._player_repo.find_many_where(
                session,
                in_game,
                order_by=[player.created_at.desc(), player.id],
                limit=1,
            )
            cosmetic_count = await self._catalog_repo.count(
                session, self._catalog_repo.model_class.game_id == game_id
            )

        return {
            "game_id": game_id,
            "total": total,
            "banned": banned,
            "total_credits": total_credits,
            "avg_credits": round(total_credits / total) if total else 0,
            "top_player": (
                {"username": richest[0].username, "credits": richest[0].credits}
                if richest
                else None
            ),
            "newest": (
                {"username": newest[0].username, "created_at": newest[0].created_at.isoformat()}
                if newest
                else None
            ),
            "cosmetic_count": cosmetic_count,
        }

    async def view_inventory(self, player_id: str) -> Dict[str, Any]:
        player_id = InputValidator.validate_identifier(player_id, "player_id")
        entry = self._inventory_repo.model_class

        async with DatabaseService.get_session() as session:
            entries = await self._inventory_repo.find_many_where(
                session, entry.player_id == player_id, order_by=[entry.item_name]
            )

        return {
            "player_id": player_id,
            "items": [
                {"item_name": e.item_name, "quantity": e.quantity, "metadata": e.item_metadata}
                for e in entries
            ],
        }

    async def view_save_data(self, player_id: str) -> Dict[str, Any]:
        player_id = InputValidator.validate_identifier(player_id, "player_id")
        row = self._save_repo.model_class

        async with DatabaseService.get_session() as session:
            rows = await self._save_repo.find_many_where(
                session, row.player_id == player_id, order_by=[row.key]
            )

        return {"player_id": player_id, "data": {r.key: r.value for r in rows}}
