"""
Save Data Service
=================

Thin per-player key/value store. Values are opaque JSON; numeric values
under a stat key double as leaderboard input.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Dict

from gamevault.core.database.service import DatabaseService
from gamevault.core.logging.logger import get_logger
from gamevault.core.validation.input_validator import InputValidator
from gamevault.modules.shared.base_repository import BaseRepository
from gamevault.modules.shared.base_service import BaseService
from gamevault.modules.shared.exceptions import ValidationError
from gamevault.modules.shared.players import PlayerRepository

if TYPE_CHECKING:
    from logging import Logger

    from gamevault.core.config.manager import ConfigManager
    from gamevault.core.event.bus import EventBus
    from gamevault.database.models import PlayerSaveData


class SaveDataRepository(BaseRepository["PlayerSaveData"]):
    """Repository for PlayerSaveData model."""


class SaveDataService(BaseService):
    """
    Service for save slots.

    Public Methods
    --------------
    - save() -> Upsert several keys at once
    - load() -> All keys of a player
    - delete_key() -> Remove one key (no-op when absent)
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
    ) -> None:
        super().__init__(config_manager, event_bus, logger)

        from gamevault.database.models import PlayerSaveData

        self._player_repo = PlayerRepository()
        self._save_repo = SaveDataRepository(
            model_class=PlayerSaveData,
            logger=get_logger(f"{__name__}.SaveDataRepository"),
        )

    def _key_max_length(self) -> int:
        return self.get_config("savedata.key_max_length", default=64)

    async def save(self, player_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Upsert every key of ``data``.

        Returns:
            {"player_id", "saved_keys"}

        Raises:
            ValidationError: ``data`` is not an object, has too many or too
                long keys, or holds values that are not JSON-serializable
        """
        player_id = InputValidator.validate_identifier(player_id, "player_id")
        data = InputValidator.validate_mapping(
            data,
            field_name="data",
            max_keys=self.get_config("savedata.max_keys_per_save", default=100),
            key_max_length=self._key_max_length(),
        )
        try:
            json.dumps(data, allow_nan=False)
        except (TypeError, ValueError) as exc:
            raise ValidationError("data", f"Values must be JSON-serializable: {exc}") from exc

        self.log_operation("save", player_id=player_id, keys=sorted(data))

        row = self._save_repo.model_class

        async with DatabaseService.get_transaction() as session:
            await self._player_repo.get_active(session, player_id, action="save")

            existing = {}
            if data:
                existing = {
                    r.key: r
                    for r in await self._save_repo.find_many_where(
                        session,
                        row.player_id == player_id,
                        row.key.in_(list(data)),
                        for_update=True,
                    )
                }

            for key, value in data.items():
                if key in existing:
                    existing[key].value = value
                else:
                    self._save_repo.add(session, row(player_id=player_id, key=key, value=value))

        await self.emit_event("savedata.saved", {"player_id": player_id, "keys": sorted(data)})

        return {"player_id": player_id, "saved_keys": sorted(data)}

    async def load(self, player_id: str) -> Dict[str, Any]:
        """
        All save data of a player as one object.

        Raises:
            NotFoundError: If the player does not exist
        """
        player_id = InputValidator.validate_identifier(player_id, "player_id")
        row = self._save_repo.model_class

        async with DatabaseService.get_session() as session:
            await self._player_repo.get_existing(session, player_id, for_update=False)
            rows = await self._save_repo.find_many_where(
                session, row.player_id == player_id, order_by=[row.key]
            )

        return {"player_id": player_id, "data": {r.key: r.value for r in rows}}

    async def delete_key(self, player_id: str, key: str) -> Dict[str, Any]:
        player_id = InputValidator.validate_identifier(player_id, "player_id")
        key = InputValidator.validate_string(
            key, field_name="key", min_length=1, max_length=self._key_max_length()
        )

        self.log_operation("delete_key", player_id=player_id, key=key)

        row = self._save_repo.model_class

        async with DatabaseService.get_transaction() as session:
            await self._player_repo.get_active(session, player_id, action="delete_save_key")
            deleted = await self._save_repo.delete_where(
                session, row.player_id == player_id, row.key == key
            )

        if deleted:
            await self.emit_event("savedata.key_deleted", {"player_id": player_id, "key": key})

        return {"player_id": player_id, "key": key, "deleted": bool(deleted)}
