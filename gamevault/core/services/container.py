"""
Service Container
=================

Purpose
-------
Centralized dependency injection container for all domain services.
Provides one instance of each service with shared dependencies.

Responsibilities
----------------
- Initialize all domain services with required dependencies
- Manage service lifecycle (initialization, shutdown)
- Start and stop the audit trail consumer
- Provide access to services throughout the application

Non-Responsibilities
--------------------
- Database lifecycle (DatabaseService)
- Business logic

Architecture Notes
------------------
All domain services follow the same constructor pattern:
``(config_manager, event_bus, logger)``.
"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any, Dict, Optional

from gamevault.core.logging.logger import get_logger
from gamevault.modules.admin import AdminService
from gamevault.modules.audit import AuditConsumer
from gamevault.modules.cosmetics import CosmeticsService
from gamevault.modules.economy import LedgerService
from gamevault.modules.identity import IdentityService
from gamevault.modules.inventory import InventoryService
from gamevault.modules.leaderboard import LeaderboardService
from gamevault.modules.savedata import SaveDataService
from gamevault.modules.social import SocialService

if TYPE_CHECKING:
    from logging import Logger

    from gamevault.core.config.manager import ConfigManager
    from gamevault.core.event.bus import EventBus

SERVICE_COUNT = 8


class ServiceContainer:
    """
    Dependency injection container for all domain services.

    Usage:
        container = ServiceContainer(ConfigManager, event_bus, logger)
        await container.initialize()

        result = await container.ledger.spend(player_id, 25)
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        event_bus: EventBus,
        logger: Logger,
    ) -> None:
        self._config_manager = config_manager
        self._event_bus = event_bus
        self._logger = logger

        self._identity: Optional[IdentityService] = None
        self._ledger: Optional[LedgerService] = None
        self._inventory: Optional[InventoryService] = None
        self._cosmetics: Optional[CosmeticsService] = None
        self._admin: Optional[AdminService] = None
        self._leaderboard: Optional[LeaderboardService] = None
        self._social: Optional[SocialService] = None
        self._savedata: Optional[SaveDataService] = None
        self._audit: Optional[AuditConsumer] = None

        self._initialized = False

        self._service_init_times: Dict[str, float] = {}
        self._init_start: Optional[float] = None
        self._init_end: Optional[float] = None

    # ========================================================================
    # Lifecycle
    # ========================================================================

    async def initialize(self) -> None:
        """
        Initialize all services.

        Call this during startup after ConfigManager and DatabaseService are ready.
        """
        if self._initialized:
            self._logger.warning("ServiceContainer already initialized")
            return

        self._init_start = time.perf_counter()
        self._logger.info("Service container initialization starting...")

        try:
            self._identity = self._create_service("identity", IdentityService)
            self._ledger = self._create_service("ledger", LedgerService)
            self._inventory = self._create_service("inventory", InventoryService)
            self._cosmetics = self._create_service("cosmetics", CosmeticsService)
            self._admin = self._create_service("admin", AdminService)
            self._leaderboard = self._create_service("leaderboard", LeaderboardService)
            self._social = self._create_service("social", SocialService)
            self._savedata = self._create_service("savedata", SaveDataService)

            self._audit = AuditConsumer(
                self._event_bus,
                self._config_manager,
                get_logger("gamevault.modules.audit.consumer"),
            )
            await self._audit.start()

            self._init_end = time.perf_counter()
            self._initialized = True

            extra_data: Dict[str, Any] = {
                "total_time_seconds": round(self._init_end - self._init_start, 3),
                "service_count": len(self._service_init_times),
            }

            if self._service_init_times:
                slowest = max(
                    self._service_init_times,
                    key=self._service_init_times.__getitem__,
                )
                extra_data["slowest_service"] = slowest
                extra_data["slowest_duration"] = round(self._service_init_times[slowest], 3)

            self._logger.info("Service container initialized successfully", extra=extra_data)

        except Exception as e:
            self._logger.critical(
                "Service container initialization failed",
                exc_info=True,
                extra={"error": str(e)},
            )
            raise

    def _create_service(self, name: str, cls: type) -> Any:
        """
        Construct one service with timing.

        Raises:
            Exception: If service initialization fails
        """
        start = time.perf_counter()

        try:
            instance = cls(
                config_manager=self._config_manager,
                event_bus=self._event_bus,
                logger=get_logger(f"{cls.__module__}.{cls.__name__}"),
            )
        except Exception:
            self._logger.error(f"Failed to initialize {name}", exc_info=True)
            raise

        duration = time.perf_counter() - start
        self._service_init_times[name] = duration
        self._logger.debug(f"Initialized {name} in {duration:.3f}s")

        return instance

    async def shutdown(self) -> None:
        """Stop the audit consumer and release services. Safe to call when not initialized."""
        if not self._initialized:
            return

        self._logger.info("Shutting down service container...")

        if self._audit is not None:
            await self._audit.stop()
            self._audit = None

        self._initialized = False
        self._logger.info("Service container shut down")

    async def health_check(self) -> Dict[str, bool | float | int | None]:
        return {
            "initialized": self._initialized,
            "service_count": len(self._service_init_times),
            "total_init_time_seconds": (
                round(self._init_end - self._init_start, 3)
                if self._init_start and self._init_end
                else None
            ),
            "all_services_available": self._initialized
            and len(self._service_init_times) == SERVICE_COUNT,
            "audit_consumer_running": self._audit is not None and self._audit.is_running,
        }

    def _require(self, service: Optional[Any]) -> Any:
        if not self._initialized or service is None:
            raise RuntimeError("ServiceContainer not initialized. Call initialize() first.")
        return service

    # ========================================================================
    # Services
    # ========================================================================

    @property
    def identity(self) -> IdentityService:
        return self._require(self._identity)

    @property
    def ledger(self) -> LedgerService:
        return self._require(self._ledger)

    @property
    def inventory(self) -> InventoryService:
        return self._require(self._inventory)

    @property
    def cosmetics(self) -> CosmeticsService:
        return self._require(self._cosmetics)

    @property
    def admin(self) -> AdminService:
        return self._require(self._admin)

    @property
    def leaderboard(self) -> LeaderboardService:
        return self._require(self._leaderboard)

    @property
    def social(self) -> SocialService:
        return self._require(self._social)

    @property
    def savedata(self) -> SaveDataService:
        return self._require(self._savedata)

    @property
    def audit(self) -> AuditConsumer:
        return self._require(self._audit)

    # ========================================================================
    # Utility
    # ========================================================================

    @property
    def is_initialized(self) -> bool:
        return self._initialized


# ============================================================================
# Process-wide container
# ============================================================================

_container: Optional[ServiceContainer] = None


def initialize_service_container(
    config_manager: ConfigManager,
    event_bus: EventBus,
    logger: Logger,
) -> ServiceContainer:
    """Create the process-wide container (call ``initialize()`` on the result)."""
    global _container
    _container = ServiceContainer(config_manager, event_bus, logger)
    return _container


def get_service_container() -> ServiceContainer:
    if _container is None:
        raise RuntimeError("Service container not created. Call initialize_service_container().")
    return _container


async def shutdown_service_container() -> None:
    global _container
    if _container is not None:
        await _container.shutdown()
        _container = None
