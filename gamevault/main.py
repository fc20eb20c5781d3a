"""
GameVault - Operator Entry Point
=================================

Bootstrap
---------
- Config validation
- Database initialization
- Event Bus (global singleton)
- ConfigManager initialization
- Service container initialization
- Graceful shutdown

Commands
--------
    python -m gamevault.main init-db   # create tables
    python -m gamevault.main health    # database + container health
    python -m gamevault.main stats     # owner dashboard totals
    python -m gamevault.main audit     # recent audit trail records
"""

import argparse
import asyncio
import json
import sys
from typing import Awaitable, Callable, Dict, Optional

from gamevault.core.config.config import Config
from gamevault.core.config.manager import ConfigManager
from gamevault.core.database.service import DatabaseService
from gamevault.core.event import event_bus
from gamevault.core.logging.logger import get_logger, shutdown_logging
from gamevault.core.services.container import (
    ServiceContainer,
    initialize_service_container,
    shutdown_service_container,
)

logger = get_logger(__name__)


# ============================================================================
# Application Bootstrap
# ============================================================================

async def _startup(database_url: Optional[str] = None) -> ServiceContainer:
    """Initialize all infrastructure components."""
    logger.info("========== GAMEVAULT INITIALIZATION START ==========")

    # Step 1: Validate configuration early
    try:
        Config.validate()
        logger.info("✓ Configuration validated")
    except Exception as exc:
        logger.critical(f"Configuration validation failed: {exc}")
        raise

    # Step 2: Initialize database service
    try:
        await DatabaseService.initialize(database_url)
        logger.info("✓ Database service initialized")
    except Exception as exc:
        logger.critical(f"Database initialization failed: {exc}", exc_info=True)
        raise

    # Step 3: Initialize config manager
    try:
        await ConfigManager.initialize()
        logger.info("✓ Config manager initialized")
    except Exception as exc:
        logger.critical(f"Config manager initialization failed: {exc}", exc_info=True)
        raise

    # Step 4: Initialize service container
    try:
        container = initialize_service_container(
            config_manager=ConfigManager,
            event_bus=event_bus,
            logger=get_logger("gamevault.core.services.container"),
        )
        await container.initialize()
        logger.info("✓ Service container initialized")
    except Exception as exc:
        logger.critical(f"Service container initialization failed: {exc}", exc_info=True)
        raise

    logger.info("========== INFRASTRUCTURE INITIALIZED SUCCESSFULLY ==========")
    return container


# ============================================================================
# Application Shutdown
# ============================================================================

async def _shutdown() -> None:
    """Shut down infrastructure services in reverse order."""
    logger.info("========== GAMEVAULT SHUTDOWN START ==========")

    try:
        await event_bus.drain()
        logger.info("✓ Event bus drained")
    except Exception as exc:
        logger.error(f"Event bus drain error: {exc}", exc_info=True)

    try:
        await shutdown_service_container()
        logger.info("✓ Service container shut down")
    except Exception as exc:
        logger.error(f"Service container shutdown error: {exc}", exc_info=True)

    try:
        await DatabaseService.shutdown()
        logger.info("✓ Database service shut down")
    except Exception as exc:
        logger.error(f"Database service shutdown error: {exc}", exc_info=True)

    logger.info("========== SHUTDOWN COMPLETE ==========")


# ============================================================================
# Commands
# ============================================================================

async def _cmd_init_db(container: ServiceContainer, args: argparse.Namespace) -> Dict[str, object]:
    await DatabaseService.create_schema()
    return {"schema": "created"}


async def _cmd_health(container: ServiceContainer, args: argparse.Namespace) -> Dict[str, object]:
    return {
        "database": await DatabaseService.health_check(),
        "pool": DatabaseService.get_pool_metrics(),
        "container": await container.health_check(),
        "event_listeners": event_bus.get_listener_count(),
        "audit": container.audit.get_status(),
    }


async def _cmd_stats(container: ServiceContainer, args: argparse.Namespace) -> Dict[str, object]:
    return await container.admin.get_stats()


async def _cmd_audit(container: ServiceContainer, args: argparse.Namespace) -> Dict[str, object]:
    records = await container.audit.list_records(player_id=args.player_id, limit=args.limit)
    return {"records": records}


COMMANDS: Dict[str, Callable[[ServiceContainer, argparse.Namespace], Awaitable[Dict[str, object]]]] = {
    "init-db": _cmd_init_db,
    "health": _cmd_health,
    "stats": _cmd_stats,
    "audit": _cmd_audit,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gamevault",
        description="GameVault operator commands",
    )
    parser.add_argument("command", choices=sorted(COMMANDS), help="Command to run")
    parser.add_argument(
        "--database-url",
        default=None,
        help="Override DATABASE_URL for this run",
    )
    parser.add_argument(
        "--player-id",
        default=None,
        help="audit: only records for this player",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=50,
        help="audit: maximum records to print",
    )
    return parser


# ============================================================================
# Application Entrypoint
# ============================================================================

async def main(argv: Optional[list] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        container = await _startup(args.database_url)
        result = await COMMANDS[args.command](container, args)
        print(json.dumps(result, indent=2, default=str))
        return 0

    except asyncio.CancelledError:
        logger.warning("Asyncio task cancellation received; shutting down gracefully.")
        raise

    except Exception as exc:
        logger.critical(f"Command '{args.command}' failed: {exc}", exc_info=True)
        return 1

    finally:
        await _shutdown()


def run() -> None:
    """Console-script entry point."""
    try:
        exit_code = asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Stopped via keyboard interrupt.")
        exit_code = 130
    finally:
        shutdown_logging()
    sys.exit(exit_code)


if __name__ == "__main__":
    run()
