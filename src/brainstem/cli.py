"""
CLI entry point.

Commands:
- init: Initialize data directory and database
- serve: Run the HTTP capabilities plus background sync, backfill, audit
- sync: Run one full sync cycle
- restore: Print cached state
- backfill [N]: Embed up to N records lacking a vector
- audit: Run one health audit
- search <query>: Full-text memory search

Flags:
- --debug: Enable debug logging
"""

import asyncio
import json
import logging
import sys
from typing import Any

from brainstem.core.config import Settings, get_settings
from brainstem.core.logging import get_logger, setup_logging
from brainstem.core.policy import load_policy

USAGE = """Usage: brainstem [--debug] <command> [args]
Commands: init, serve, sync, restore, backfill [N], audit, search <query>"""


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str))


def main() -> int:
    """Main entry point."""
    settings = get_settings()

    debug_mode = "--debug" in sys.argv
    if debug_mode:
        sys.argv.remove("--debug")

    log_level = logging.DEBUG if debug_mode else logging.INFO
    log_file = settings.data_dir / "brainstem.log"
    setup_logging(level=log_level, log_file=log_file)
    logger = get_logger("cli")

    logger.info(f"Logging to {log_file}" + (" (debug mode)" if debug_mode else ""))

    if len(sys.argv) < 2:
        print(USAGE)
        return 1

    command, args = sys.argv[1], sys.argv[2:]

    if command == "init":
        return asyncio.run(_init(settings))
    if command == "serve":
        logger.info(f"Starting HTTP server on {settings.host}:{settings.port}")
        return asyncio.run(_serve(settings))
    if command in ("sync", "restore", "backfill", "audit", "search"):
        return asyncio.run(_one_shot(settings, command, args))

    print(f"Unknown command: {command}")
    print(USAGE)
    return 1


async def _init(settings: Settings) -> int:
    from brainstem.memory.store import SQLiteMemoryStore

    settings.data_dir.mkdir(parents=True, exist_ok=True)
    store = SQLiteMemoryStore(settings.db_path)
    await store.connect()
    await store.close()
    get_logger("cli").info(f"Initialized data directory: {settings.data_dir}")
    print(f"Created: {settings.db_path}")
    return 0


async def _one_shot(settings: Settings, command: str, args: list[str]) -> int:
    from brainstem.core.services import create_services

    policy = load_policy(settings.policy_file)
    services = await create_services(settings, policy)
    logger = get_logger("cli.run")

    try:
        if command == "sync":
            _print_json(await services.coordinator.sync_all())
        elif command == "restore":
            _print_json(await services.coordinator.restore())
        elif command == "backfill":
            if services.store.embedder is None:
                print("Error: no embedding model configured")
                return 1
            batch = int(args[0]) if args else policy.backfill_batch
            result = await services.store.backfill_embeddings(batch)
            _print_json(result.to_dict())
        elif command == "audit":
            snapshot = await services.auditor.audit()
            _print_json(snapshot.to_dict())
        elif command == "search":
            if not args:
                print("Usage: brainstem search <query>")
                return 1
            status_code, payload = await services.capabilities.handle(
                "memory", {"action": "search", "query": " ".join(args)}
            )
            _print_json(payload)
            return 0 if status_code == 200 else 1
    except Exception as e:
        logger.error(f"{command} failed: {e}", exc_info=True)
        print(f"Error: {e}")
        return 1
    finally:
        await services.close()
    return 0


async def _serve(settings: Settings) -> int:
    """Run HTTP server and scheduler until a shutdown signal."""
    import uvicorn

    from brainstem.core.scheduler import Scheduler
    from brainstem.core.services import create_services, schedule_background
    from brainstem.interfaces.http import create_app

    logger = get_logger("cli.serve")
    policy = load_policy(settings.policy_file)
    services = await create_services(settings, policy)

    restored = await services.coordinator.restore()
    present = [k for k, v in restored.items() if v is not None]
    logger.info(f"Boot restore: {', '.join(present) or 'cold start'}")

    scheduler = Scheduler()
    schedule_background(scheduler, services)

    server = uvicorn.Server(
        uvicorn.Config(
            create_app(services.capabilities),
            host=settings.host,
            port=settings.port,
            log_config=None,
        )
    )

    try:
        await scheduler.start()
        print(f"Serving on http://{settings.host}:{settings.port}. Press Ctrl+C to stop.")
        await server.serve()
    except Exception as e:
        logger.error(f"Error running server: {e}", exc_info=True)
        print(f"Error: {e}")
        return 1
    finally:
        await scheduler.stop()
        await services.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
