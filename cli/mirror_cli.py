"""Command-line front end for the Notion mirror and named environments.

Operates directly on the local stores; no running server is needed.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import TYPE_CHECKING

from pops.config import Settings
from pops.database import init_schema, open_store
from pops.exceptions import ConfigurationError, EnvironmentLifecycleError
from pops.notion.client import NotionClient
from pops.services.env_registry import EnvironmentRegistry, SeedMode
from pops.services.sync_service import SyncOrchestrator, default_sources

if TYPE_CHECKING:
    from pops.database import Store
    from pops.services.sync_service import PageSource


async def _open_prod(settings: Settings) -> Store:
    store = open_store(settings.database_path, busy_timeout_ms=settings.sqlite_busy_timeout_ms)
    await init_schema(store)
    return store


def _registry(settings: Settings, store: Store) -> EnvironmentRegistry:
    return EnvironmentRegistry(
        store,
        settings.resolved_envs_dir,
        busy_timeout_ms=settings.sqlite_busy_timeout_ms,
        max_ttl_seconds=settings.env_max_ttl_seconds,
    )


async def run_sync(
    settings: Settings, kinds: list[str] | None, client: PageSource | None = None
) -> bool:
    """Run one sync of the production store. Returns True if every pass succeeded."""
    store = await _open_prod(settings)
    owned_client: NotionClient | None = None
    if client is None:
        owned_client = NotionClient.from_settings(settings)
        client = owned_client
    try:
        orchestrator = SyncOrchestrator(store, client, default_sources(settings))
        report = await orchestrator.run_all(kinds)
    finally:
        if owned_client is not None:
            await owned_client.aclose()
        await store.dispose()

    for result in report.results:
        if result.ok:
            print(
                f"  {result.kind}: fetched {result.fetched}, upserted {result.upserted}, "
                f"cursor {result.cursor_after or '-'}"
            )
        else:
            print(f"  {result.kind}: FAILED ({result.error})")
    return report.ok


async def run_envs(settings: Settings, args: argparse.Namespace) -> None:
    store = await _open_prod(settings)
    registry = _registry(settings, store)
    try:
        if args.envs_command == "list":
            now = registry.now()
            envs = await registry.list()
            if not envs:
                print("No environments.")
            for info in envs:
                remaining = info.ttl_remaining(now)
                state = "expired" if info.is_expired(now) else "live"
                ttl = "no expiry" if remaining is None else f"{remaining}s left"
                print(f"  {info.name}  seed={info.seed_mode.value}  {ttl}  ({state})")
        elif args.envs_command == "create":
            info = await registry.create(args.name, SeedMode(args.seed), args.ttl)
            print(f"Created environment {info.name} at {info.db_path}")
        elif args.envs_command == "delete":
            if await registry.delete(args.name):
                print(f"Deleted environment {args.name}")
            else:
                print(f"Environment {args.name} does not exist")
        elif args.envs_command == "cleanup":
            result = await registry.startup_cleanup()
            print(
                f"Removed {len(result.expired)} expired and "
                f"{len(result.orphaned)} orphaned environment(s)"
            )
    finally:
        await registry.close()
        await store.dispose()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pops",
        description="Notion mirror and named environment management",
    )
    subparsers = parser.add_subparsers(dest="command")

    sync_parser = subparsers.add_parser("sync", help="Sync Notion into the production store")
    sync_parser.add_argument(
        "--kind",
        action="append",
        dest="kinds",
        help="Only sync this source kind (repeatable)",
    )

    envs_parser = subparsers.add_parser("envs", help="Manage named environments")
    envs_sub = envs_parser.add_subparsers(dest="envs_command")
    envs_sub.add_parser("list", help="List environments")
    create_parser = envs_sub.add_parser("create", help="Create an environment")
    create_parser.add_argument("name")
    create_parser.add_argument(
        "--seed", choices=[mode.value for mode in SeedMode], default=SeedMode.NONE.value
    )
    create_parser.add_argument("--ttl", type=int, default=None, help="Lifetime in seconds")
    delete_parser = envs_sub.add_parser("delete", help="Delete an environment")
    delete_parser.add_argument("name")
    envs_sub.add_parser("cleanup", help="Remove expired and orphaned environments")
    return parser


def main(argv: list[str] | None = None, settings: Settings | None = None) -> None:
    """CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None or (args.command == "envs" and args.envs_command is None):
        parser.print_help()
        sys.exit(1)

    if settings is None:
        settings = Settings()

    if args.command == "sync":
        try:
            settings.validate_sync_credentials()
        except ConfigurationError as exc:
            print(f"Error: {exc}")
            sys.exit(1)
        try:
            ok = asyncio.run(run_sync(settings, args.kinds))
        except ValueError as exc:
            print(f"Error: {exc}")
            sys.exit(1)
        if not ok:
            sys.exit(1)
        return

    try:
        asyncio.run(run_envs(settings, args))
    except EnvironmentLifecycleError as exc:
        print(f"Error: {exc}")
        sys.exit(1)


if __name__ == "__main__":
    main()
