# ABOUTME: CLI entry point for the ward bulletin service.
# ABOUTME: Provides subcommands: serve, init-db, sync-offline.

import argparse
import asyncio
import logging
import sys

import structlog

from ward_bulletin.config import get_settings


def configure_logging() -> None:
    """Configure structlog for console or JSON output."""
    settings = get_settings()

    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    if settings.log_format == "json":
        structlog.configure(
            processors=[
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.add_log_level,
                structlog.processors.JSONRenderer(),
            ],
            wrapper_class=structlog.make_filtering_bound_logger(log_level),
        )
    else:
        structlog.configure(
            processors=[
                structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S"),
                structlog.processors.add_log_level,
                structlog.dev.ConsoleRenderer(colors=True),
            ],
            wrapper_class=structlog.make_filtering_bound_logger(log_level),
        )


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the public API with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "ward_bulletin.web.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        proxy_headers=True,
        forwarded_allow_ips=settings.forwarded_allow_ips,
        log_level=settings.log_level.lower(),
    )
    return 0


def cmd_init_db(_args: argparse.Namespace) -> int:
    """Create database tables."""
    from sqlalchemy.exc import SQLAlchemyError

    from ward_bulletin.db.session import Database
    from ward_bulletin.errors import translate_db_error

    log = structlog.get_logger()
    settings = get_settings()
    if not settings.database_configured:
        log.error("database_not_configured")
        return 1

    async def _run() -> None:
        database = Database.from_settings(settings)
        try:
            await database.init()
        finally:
            await database.close()

    try:
        asyncio.run(_run())
    except SQLAlchemyError as e:
        error = translate_db_error(e, context="init_db")
        log.error("cmd_init_db_failed", code=error.code, error=error.message)
        return 1

    log.info("cmd_init_db_complete")
    return 0


def cmd_sync_offline(args: argparse.Namespace) -> int:
    """Push locally kept offline bulletins to the database."""
    from ward_bulletin.auth import AuthUser, StaticAuthProvider
    from ward_bulletin.db.session import Database
    from ward_bulletin.drafts import DraftStore, LocalStorage, TemplateStore
    from ward_bulletin.editor import BulletinEditor
    from ward_bulletin.services.records import RemoteRecordService

    log = structlog.get_logger()
    settings = get_settings()
    if not settings.database_configured:
        log.error("database_not_configured")
        return 1

    storage = LocalStorage.from_settings(settings)
    drafts = DraftStore(storage)
    owner_id = args.owner or drafts.get_last_owner_id()
    if not owner_id:
        log.error("sync_offline_no_owner", hint="Pass --owner <id>")
        return 1

    async def _run():
        database = Database.from_settings(settings)
        try:
            editor = BulletinEditor(
                drafts=drafts,
                templates=TemplateStore(storage),
                auth=StaticAuthProvider(AuthUser(id=owner_id)),
                records=RemoteRecordService(database, settings),
                settings=settings,
            )
            return await editor.sync_offline(owner_id)
        finally:
            await database.close()

    result = asyncio.run(_run())
    for local_id, remote_id in result.synced.items():
        print(f"  synced {local_id} -> {remote_id}")
    for local_id in result.failed:
        print(f"  failed {local_id}")
    log.info("cmd_sync_offline_complete", synced=len(result.synced), failed=len(result.failed))
    return 1 if result.failed else 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="ward_bulletin",
        description="Ward Bulletin - weekly meeting bulletin service",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # serve command
    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the public bulletin API",
    )
    serve_parser.add_argument("--host", type=str, default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Bind port (default: 8000)")
    serve_parser.add_argument("--reload", action="store_true", help="Reload on code changes")

    # init-db command
    subparsers.add_parser(
        "init-db",
        help="Create database tables",
    )

    # sync-offline command
    sync_parser = subparsers.add_parser(
        "sync-offline",
        help="Retry bulletins that were kept locally after a failed save",
    )
    sync_parser.add_argument(
        "--owner",
        type=str,
        help="Owner id. Defaults to the last signed-in owner.",
    )

    return parser


COMMANDS = {
    "serve": cmd_serve,
    "init-db": cmd_init_db,
    "sync-offline": cmd_sync_offline,
}


def main() -> int:
    """Main entry point."""
    configure_logging()

    parser = create_parser()
    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        return 1

    return COMMANDS[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
