"""Main CLI entry point."""

import argparse
import asyncio
import json
import sys
from pathlib import Path


def main() -> None:
    """Parse args and dispatch to subcommands."""
    parser = argparse.ArgumentParser(prog="aryeo-shoots", description="Aryeo shoots cache and lead pipeline")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # serve
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", type=str, default=None, help="Listen host (default: HOST setting)")
    serve_parser.add_argument("--port", type=int, default=None, help="Listen port (default: PORT setting)")

    # refresh
    refresh_parser = subparsers.add_parser("refresh", help="Fetch all orders from Aryeo and rewrite the cache snapshot")
    refresh_parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Also write normalized shoots JSON to file",
    )

    # leads
    leads_parser = subparsers.add_parser("leads", help="Show recent webhook pipeline events")
    leads_parser.add_argument(
        "--limit",
        type=int,
        default=200,
        help="Max events, newest first (default: 200, max: 1000)",
    )

    # order
    order_parser = subparsers.add_parser("order", help="Fetch one order and print it normalized")
    order_parser.add_argument("order_id", help="Aryeo order id")

    args = parser.parse_args()

    if args.command == "serve":
        _run_serve(args)
    elif args.command == "refresh":
        _run_refresh(args)
    elif args.command == "leads":
        _run_leads(args)
    elif args.command == "order":
        _run_order(args)
    else:
        parser.print_help()


def _run_serve(args: argparse.Namespace) -> None:
    """Run serve command."""
    import uvicorn

    from aryeo_shoots.api import create_app
    from aryeo_shoots.config import Settings

    settings = Settings()
    uvicorn.run(
        create_app(settings),
        host=args.host or settings.HOST,
        port=args.port or settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


def _run_refresh(args: argparse.Namespace) -> None:
    """Run refresh command."""
    from aryeo_shoots.api.logging import setup_logging
    from aryeo_shoots.cache import ShootCacheManager
    from aryeo_shoots.config import Settings
    from aryeo_shoots.connectors.aryeo import AryeoConnector

    settings = Settings()
    setup_logging(settings.LOG_LEVEL)
    if not settings.has_token:
        raise SystemExit("ARYEO_API_TOKEN is not set.")

    async def _refresh() -> tuple[bool, ShootCacheManager]:
        connector = AryeoConnector.from_settings(settings)
        manager = ShootCacheManager.from_settings(settings, connector)
        try:
            return await manager.refresh(), manager
        finally:
            await connector.aclose()

    ok, manager = asyncio.run(_refresh())
    if not ok:
        print(str(manager.last_error), file=sys.stderr)
        raise SystemExit(1)

    cache = manager.cache
    print(f"Refreshed: {cache.source_count} shoots (snapshot: {settings.shoots_cache_path})")
    if args.output:
        output = json.dumps(
            [s.model_dump(mode="json") for s in cache.shoots],
            indent=2,
            default=str,
        )
        args.output.write_text(output, encoding="utf-8")
        print(f"Wrote {len(cache.shoots)} shoots to {args.output}")


def _run_leads(args: argparse.Namespace) -> None:
    """Run leads command."""
    from aryeo_shoots.config import Settings
    from aryeo_shoots.store import PipelineLog

    settings = Settings()
    events = PipelineLog(settings.pipeline_log_path).read_recent(args.limit)
    print(json.dumps(events, indent=2, default=str))


def _run_order(args: argparse.Namespace) -> None:
    """Run order command."""
    from aryeo_shoots.cache import ORDER_FALLBACK_INCLUDES
    from aryeo_shoots.config import Settings
    from aryeo_shoots.connectors.aryeo import AryeoConnector
    from aryeo_shoots.errors import ShootsError

    settings = Settings()

    async def _fetch():
        connector = AryeoConnector.from_settings(settings)
        try:
            return await connector.fetch_shoot(
                args.order_id,
                include=settings.ARYEO_ORDER_INCLUDES,
                fallback_includes=ORDER_FALLBACK_INCLUDES,
            )
        finally:
            await connector.aclose()

    try:
        shoot = asyncio.run(_fetch())
    except ShootsError as e:
        raise SystemExit(str(e))
    print(json.dumps(shoot.model_dump(mode="json"), indent=2))


if __name__ == "__main__":
    main()
