from __future__ import annotations

import argparse
import logging
import subprocess
import sys
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .config import AppConfig, Config, SourceConfig
from .filters import apply_filters
from .report import render_compare_md, render_results_md, write_report
from .schema import Listing
from .sorting import SORT_KEYS, sort_listings
from .sources import get_source
from .sources.base import Source
from .storage import Storage
from .urlstate import decode_query

log = logging.getLogger(__name__)

DEFAULT_CONFIG = "config/config.yaml"


def _setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _load(config_path: str) -> Config:
    load_dotenv()
    cfg = Config.from_yaml(config_path)
    _setup_logging(cfg.app.log_level)
    return cfg


def build_source(name: str, src_cfg: SourceConfig, app: AppConfig) -> Source:
    source_cls = get_source(name)
    if name == "json_file":
        if not src_cfg.path:
            raise ValueError("Source 'json_file' needs a 'path'")
        return source_cls(src_cfg.path)
    if not src_cfg.url:
        raise ValueError(f"Source '{name}' needs a 'url'")
    return source_cls(
        url=src_cfg.url,
        table=src_cfg.table,
        page_size=src_cfg.page_size,
        user_agent=app.user_agent,
        delay=app.request_delay_seconds,
    )


def sync(config_path: str = DEFAULT_CONFIG) -> int:
    cfg = _load(config_path)
    storage = Storage(cfg.app.database_path)

    listings: list[Listing] = []
    for source_name, source_cfg in cfg.sources.items():
        if not source_cfg.enabled:
            log.info("Source '%s' is disabled, skipping", source_name)
            continue
        try:
            source = build_source(source_name, source_cfg, cfg.app)
        except ValueError as e:
            log.warning("%s", e)
            continue
        fetched = source.fetch()
        log.info("Source '%s' returned %d listings", source_name, len(fetched))
        listings.extend(fetched)

    if not listings:
        log.warning("No listings fetched, keeping the cached catalog")
        return 0
    return storage.replace_all(listings)


def search(
    query: str = "",
    config_path: str = DEFAULT_CONFIG,
    sort_by: Optional[str] = None,
    output: Optional[str] = None,
) -> list[Listing]:
    cfg = _load(config_path)
    storage = Storage(cfg.app.database_path)
    countries = cfg.countries.build()

    state = decode_query(query)
    if sort_by:
        state = state.model_copy(update={"sort_by": sort_by})

    catalog = storage.get_all()
    found = sort_listings(apply_filters(catalog, state.filters, countries), state.sort_by)

    page_size = cfg.app.page_size
    start = (state.page - 1) * page_size
    page = found[start:start + page_size]

    md = render_results_md(page, state.filters, state.sort_by, total=len(found), countries=countries)
    if output:
        write_report(output, md)
        log.info("Search results written to %s", output)
    else:
        print(md)
    log.info("Search: %d of %d listings match", len(found), len(catalog))
    return page


def compare(
    action: str,
    listing_id: Optional[str] = None,
    config_path: str = DEFAULT_CONFIG,
    output: Optional[str] = None,
) -> tuple[str, ...]:
    cfg = _load(config_path)
    storage = Storage(cfg.app.database_path)
    store = cfg.compare.build_store(storage)

    if action in ("add", "remove", "toggle") and not listing_id:
        raise SystemExit(f"compare {action} needs a listing id")

    if action == "add":
        if not store.add(listing_id):
            log.warning(
                "Compare list is full (%d/%d), '%s' not added",
                store.count, store.max_items, listing_id,
            )
    elif action == "remove":
        store.remove(listing_id)
    elif action == "toggle":
        store.toggle(listing_id)
    elif action == "clear":
        store.clear()
    elif action == "show":
        md = render_compare_md(storage.get_many(store.items), cfg.countries.build())
        if output:
            write_report(output, md)
        else:
            print(md)

    if action != "show":
        print(f"Compare ({store.count}/{store.max_items}): {', '.join(store.items) or '-'}")
    return store.items


def dashboard(port: int = 8501) -> None:
    """Launch the Streamlit dashboard."""
    dashboard_path = Path(__file__).parent / "dashboard.py"
    cmd = [
        sys.executable, "-m", "streamlit", "run",
        str(dashboard_path),
        "--server.port", str(port),
        "--server.headless", "false",
    ]
    log.info("Launching dashboard on port %d", port)
    subprocess.run(cmd)


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(
        prog="cmm-market",
        description="Browse, filter and compare used coordinate-measuring machines",
    )
    sub = parser.add_subparsers(dest="cmd")

    sync_parser = sub.add_parser("sync", help="Fetch listings from the enabled sources")
    sync_parser.add_argument("--config", default=DEFAULT_CONFIG, help="Config file path")

    search_parser = sub.add_parser("search", help="Filter and sort the cached listings")
    search_parser.add_argument(
        "query", nargs="?", default="",
        help="URL query string, e.g. 'hersteller=zeiss&preis_max=50000&land=DE'",
    )
    search_parser.add_argument("--sort", choices=SORT_KEYS, help="Sort order")
    search_parser.add_argument("--output", help="Write markdown to this path")
    search_parser.add_argument("--config", default=DEFAULT_CONFIG, help="Config file path")

    compare_parser = sub.add_parser("compare", help="Manage the compare list")
    compare_parser.add_argument(
        "action", choices=["add", "remove", "toggle", "clear", "list", "show"],
    )
    compare_parser.add_argument("listing_id", nargs="?", help="Listing id")
    compare_parser.add_argument("--output", help="Write the comparison table to this path")
    compare_parser.add_argument("--config", default=DEFAULT_CONFIG, help="Config file path")

    dash_parser = sub.add_parser("dashboard", help="Launch Streamlit dashboard")
    dash_parser.add_argument("--port", type=int, default=8501, help="Server port")

    args = parser.parse_args(argv)

    if args.cmd == "sync":
        sync(config_path=args.config)
    elif args.cmd == "search":
        search(args.query, config_path=args.config, sort_by=args.sort, output=args.output)
    elif args.cmd == "compare":
        compare(args.action, args.listing_id, config_path=args.config, output=args.output)
    elif args.cmd == "dashboard":
        dashboard(port=args.port)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
