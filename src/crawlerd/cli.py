"""Command-line interface for crawlerd."""

import argparse
import asyncio
import json
import re
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from crawlerd.browser import BrowserProvider
from crawlerd.browser_config import BrowserConfig
from crawlerd.config import Config
from crawlerd.errors import ValidationError
from crawlerd.logging_config import get_logger, setup_logging
from crawlerd.robots import RobotsGate
from crawlerd.sink import ResultSink
from crawlerd.sites import SiteContext, build_registry

logger = get_logger(__name__)

EXIT_USAGE = 2


class UsageError(Exception):
    """Bad command-line input; reported with exit code 2."""


def _parse_meta(raw: Optional[str]) -> Optional[Dict[str, Any]]:
    if raw is None:
        return None
    try:
        meta = json.loads(raw)
    except json.JSONDecodeError as e:
        raise UsageError(f"Invalid JSON for --meta: {e}")
    if not isinstance(meta, dict):
        raise UsageError("--meta must be a JSON object")
    return meta


def _print_json(obj: Any) -> None:
    print(json.dumps(obj, indent=2, default=str, ensure_ascii=False))


async def _enqueue(config: Config, job: Dict[str, Any], options: Dict[str, Any]):
    from crawlerd.jobqueue import open_queue
    from crawlerd.producer import CrawlProducer

    async with CrawlProducer(open_queue(config)) as producer:
        return await producer.enqueue(job, options)


def worker_command(args, config: Config) -> int:
    """Consume jobs until interrupted."""
    from crawlerd.worker import run_worker

    asyncio.run(run_worker(config, concurrency=args.concurrency))
    return 0


def enqueue_command(args, config: Config) -> int:
    """Submit one crawl job with explicit options."""
    job: Dict[str, Any] = {"site": args.site, "url": args.url}
    meta = _parse_meta(args.meta)
    if meta is not None:
        job["meta"] = meta

    options: Dict[str, Any] = {"attempts": args.attempts}
    if args.delay is not None:
        options["delay"] = args.delay
    if args.priority is not None:
        options["priority"] = args.priority

    handle = asyncio.run(_enqueue(config, job, options))
    _print_json({
        "event": "enqueued",
        "id": handle.id,
        "site": args.site,
        "url": args.url,
        "meta": meta,
        "delay": args.delay,
        "attempts": args.attempts,
        "priority": args.priority,
    })
    return 0


def crawl_url_command(args, config: Config) -> int:
    """Submit a URL with default options (site defaults to generic)."""
    handle = asyncio.run(_enqueue(config, {"site": args.site, "url": args.url}, {}))
    _print_json({"event": "enqueued", "id": handle.id, "site": args.site, "url": args.url})
    return 0


async def _scrape(config: Config, site: str, url: str, meta: Optional[Dict[str, Any]]) -> Any:
    async with RobotsGate.from_config(config) as robots, \
            BrowserProvider(BrowserConfig.from_config(config)) as browser:
        registry = build_registry(
            SiteContext(browser=browser, robots=robots),
            config.plugins,
            config.plugins_file,
        )
        handler = registry.resolve(site)
        if handler is None:
            known = registry.list_ids()
            raise UsageError(
                f"Unknown site '{site}'. Known: {', '.join(known) if known else '(none)'}"
            )
        return await handler(url, meta)


def scrape_command(args, config: Config) -> int:
    """Run a handler directly, without the queue."""
    meta = _parse_meta(args.meta)
    result = asyncio.run(_scrape(config, args.site, args.url, meta))
    _print_json(result)
    return 0


def results_command(args, config: Config) -> int:
    """Print the last N sink records."""
    sink = ResultSink(config.results_path)
    try:
        records = sink.tail(args.n)
    except FileNotFoundError:
        print(f"No results file yet at: {sink.path}", file=sys.stderr)
        return EXIT_USAGE

    if not records:
        print("(results file is empty)")
        return 0

    for record in records:
        if isinstance(record, str):
            print(record)
        else:
            _print_json(record)
    return 0


async def _list_sites(config: Config) -> List[str]:
    async with RobotsGate.from_config(config) as robots, \
            BrowserProvider(BrowserConfig.from_config(config)) as browser:
        registry = build_registry(
            SiteContext(browser=browser, robots=robots),
            config.plugins,
            config.plugins_file,
        )
        return registry.list_ids()


def sites_command(args, config: Config) -> int:
    """List registered site ids, plugins included."""
    for site_id in asyncio.run(_list_sites(config)):
        print(site_id)
    return 0


def _module_name(site_id: str) -> str:
    name = re.sub(r"[^a-zA-Z0-9]+", "_", site_id).strip("_").lower()
    if not name or name[0].isdigit():
        name = f"site_{name}"
    return name


PLUGIN_TEMPLATE = '''"""{site_id} site handler (generated).

Replace the generic call with site-specific Playwright logic when ready.
"""

from functools import partial

from crawlerd.sites.generic import scrape_generic


async def scrape_{name}(context, url, meta=None):
    return await scrape_generic(context, url, meta)


def register(registry, context):
    registry.register("{site_id}", partial(scrape_{name}, context))
'''


def new_site_command(args, config: Config) -> int:
    """Scaffold a plugin module that delegates to the generic handler."""
    site_id = args.site_id.strip()
    if not site_id:
        raise UsageError("site id must not be empty")

    name = _module_name(site_id)
    dest = Path(args.dir) / f"{name}_site.py"
    if dest.exists() and not args.force:
        raise UsageError(f"Refusing to overwrite existing file: {dest} (use --force to override)")

    dest.parent.mkdir(parents=True, exist_ok=True)
    dest.write_text(PLUGIN_TEMPLATE.format(site_id=site_id, name=name), encoding="utf-8")
    _print_json({
        "event": "created",
        "file": str(dest),
        "site": site_id,
        "plugin": f"{dest.stem}:register",
        "hint": f"add the plugin entry to CRAWL_PLUGINS and put {dest.parent} on PYTHONPATH",
    })
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="crawlerd - queue-driven, robots-aware page crawler"
    )

    # Global flags (before subcommands)
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Set logging verbosity (default: LOG_LEVEL or INFO)",
    )
    parser.add_argument(
        "--log-file",
        help="Write logs to file in addition to console",
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default=None,
        help="Log line format (default: LOG_FORMAT or text)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    worker_parser = subparsers.add_parser("worker", help="Consume crawl jobs from the queue.")
    worker_parser.add_argument(
        "--concurrency", type=int, default=None,
        help="In-flight jobs (default: CONCURRENCY or 2)",
    )
    worker_parser.set_defaults(func=worker_command)

    enqueue_parser = subparsers.add_parser("enqueue", help="Submit a crawl job.")
    enqueue_parser.add_argument("--site", required=True, help="Site handler id")
    enqueue_parser.add_argument("--url", required=True, help="URL to crawl")
    enqueue_parser.add_argument("--meta", help="JSON object passed to the handler")
    enqueue_parser.add_argument("--delay", type=int, help="Milliseconds before first attempt")
    enqueue_parser.add_argument("--attempts", type=int, default=3, help="Delivery attempts (default: 3)")
    enqueue_parser.add_argument("--priority", type=int, help="Job priority (lower runs first)")
    enqueue_parser.set_defaults(func=enqueue_command)

    crawl_url_parser = subparsers.add_parser("crawl-url", help="Submit a URL with default options.")
    crawl_url_parser.add_argument("url", help="URL to crawl")
    crawl_url_parser.add_argument("--site", default="generic", help="Site handler id (default: generic)")
    crawl_url_parser.set_defaults(func=crawl_url_command)

    scrape_parser = subparsers.add_parser("scrape", help="Run a site handler directly, bypassing the queue.")
    scrape_parser.add_argument("url", help="URL to scrape")
    scrape_parser.add_argument("--site", default="generic", help="Site handler id (default: generic)")
    scrape_parser.add_argument("--meta", help="JSON object passed to the handler")
    scrape_parser.set_defaults(func=scrape_command)

    results_parser = subparsers.add_parser("results", help="Show the latest outcome records.")
    results_parser.add_argument("--n", "--limit", dest="n", type=int, default=5, help="Records to show (default: 5)")
    results_parser.set_defaults(func=results_command)

    sites_parser = subparsers.add_parser("sites", help="List registered site ids.")
    sites_parser.set_defaults(func=sites_command)

    new_site_parser = subparsers.add_parser("new-site", help="Scaffold a site plugin module.")
    new_site_parser.add_argument("site_id", help="Site id to register")
    new_site_parser.add_argument("--dir", default="plugins", help="Directory for the module (default: plugins)")
    new_site_parser.add_argument("--force", action="store_true", help="Overwrite an existing module")
    new_site_parser.set_defaults(func=new_site_command)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    config = Config.from_env()

    setup_logging(
        level=args.log_level or config.log_level,
        log_file=args.log_file or config.log_file,
        log_format=args.log_format or config.log_format,
    )

    if not hasattr(args, "func"):
        parser.print_help()
        return EXIT_USAGE

    try:
        return args.func(args, config)
    except (UsageError, ValidationError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_USAGE
    except KeyboardInterrupt:
        return 130
    except Exception as e:
        logger.exception(f"Command '{args.command}' failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
