"""Application entry point for doppel."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import re
import sys
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from typing import Mapping, Optional

from art import tprint
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

import settings
from adapters.docs_source import HttpDocsSource
from adapters.file_storage import JsonFileStore
from adapters.generation import OpenAICompatibleGenerator
from adapters.social_api import SocialApiClient
from client import SECRET_ENV_VARS, build_generator, build_social_client
from core.cache_keys import NAMESPACES
from core.cache_store import TTLCacheStore
from core.errors import DoppelError
from core.models import PostQuery
from core.orchestrator import ResponseOrchestrator
from core.relevance import RelevanceIndex

NAME = "DOPPEL"
FONT = "tarty-1"

console = Console()


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


_BEARER_PATTERN = re.compile(r"(Bearer\s+)[A-Za-z0-9._~+/=%-]+")
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"
# Third-party loggers that log every request at INFO.
NOISY_LOGGERS = ("httpx", "httpcore", "openai")


class _RedactingFormatter(logging.Formatter):
    """Masks secret values and any Authorization bearer token in log lines."""

    def __init__(self, secrets: list[str], fmt: str = LOG_FORMAT, datefmt: Optional[str] = LOG_DATEFMT) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self._secrets = [secret for secret in secrets if secret]

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        for secret in self._secrets:
            message = message.replace(secret, "***")
        return _BEARER_PATTERN.sub(r"\1***", message)


def _collect_redaction_values(config: dict, environ: Optional[Mapping[str, str]] = None) -> list[str]:
    """Values of the secret env vars to mask; defaults to the upstream credentials."""

    environ = os.environ if environ is None else environ
    redact_cfg = config.get("redact", {}) if config else {}
    if not redact_cfg.get("enabled", True):
        return []
    names = redact_cfg.get("patterns") or SECRET_ENV_VARS
    values = {environ[name] for name in names if environ.get(name)}
    # Longest first so a secret containing another is masked whole.
    return sorted(values, key=len, reverse=True)


def _log_file_handler(file_cfg: dict, formatter: logging.Formatter, level: int) -> logging.Handler:
    path = file_cfg.get("path") or "logs/doppel.log"
    if not os.path.isabs(path):
        path = os.path.join(settings.PROJECT_ROOT, path)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    handler = RotatingFileHandler(
        path,
        maxBytes=int(file_cfg.get("max_bytes", 5 * 1024 * 1024)),
        backupCount=int(file_cfg.get("backup_count", 5)),
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def _configure_logging(config: Optional[dict] = None, verbose: bool = False) -> list[logging.Handler]:
    """Install console/file handlers from the logging section of config.json."""

    config = settings.LOGGING if config is None else config
    config = config or {}
    if not config.get("enabled", False):
        return []

    load_dotenv()
    level_name = "DEBUG" if verbose else str(config.get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)
    formatter = _RedactingFormatter(_collect_redaction_values(config))

    handlers: list[logging.Handler] = []
    if config.get("console", True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        handlers.append(console_handler)

    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        handlers.append(_log_file_handler(file_cfg, formatter, level))

    if not handlers:
        return []

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
    logging.basicConfig(level=level, handlers=handlers, force=True)
    return handlers


@dataclass
class _Services:
    orchestrator: ResponseOrchestrator
    social: Optional[SocialApiClient]
    generator: Optional[OpenAICompatibleGenerator]

    async def aclose(self) -> None:
        if self.social is not None:
            await self.social.aclose()
        if self.generator is not None:
            await self.generator.aclose()


def _build_cache() -> TTLCacheStore:
    store = JsonFileStore(settings.CACHE_DIR)
    store.init_dir()
    return TTLCacheStore(store, settings.CACHE)


def _build_services(with_generator: bool = True) -> _Services:
    """Construct the long-lived service objects once per process."""

    social = build_social_client()
    generator = build_generator() if with_generator else None
    docs_store = JsonFileStore(settings.DOCS_DIR)
    docs_store.init_dir()
    index = RelevanceIndex(HttpDocsSource(settings.DOCS_URL), docs_store, settings.DOCS)
    orchestrator = ResponseOrchestrator(
        social=social,
        cache=_build_cache(),
        index=index,
        generator=generator,
        persona=settings.PERSONA,
        generation_config=settings.GENERATION,
        docs_config=settings.DOCS,
    )
    return _Services(orchestrator=orchestrator, social=social, generator=generator)


async def _sweep_loop(orchestrator: ResponseOrchestrator, interval_seconds: float) -> None:
    logger = logging.getLogger(__name__)
    while True:
        await asyncio.sleep(interval_seconds)
        try:
            removed = orchestrator.sweep()
        except Exception:
            logger.exception("Error during scheduled cleanup")
            continue
        if removed:
            logger.info("Cleaned %s old cache files", removed)


async def _run_service() -> None:
    logger = logging.getLogger(__name__)
    services = _build_services(with_generator=False)
    try:
        try:
            await services.orchestrator.warm_up()
        except DoppelError as exc:
            # Warm-up is best effort; the first question will try again.
            logger.error("Error during cache warmup: %s", exc)
        removed = services.orchestrator.sweep()
        logger.info("Startup sweep removed %s expired cache files", removed)
        logger.info("Sweeping expired caches every %s hour(s)", settings.SWEEP_INTERVAL_HOURS)
        await _sweep_loop(services.orchestrator, settings.SWEEP_INTERVAL_HOURS * 3600)
    finally:
        await services.aclose()


async def _ask(question: str, handle: Optional[str]) -> None:
    services = _build_services()
    try:
        answer = await services.orchestrator.answer(question, handle)
    finally:
        await services.aclose()
    console.print(answer.text)
    grounded = "yes" if answer.grounded_in_docs else "no"
    console.print(f"[dim]source={answer.source} grounded_in_docs={grounded}[/dim]")


async def _posts(args: argparse.Namespace) -> None:
    query = PostQuery(
        namespace=args.namespace,
        value=args.value,
        limit=args.limit,
        include_replies=args.replies,
        include_reposts=args.reposts,
        force_refresh=args.refresh,
    )
    services = _build_services(with_generator=False)
    try:
        result = await services.orchestrator.get_posts(query)
    finally:
        await services.aclose()

    table = Table(title=f"{len(result.posts)} posts ({result.source}{', stale' if result.stale else ''})")
    table.add_column("Date")
    table.add_column("Likes", justify="right")
    table.add_column("Reposts", justify="right")
    table.add_column("Text")
    for post in result.posts:
        table.add_row(post.created_at.strftime("%Y-%m-%d"), str(post.like_count), str(post.repost_count), post.text)
    console.print(table)


def _cache_command(args: argparse.Namespace) -> None:
    cache = _build_cache()
    if args.action == "list":
        table = Table(title="Cached result sets")
        table.add_column("Key")
        table.add_column("Namespace")
        table.add_column("Posts", justify="right")
        table.add_column("Age (h)", justify="right")
        table.add_column("Size", justify="right")
        table.add_column("Error")
        for info in cache.list_all():
            table.add_row(
                info.storage_key,
                info.namespace or "",
                "" if info.post_count is None else str(info.post_count),
                "" if info.age_hours is None else str(info.age_hours),
                "" if info.size_bytes is None else str(info.size_bytes),
                info.error or "",
            )
        console.print(table)
    elif args.action == "evict":
        if cache.evict(args.key):
            console.print(f"Cache {args.key} cleared successfully")
        else:
            console.print(f"Cache {args.key} not found")
            sys.exit(1)
    elif args.action == "clear":
        console.print(f"{cache.evict_all()} cache files cleared successfully")
    elif args.action == "sweep":
        console.print(f"{cache.sweep_expired()} expired cache files removed")


CACHE_HIT_NOTE = (
    "Cached sets are keyed by namespace and value only, so --limit, --replies "
    "and --reposts apply to upstream fetches; add --refresh to refetch a cached "
    "set with different options."
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="doppel")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at DEBUG level")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Warm the persona cache and sweep expired caches periodically")

    ask_parser = subparsers.add_parser("ask", help="Ask the persona a question")
    ask_parser.add_argument("question")
    ask_parser.add_argument("--handle", default=None, help="Answer as this handle instead of the configured persona")

    posts_parser = subparsers.add_parser("posts", help="Fetch posts through the cache", epilog=CACHE_HIT_NOTE)
    posts_parser.add_argument("namespace", choices=NAMESPACES)
    posts_parser.add_argument("value")
    posts_parser.add_argument("--limit", type=int, default=100, help="Upstream page size (ignored on a cache hit)")
    posts_parser.add_argument(
        "--replies", action="store_true", help="Include replies in user timelines (ignored on a cache hit)"
    )
    posts_parser.add_argument(
        "--reposts", action="store_true", help="Include reposts in user timelines (ignored on a cache hit)"
    )
    posts_parser.add_argument("--refresh", action="store_true", help="Bypass the cache")

    cache_parser = subparsers.add_parser("cache", help="Inspect or clear the post cache")
    cache_sub = cache_parser.add_subparsers(dest="action", required=True)
    cache_sub.add_parser("list")
    evict_parser = cache_sub.add_parser("evict")
    evict_parser.add_argument("key")
    cache_sub.add_parser("clear")
    cache_sub.add_parser("sweep")
    return parser


def main(argv: Optional[list[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    _configure_logging(verbose=args.verbose)
    logger = logging.getLogger(__name__)

    try:
        if args.command == "ask":
            asyncio.run(_ask(args.question, args.handle))
        elif args.command == "posts":
            asyncio.run(_posts(args))
        elif args.command == "cache":
            _cache_command(args)
        else:
            _print_banner()
            logger.info("Starting doppel")
            asyncio.run(_run_service())
    except DoppelError as exc:
        logger.error("%s", exc)
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Stopped")


if __name__ == "__main__":
    main()
