"""One-shot command line indexer for saved chat pages."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from chat_indexer.config import ConfigOverrides, IndexerConfig, load_effective_config
from chat_indexer.document import LiveDocument
from chat_indexer.index import ScanFailed
from chat_indexer.logging import EventLogger, JsonlEventLogger, MemoryEventLogger
from chat_indexer.platforms import PlatformTimeout
from chat_indexer.session import IndexerSession

EXIT_OK = 0
EXIT_FAILURE = 2


def build_arg_parser() -> argparse.ArgumentParser:
    """Build argument parser for the one-shot indexer."""
    parser = argparse.ArgumentParser(prog="chat-indexer")
    parser.add_argument("page", help="Path to a saved HTML page.")
    parser.add_argument("--url", required=True, help="Address the page was saved from.")
    parser.add_argument("--config-dir", required=False, default=None)
    parser.add_argument(
        "--color-scheme", choices=("light", "dark"), required=False, default="light"
    )
    parser.add_argument("--log-path", required=False, default=None)
    parser.add_argument("--ready-timeout-ms", type=int, required=False, default=None)
    parser.add_argument("--viewport-width", type=int, required=False, default=None)
    return parser


def index_page(
    html: str, url: str, config: IndexerConfig, color_scheme: str, event_logger: EventLogger
) -> dict[str, object]:
    """Index one page and return the serializable result payload."""
    document = LiveDocument(html, url, layout=config.layout, color_scheme=color_scheme)
    session = IndexerSession(document, config, event_logger=event_logger)

    async def run() -> dict[str, object]:
        try:
            records = await session.start()
            profile = session.profile
            palette = session.palette
            return {
                "platform": profile.name if profile is not None else None,
                "ui_version": profile.ui_version if profile is not None else None,
                "palette": palette.to_dict() if palette is not None else None,
                "queries": [record.to_dict() for record in records],
            }
        finally:
            session.close()

    return asyncio.run(run())


def main(argv: list[str] | None = None) -> int:
    """Entrypoint for the chat-indexer command."""
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    try:
        overrides = ConfigOverrides(
            ready_timeout_ms=args.ready_timeout_ms,
            viewport_width=args.viewport_width,
            log_path=Path(args.log_path) if args.log_path is not None else None,
        )
        config = load_effective_config(
            config_dir=Path(args.config_dir) if args.config_dir is not None else None,
            overrides=overrides,
        )
    except ValueError as error:
        return _fail("INVALID_CONFIG", str(error))
    page_path = Path(args.page)
    if not page_path.is_file():
        return _fail("PAGE_NOT_FOUND", f"No such page: {args.page}")
    html = page_path.read_text(encoding="utf-8", errors="replace")
    event_logger: EventLogger = (
        JsonlEventLogger(config.log_path) if config.log_path is not None else MemoryEventLogger()
    )
    try:
        payload = index_page(html, args.url, config, args.color_scheme, event_logger)
    except PlatformTimeout as error:
        return _fail("PLATFORM_TIMEOUT", str(error))
    except ScanFailed as error:
        return _fail("SCAN_FAILED", str(error))
    sys.stdout.write(f"{json.dumps(payload, sort_keys=True)}\n")
    return EXIT_OK


def _fail(code: str, message: str) -> int:
    envelope = {"ok": False, "error": {"code": code, "message": message}}
    sys.stdout.write(f"{json.dumps(envelope, sort_keys=True)}\n")
    return EXIT_FAILURE


if __name__ == "__main__":
    raise SystemExit(main())
