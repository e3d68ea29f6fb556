"""Entry point: python -m mnemo [chat|index|search <query>]

- No args / "chat": Interactive CLI REPL
- "index":          Sync the vector index with the memory directory
- "search":         Print the best-matching memory files for a query
"""

from __future__ import annotations

import asyncio
import logging
import sys

from mnemo.config import MnemoConfig, load_config


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _build(config: MnemoConfig):
    from mnemo.core import Mnemo
    from mnemo.providers import build_provider

    return Mnemo(config, build_provider(config.provider))


async def _chat(config: MnemoConfig) -> None:
    from mnemo.connectors.cli import CLIConnector

    mnemo = _build(config)
    mnemo.add_connector(CLIConnector())
    try:
        await mnemo.start()
    finally:
        await mnemo.stop()


async def _index(config: MnemoConfig) -> None:
    mnemo = _build(config)
    try:
        report = await mnemo.index.refresh()
    finally:
        await mnemo.close()
    print(
        f"synced: {len(report.synced)}  skipped: {len(report.skipped)}  "
        f"pruned: {len(report.pruned)}"
    )
    for name in report.synced:
        print(f"  + {name}")


async def _search(config: MnemoConfig, query: str) -> None:
    mnemo = _build(config)
    try:
        await mnemo.index.refresh()
        results = await mnemo.index.search(query)
    finally:
        await mnemo.close()
    for result in results:
        print(f"{result.score:.4f}  {result.file}")


def main() -> None:
    cmd = sys.argv[1] if len(sys.argv) > 1 else "chat"
    config = load_config()
    _setup_logging(config.log_level)

    try:
        if cmd in ("chat", "repl"):
            asyncio.run(_chat(config))
        elif cmd == "index":
            asyncio.run(_index(config))
        elif cmd == "search" and len(sys.argv) > 2:
            asyncio.run(_search(config, " ".join(sys.argv[2:])))
        else:
            print("Usage: python -m mnemo [chat|index|search <query>]")
            print("  chat    — Interactive CLI REPL (default)")
            print("  index   — Sync the vector index with the memory directory")
            print("  search  — Show the best-matching memory files")
            sys.exit(1)
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
