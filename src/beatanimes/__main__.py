"""
Command line entry point.

    python -m beatanimes resolve naruto-episode-1
    python -m beatanimes downloads naruto-episode-1 --strict
"""
from __future__ import annotations
import argparse
import asyncio
import json
import logging
import sys

from .config import Settings
from .errors import ResolutionError
from .providers.runner import ResolutionPipeline

log = logging.getLogger("beatanimes")


async def _run(args, settings: Settings) -> dict:
    async with ResolutionPipeline.from_settings(settings) as pipeline:
        if args.command == "resolve":
            streams = await pipeline.resolve_episode_streams(args.id)
            return streams.to_dict()
        return await pipeline.resolve_download_links(args.id, strict=args.strict)


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="beatanimes", description="Resolve gogoanime streams")
    sub = parser.add_subparsers(dest="command", required=True)
    resolve = sub.add_parser("resolve", help="Playable sources for an episode")
    resolve.add_argument("id", help="Episode id, e.g. naruto-episode-1")
    downloads = sub.add_parser("downloads", help="Download links for an episode page")
    downloads.add_argument("id", help="Episode page id")
    downloads.add_argument("--strict", action="store_true", help="Fail when no links are found")
    args = parser.parse_args(argv)

    settings = Settings.from_env()
    logging.basicConfig(level=settings.log_level,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        result = asyncio.run(_run(args, settings))
    except ResolutionError as e:
        log.error(str(e))
        return 2 if e.http_status == 404 else 1
    print(json.dumps(result, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
