"""Paint a single pixel through the paintboard client."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path


def parse_color(value: str) -> tuple[int, int, int]:
    text = value.lstrip("#")
    if len(text) != 6:
        raise argparse.ArgumentTypeError(f"colour must be RRGGBB hex, got {value!r}")
    try:
        return int(text[0:2], 16), int(text[2:4], 16), int(text[4:6], 16)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"colour must be RRGGBB hex, got {value!r}") from exc


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Paint one pixel on the shared canvas.")
    parser.add_argument("uid", type=int, help="Owner id.")
    parser.add_argument("access_key", help="Long-lived secret exchanged for a paint credential.")
    parser.add_argument("x", type=int)
    parser.add_argument("y", type=int)
    parser.add_argument("color", type=parse_color, help="Colour as RRGGBB hex.")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Use the loopback transport instead of the paint socket.",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Log level (overrides settings/env).",
    )
    return parser.parse_args()


async def run(args: argparse.Namespace) -> int:
    from paintboard import PaintboardError, PaintClient, get_settings  # type: ignore

    settings = get_settings()
    if args.dry_run:
        settings = settings.model_copy(update={"transport": "dummy"})
    r, g, b = args.color
    async with PaintClient(settings=settings) as client:
        try:
            result = await client.paint(args.uid, args.access_key, r, g, b, args.x, args.y)
        except (PaintboardError, ValueError) as exc:
            logging.getLogger("paint_pixel").error("Paint failed: %s", exc)
            return 1
    logging.getLogger("paint_pixel").info(
        "Painted (%s, %s) id=%s outcome=%s", args.x, args.y, result.request_id, result.outcome.name
    )
    return 0


def main() -> None:
    repo_root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(repo_root))

    # Lazy import after adjusting sys.path
    from paintboard.config import get_settings  # type: ignore

    args = parse_args()
    settings = get_settings()
    level = args.log_level or settings.log_level
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
