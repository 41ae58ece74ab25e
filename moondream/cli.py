"""Command-line interface to the Moondream vision API."""

from __future__ import annotations

import argparse
import asyncio
import base64
import dataclasses
import json
import logging
import mimetypes
import os
import sys
from pathlib import Path
from typing import Any, Sequence

from moondream.client import (
    DEFAULT_TIMEOUT,
    CaptionLength,
    MoonDream,
    MoonDreamError,
)

LOCAL_ENDPOINT = "http://localhost:2020/v1"
TOKEN_ENV = "MOONDREAM_API_KEY"
ENDPOINT_ENV = "MOONDREAM_ENDPOINT"

logger = logging.getLogger(__name__)


def encode_image(path: str | os.PathLike[str]) -> str:
    """Read an image file and return it as a base64 ``data:`` URL."""
    path = Path(path)
    mime_type, _ = mimetypes.guess_type(path.name)
    if mime_type is None or not mime_type.startswith("image/"):
        raise ValueError(f"cannot determine image format of {str(path)!r}")
    encoded = base64.b64encode(path.read_bytes()).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the ``moondream`` command."""
    parser = argparse.ArgumentParser(
        prog="moondream",
        description="Detect objects, caption images and answer visual questions.",
    )
    parser.add_argument(
        "--token",
        help=f"API token for the hosted service (default: ${TOKEN_ENV})",
    )
    parser.add_argument(
        "--endpoint",
        help=f"base URL of the API (default: ${ENDPOINT_ENV} or the service default)",
    )
    parser.add_argument(
        "--local",
        action="store_true",
        help=f"talk to an unauthenticated local service (default endpoint {LOCAL_ENDPOINT})",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT,
        help="request timeout in seconds",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    caption = commands.add_parser("caption", help="generate a caption for an image")
    caption.add_argument("image", help="image file or data: URL")
    caption.add_argument(
        "--length",
        choices=[length.value for length in CaptionLength],
        default=CaptionLength.NORMAL.value,
        help="caption length",
    )

    for name, text in (
        ("detect", "find bounding boxes of an object"),
        ("points", "find centre points of an object"),
    ):
        sub = commands.add_parser(name, help=text)
        sub.add_argument("image", help="image file or data: URL")
        sub.add_argument("object", help="name of the object to look for")

    query = commands.add_parser("query", help="ask a question about an image")
    query.add_argument("image", help="image file or data: URL")
    query.add_argument("question", help="question to ask")

    return parser


def _make_client(args: argparse.Namespace, parser: argparse.ArgumentParser) -> MoonDream:
    endpoint = args.endpoint or os.environ.get(ENDPOINT_ENV)
    if args.local:
        client = MoonDream.local(endpoint or LOCAL_ENDPOINT)
    else:
        token = args.token or os.environ.get(TOKEN_ENV)
        if not token:
            parser.error(f"{TOKEN_ENV} not set")
        client = MoonDream.remote(token)
        if endpoint:
            client = dataclasses.replace(client, endpoint=endpoint)
    return dataclasses.replace(client, timeout=args.timeout)


def _image_url(image: str) -> str:
    return image if image.startswith("data:") else encode_image(image)


async def _run(client: MoonDream, args: argparse.Namespace, image: str) -> Any:
    if args.command == "caption":
        return await client.caption(image, CaptionLength(args.length))
    if args.command == "detect":
        return await client.detect(image, args.object)
    if args.command == "points":
        return await client.points(image, args.object)
    return await client.query(image, args.question)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line; returns the process exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)
    client = _make_client(args, parser)

    try:
        image = _image_url(args.image)
    except (OSError, ValueError) as exc:
        parser.error(str(exc))

    logger.info("%s started", args.command)
    try:
        response = asyncio.run(_run(client, args, image))
    except MoonDreamError as exc:
        print(exc, file=sys.stderr)
        return 1

    print(json.dumps(dataclasses.asdict(response), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())