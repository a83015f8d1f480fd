"""Simple HTTP client for manual testing."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import time

import httpx

DEFAULT_URL = "http://127.0.0.1:3000/askAi"


async def run_client(url: str, message: str, origin: str | None, timeout: float) -> None:
    """Post a prompt to the gateway and print the generated text."""

    logger = logging.getLogger("ask_client")
    headers = {"Origin": origin} if origin else {}
    start = time.perf_counter()

    async with httpx.AsyncClient(timeout=timeout) as client:
        response = await client.post(url, json={"message": message}, headers=headers)
        logger.info("Sent prompt (%d chars)", len(message))

    elapsed = time.perf_counter() - start
    body = response.json()

    if not body.get("success"):
        logger.error("Request failed with HTTP %d: %s", response.status_code, json.dumps(body))
        raise SystemExit(1)

    logger.info(
        "Received %d chars from %s in %.2fs (remaining quota: %s)",
        len(body["data"]["text"]),
        body["meta"]["model"],
        elapsed,
        response.headers.get("x-ratelimit-remaining", "?"),
    )
    print(body["data"]["text"])


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Test client for the prompt gateway.")
    parser.add_argument("--url", default=DEFAULT_URL, help="Endpoint URL (default: %(default)s)")
    parser.add_argument("--message", required=True, help="Prompt to send.")
    parser.add_argument("--origin", help="Optional Origin header, to exercise the CORS policy.")
    parser.add_argument(
        "--timeout", type=float, default=60.0, help="Seconds to wait for the completion."
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))
    try:
        asyncio.run(run_client(args.url, args.message, args.origin, args.timeout))
    except KeyboardInterrupt:  # pragma: no cover - manual usage only
        pass


if __name__ == "__main__":  # pragma: no cover
    main()
