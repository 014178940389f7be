"""POST a raw JSON platform event to a running charge functions service.

Useful for manual re-delivery and duplicate-event testing.
"""

import argparse
import asyncio
import json
from pathlib import Path

import httpx


ROUTES = {
    "user.created": "/events/user.created",
    "user.deleted": "/events/user.deleted",
    "charge.written": "/events/charge.written",
}


async def send(base_url: str, kind: str, payload: dict, repeat: int = 1) -> list[int]:
    """Deliver the same payload `repeat` times and collect status codes."""

    statuses = []
    async with httpx.AsyncClient(base_url=base_url, timeout=10.0) as client:
        for _ in range(repeat):
            resp = await client.post(ROUTES[kind], json=payload)
            statuses.append(resp.status_code)
    return statuses


def main() -> None:
    """Parse CLI args and send one JSON payload."""

    parser = argparse.ArgumentParser(description="Send a platform event to the charge functions service.")
    parser.add_argument("--base-url", default="http://localhost:8080")
    parser.add_argument("--kind", required=True, choices=sorted(ROUTES))
    parser.add_argument("--json", dest="json_inline", default=None, help="Inline JSON payload")
    parser.add_argument("--file", dest="json_file", default=None, help="Path to JSON file")
    parser.add_argument("--repeat", type=int, default=1, help="Deliver the same event N times")
    args = parser.parse_args()

    if bool(args.json_inline) == bool(args.json_file):
        raise SystemExit("Provide exactly one of --json or --file")

    if args.json_inline:
        payload = json.loads(args.json_inline)
    else:
        payload = json.loads(Path(args.json_file).read_text())

    statuses = asyncio.run(send(args.base_url, args.kind, payload, args.repeat))
    print(f"Sent kind={args.kind} statuses={statuses}")


if __name__ == "__main__":
    main()
