"""Publish one command envelope to a running kairos-persistor and print the reply."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
import uuid
from pathlib import Path
from typing import Any, Optional

from kairos_persistor import constants
from kairos_persistor.adapters import MQTTClient
from kairos_persistor.config import load_config


def _build_envelope(args: argparse.Namespace, reply_to: str) -> dict[str, Any]:
    envelope: dict[str, Any] = {
        "action": args.action,
        "reply_to": reply_to,
        "correlation_id": uuid.uuid4().hex,
    }
    if args.query:
        envelope["query"] = json.loads(args.query)
    if args.datapoints:
        envelope["datapoints"] = json.loads(args.datapoints)
    if args.metric_name:
        envelope["metric_name"] = args.metric_name
    return envelope


async def _send(args: argparse.Namespace) -> int:
    config = load_config(args.config)
    reply_to = f"{config.bus.address}/replies/{uuid.uuid4().hex[:8]}"
    envelope = _build_envelope(args, reply_to)

    client = MQTTClient(config.bus, client_id=f"{config.bus.client_id}-cli")
    replies: asyncio.Queue[bytes] = asyncio.Queue()

    async def on_message(topic: str, payload: bytes) -> None:
        if topic == reply_to:
            await replies.put(payload)

    client.set_message_handler(on_message)
    await client.connect(timeout=args.timeout)
    try:
        client.subscribe(reply_to, qos=config.bus.qos)
        print(f"Sending {args.action} to {config.bus.address}")
        client.publish(
            config.bus.address,
            json.dumps(envelope).encode("utf-8"),
            qos=config.bus.qos,
        )
        try:
            payload = await asyncio.wait_for(replies.get(), timeout=args.timeout)
        except asyncio.TimeoutError:
            print(f"No reply within {args.timeout:.1f}s", file=sys.stderr)
            return 1
    finally:
        await client.disconnect()

    reply = json.loads(payload.decode("utf-8"))
    print(json.dumps(reply, indent=2, sort_keys=True))
    return 0 if reply.get("status") == "ok" else 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("action", help="Action name, e.g. version or query_metrics")
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=constants.DEFAULT_CONFIG_PATH,
        help="kairos-persistor configuration file providing the broker settings",
    )
    parser.add_argument("--query", help="JSON metric or tag query")
    parser.add_argument("--datapoints", help="JSON data points object")
    parser.add_argument("--metric-name", dest="metric_name")
    parser.add_argument(
        "--timeout", type=float, default=10.0, help="Seconds to wait for a reply"
    )
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return asyncio.run(_send(args))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
