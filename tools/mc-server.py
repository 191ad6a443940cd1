#!/usr/bin/env python3
"""Query or control the game server over the control channel.

Connection settings come from MCCONTROL_* environment variables
(see aiomccontrol.config), overridable with --url.

Usage:
  mc-server.py status
  mc-server.py boot
  mc-server.py shutdown
  mc-server.py watch      # print state changes until interrupted
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import logging
import sys

from aiomccontrol import AsyncChannel, ChannelOptions, McConnectionError, McServerClient


async def async_main() -> int:
    parser = argparse.ArgumentParser(description="Control the game server.")
    parser.add_argument("command", choices=("status", "boot", "shutdown", "watch"))
    parser.add_argument("--url", help="WebSocket URL (default: from environment)")
    parser.add_argument("--timeout", type=float, help="Call timeout in seconds")
    parser.add_argument("--connect-timeout", type=float, default=10.0)
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    options = ChannelOptions.from_env()
    if args.url:
        options = dataclasses.replace(options, url=args.url)

    channel = AsyncChannel(options)
    client = McServerClient(channel)
    try:
        try:
            await channel.async_open()
        except McConnectionError as err:
            if not options.auto_reconnect:
                print(f"Error: {err}", file=sys.stderr)
                return 1
        try:
            await asyncio.wait_for(channel.await_open(), args.connect_timeout)
        except asyncio.TimeoutError:
            print(f"Error: cannot reach {options.ws_url}", file=sys.stderr)
            return 1

        if args.command == "watch":
            client.subscribe_state(lambda s: print(s.state.name, flush=True))
            result = await client.async_get_status(args.timeout)
            if not result.ok:
                print(f"Error: {result.message}", file=sys.stderr)
                return 1
            print(result.value.state.name, flush=True)
            await asyncio.Event().wait()

        if args.command == "status":
            status = await client.async_get_status(args.timeout)
            if status.ok:
                print(status.value.state.name)
                return 0
            print(f"Error: {status.message}", file=sys.stderr)
            return 1

        await client.async_get_status(args.timeout)
        if args.command == "boot":
            result = await client.async_boot(args.timeout)
        else:
            result = await client.async_shutdown(args.timeout)
        if not result.ok:
            print(f"Error: {result.message}", file=sys.stderr)
            return 1
        print(client.state.name)
        return 0
    finally:
        client.detach()
        await channel.async_close()


if __name__ == "__main__":
    try:
        raise SystemExit(asyncio.run(async_main()))
    except KeyboardInterrupt:
        raise SystemExit(130)
