"""
Edge Dispatcher Command Line Interface

Runs the dispatcher and queries a running instance.
"""

from __future__ import annotations

import argparse
import asyncio
import json

import httpx

DEFAULT_URL = "http://localhost:6442"


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="edgedispatch",
        description="Edge Dispatcher - assign devices to ready edge nodes",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Server command
    server_parser = subparsers.add_parser("server", help="Start the dispatcher")
    server_parser.add_argument("--host", help="Host to bind to")
    server_parser.add_argument("--port", type=int, help="Port")
    server_parser.add_argument("--kubeconfig", help="Path to a kubeconfig file")
    server_parser.add_argument(
        "--static-nodes",
        help="Comma-separated node names; uses the static registry instead of Kubernetes",
    )
    server_parser.add_argument("--data-dir", help="Directory for the binding database")
    server_parser.add_argument(
        "--refresh-interval",
        type=float,
        help="Seconds between directory refreshes (0 = every request)",
    )

    # Query command
    query_parser = subparsers.add_parser("query", help="Assign a device to an edge node")
    query_parser.add_argument("device_id", help="Device identifier")
    query_parser.add_argument("--url", default=DEFAULT_URL, help="Server URL")

    # Binding command
    binding_parser = subparsers.add_parser("binding", help="Show a device's current node")
    binding_parser.add_argument("device_id", help="Device identifier")
    binding_parser.add_argument("--url", default=DEFAULT_URL, help="Server URL")

    # Health command
    health_parser = subparsers.add_parser("health", help="Get dispatcher health")
    health_parser.add_argument("--url", default=DEFAULT_URL, help="Server URL")

    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        return

    if args.command == "server":
        from edgedispatch.config import DispatcherConfig
        from edgedispatch.main import run_server

        config = DispatcherConfig.from_env()
        if args.host:
            config.server.host = args.host
        if args.port:
            config.server.port = args.port
        if args.kubeconfig:
            config.registry.kubeconfig = args.kubeconfig
        if args.static_nodes:
            config.registry.method = "static"
            config.registry.static_nodes = [
                n.strip() for n in args.static_nodes.split(",") if n.strip()
            ]
        if args.data_dir:
            config.store.data_dir = args.data_dir
        if args.refresh_interval is not None:
            config.directory.refresh_interval_seconds = args.refresh_interval
        run_server(DispatcherConfig.model_validate(config.model_dump()))

    elif args.command == "query":
        asyncio.run(cmd_query(args.url, args.device_id))

    elif args.command == "binding":
        asyncio.run(cmd_binding(args.url, args.device_id))

    elif args.command == "health":
        asyncio.run(cmd_health(args.url))


async def cmd_query(base_url: str, device_id: str) -> None:
    """Ask the dispatcher for a node."""
    async with httpx.AsyncClient() as client:
        response = await client.get(
            f"{base_url}/query",
            params={"id": device_id},
            timeout=30.0,
        )

        if response.status_code == 200:
            print(response.text)
            if response.headers.get("x-dispatch-degraded") == "true":
                print("warning: no ready edge node, fallback assigned")
        else:
            print(f"Error: {response.status_code}")
            print(response.text)


async def cmd_binding(base_url: str, device_id: str) -> None:
    """Show the node bound to a device."""
    async with httpx.AsyncClient() as client:
        response = await client.get(
            f"{base_url}/binding",
            params={"id": device_id},
            timeout=10.0,
        )

        if response.status_code == 200:
            print(response.text)
        else:
            print(f"Error: {response.status_code}")
            print(response.text)


async def cmd_health(base_url: str) -> None:
    """Get dispatcher health."""
    async with httpx.AsyncClient() as client:
        response = await client.get(f"{base_url}/health", timeout=10.0)
        print(json.dumps(response.json(), indent=2))


if __name__ == "__main__":
    main()
