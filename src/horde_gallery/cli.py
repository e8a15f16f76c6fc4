"""Command-line interface for horde-gallery."""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import TYPE_CHECKING

from horde_gallery.api.client import GalleryApiClient
from horde_gallery.core.config import get_settings
from horde_gallery.core.logging import setup_logging
from horde_gallery.core.types import DeleteMode
from horde_gallery.estimation import KudosEstimator
from horde_gallery.lifecycle import RequestLifecycle
from horde_gallery.session import GallerySession
from horde_gallery.throttle import init_throttle_gate

if TYPE_CHECKING:
    from horde_gallery.api.schemas import GalleryImage


def create_client() -> GalleryApiClient:
    """Build the API client from settings."""
    return GalleryApiClient.from_settings(get_settings())


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="horde-gallery",
        description="Follow and manage AI Horde generation requests of a gallery server",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # Watch command
    watch_parser = subparsers.add_parser("watch", help="Print new images as they arrive")
    watch_parser.add_argument(
        "--duration", type=float, default=None, help="Stop after this many seconds"
    )

    # Requests command
    subparsers.add_parser("requests", help="List requests and queue status")

    # Delete commands
    mode_choices = [m.value for m in DeleteMode]
    delete_parser = subparsers.add_parser("delete", help="Delete a request")
    delete_parser.add_argument("request_id", help="Request UUID")
    delete_parser.add_argument(
        "--mode", choices=mode_choices, default="prune", help="Also delete images, or keep them"
    )

    delete_all_parser = subparsers.add_parser(
        "delete-all", help="Delete all completed and failed requests"
    )
    delete_all_parser.add_argument("--mode", choices=mode_choices, default="prune")

    # Retry command
    retry_parser = subparsers.add_parser("retry", help="Retry a failed request")
    retry_parser.add_argument("request_id", help="Request UUID")

    # Estimate command
    estimate_parser = subparsers.add_parser("estimate", help="Estimate the kudos cost of a request")
    estimate_parser.add_argument("--model", required=True, help="Model name")
    estimate_parser.add_argument("--prompt", default="", help="Prompt text")

    args = parser.parse_args(argv)

    settings = get_settings()
    setup_logging(
        settings.log_level,
        format_style=settings.log_format,
        poll_level=settings.poll_log_level,
    )

    handlers = {
        "watch": cmd_watch,
        "requests": cmd_requests,
        "delete": cmd_delete,
        "delete-all": cmd_delete_all,
        "retry": cmd_retry,
        "estimate": cmd_estimate,
    }
    return handlers[args.command](args)


def cmd_watch(args: argparse.Namespace) -> int:
    """Handle 'watch' command."""

    def show(images: list[GalleryImage]) -> None:
        for image in images:
            print(f"new image {image.id}")

    async def run() -> None:
        async with GallerySession(client=create_client(), on_new_images=show):
            if args.duration is None:
                await asyncio.Event().wait()
            else:
                await asyncio.sleep(args.duration)

    try:
        asyncio.run(run())
        return 0
    except KeyboardInterrupt:
        return 0
    except Exception as e:
        print(f"Watch failed: {e}", file=sys.stderr)
        return 1


def cmd_requests(args: argparse.Namespace) -> int:  # noqa: ARG001
    """Handle 'requests' command."""

    async def run() -> int:
        async with create_client() as client:
            requests = await client.list_requests(get_settings().requests_page_size)
            status = await client.get_queue_status()

        print(f"Queue: {status.active} active, {status.pending_requests} pending")
        print(f"Found {len(requests)} requests:")
        for request in requests:
            print(f"[{request.status.value}] {request.id} {request.prompt or ''}".rstrip())
        return 0

    try:
        return asyncio.run(run())
    except Exception as e:
        print(f"Error listing requests: {e}", file=sys.stderr)
        return 1


def cmd_delete(args: argparse.Namespace) -> int:
    """Handle 'delete' command."""

    async def run() -> None:
        async with create_client() as client:
            lifecycle = RequestLifecycle(client)
            await lifecycle.confirm_delete(args.request_id, DeleteMode(args.mode))

    try:
        asyncio.run(run())
        print(f"Deleted request {args.request_id}")
        return 0
    except Exception as e:
        print(f"Delete failed: {e}", file=sys.stderr)
        return 1


def cmd_delete_all(args: argparse.Namespace) -> int:
    """Handle 'delete-all' command."""

    async def run() -> list[str]:
        async with create_client() as client:
            lifecycle = RequestLifecycle(client)
            # Fetched directly: an unreachable server must fail the command
            lifecycle.requests = await client.list_requests(get_settings().requests_page_size)
            return await lifecycle.confirm_delete_all(DeleteMode(args.mode))

    try:
        deleted = asyncio.run(run())
        print(f"Deleted {len(deleted)} request(s)")
        return 0
    except Exception as e:
        print(f"Delete all failed: {e}", file=sys.stderr)
        return 1


def cmd_retry(args: argparse.Namespace) -> int:
    """Handle 'retry' command."""

    async def run() -> str:
        async with create_client() as client:
            lifecycle = RequestLifecycle(client)
            response = await lifecycle.retry_request(args.request_id)
            return response.request.id

    try:
        new_id = asyncio.run(run())
        print(f"Retried request {args.request_id} as {new_id}")
        return 0
    except Exception as e:
        print(f"Retry failed: {e}", file=sys.stderr)
        return 1


def cmd_estimate(args: argparse.Namespace) -> int:
    """Handle 'estimate' command."""
    gate = init_throttle_gate(get_settings().min_api_interval_seconds)

    async def run() -> float | None:
        async with create_client() as client:
            estimator = KudosEstimator(client, gate)
            return await estimator.estimate({"prompt": args.prompt, "models": [args.model]})

    try:
        kudos = asyncio.run(run())
    except Exception as e:
        print(f"Estimate failed: {e}", file=sys.stderr)
        return 1

    if kudos is None:
        print("Estimate failed", file=sys.stderr)
        return 1
    print(f"Estimated cost: {kudos:g} kudos")
    return 0


if __name__ == "__main__":
    sys.exit(main())
