"""Command-line entry point.

Usage:
    mockup-forge serve [--host HOST] [--port PORT]
    mockup-forge worker [--concurrency N] [--name NAME]
    mockup-forge preview artwork.png tote-bag -o tote.png [--color Noir]
    mockup-forge dead-letters [--count N]
"""

from __future__ import annotations

import argparse
import json
import socket
import sys
import time
from pathlib import Path

from mockup_forge.catalog.definitions import DERIVATIVE_DEFINITIONS, get_definition
from mockup_forge.catalog.gateway import CatalogGateway
from mockup_forge.compositor import load_artwork, render_mockup
from mockup_forge.config import Settings, configure_logging, get_settings
from mockup_forge.errors import ImageError
from mockup_forge.locks import ArtworkClaimStore, ProcessLocks
from mockup_forge.orchestrator import DerivativeOrchestrator
from mockup_forge.queue import get_job_queue, redis_from_settings
from mockup_forge.worker import DerivativeWorker

# Claims outlive the job deadline so a slow job never loses its claim
_CLAIM_MARGIN_SECONDS = 60


def cmd_serve(args: argparse.Namespace, settings: Settings) -> None:
    """Run the webhook intake service."""
    from mockup_forge.serve import run

    run(settings, host=args.host, port=args.port)


def build_workers(
    settings: Settings, concurrency: int, name: str
) -> list[DerivativeWorker]:
    """One gateway + orchestrator per worker; locks and claims are shared."""
    queue = get_job_queue(settings)
    queue.ensure_group()
    locks = ProcessLocks()
    claims = None
    if settings.claim_enabled:
        claims = ArtworkClaimStore(
            redis_from_settings(settings),
            ttl_seconds=settings.job_timeout_seconds + _CLAIM_MARGIN_SECONDS,
        )

    workers = []
    for index in range(concurrency):
        orchestrator = DerivativeOrchestrator(
            CatalogGateway(settings), settings, locks=locks, claims=claims
        )
        workers.append(DerivativeWorker(queue, orchestrator, settings, f"{name}-{index}"))
    return workers


def cmd_worker(args: argparse.Namespace, settings: Settings) -> None:
    """Run queue workers until interrupted."""
    if args.concurrency < 1:
        print("ERROR: --concurrency must be at least 1", file=sys.stderr)
        sys.exit(1)
    name = args.name or f"{socket.gethostname()}-worker"
    workers = build_workers(settings, args.concurrency, name)
    for worker in workers:
        worker.start()
    print(f"Started {len(workers)} worker(s) on queue '{settings.queue_name}'")
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        print("Stopping workers...")
    finally:
        for worker in workers:
            worker.stop(timeout=5)


def cmd_preview(args: argparse.Namespace, settings: Settings) -> None:
    """Render one mockup locally for placement checks."""
    try:
        definition = get_definition(args.definition)
    except KeyError:
        keys = ", ".join(d.key for d in DERIVATIVE_DEFINITIONS)
        print(f"ERROR: unknown definition '{args.definition}' (known: {keys})", file=sys.stderr)
        sys.exit(1)

    artwork_path = Path(args.artwork)
    if not artwork_path.exists():
        print(f"ERROR: artwork file not found: {artwork_path}", file=sys.stderr)
        sys.exit(1)

    template = definition.template
    if args.color:
        matches = [ct.template for ct in definition.color_templates if ct.color == args.color]
        if not matches:
            print(f"ERROR: no '{args.color}' template for {definition.key}", file=sys.stderr)
            sys.exit(1)
        template = matches[0]

    templates_dir = Path(args.templates_dir) if args.templates_dir else settings.templates_dir
    try:
        png = render_mockup(
            load_artwork(artwork_path.read_bytes()),
            templates_dir / template,
            definition.placement,
        )
    except ImageError as exc:
        print(f"ERROR: {exc.message}", file=sys.stderr)
        sys.exit(1)

    output = Path(args.output)
    output.write_bytes(png)
    p = definition.placement
    print(f"Wrote {output} ({definition.name}, placement {p.left},{p.top} {p.width}x{p.height})")


def cmd_dead_letters(args: argparse.Namespace, settings: Settings) -> None:
    """Print the most recent dead-lettered jobs."""
    letters = get_job_queue(settings).dead_letters(count=args.count)
    if args.json:
        print(json.dumps(letters, indent=2, default=str))
        return
    if not letters:
        print("No dead-lettered jobs")
        return
    for letter in letters:
        failed_at = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(letter["failed_at"]))
        print(
            f"{failed_at}  job={letter['job_id']}  artwork={letter['artwork_id']}  "
            f"attempts={letter['attempts']}  {letter['reason']}"
        )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mockup-forge",
        description="Derivative product generator for artwork webhooks",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # serve
    p_serve = sub.add_parser("serve", help="Run the webhook intake service")
    p_serve.add_argument("--host", help="Bind address (default: HOST)")
    p_serve.add_argument("--port", type=int, help="Port (default: PORT)")
    p_serve.set_defaults(func=cmd_serve)

    # worker
    p_worker = sub.add_parser("worker", help="Run derivative queue workers")
    p_worker.add_argument("--concurrency", type=int, default=1, help="Worker threads")
    p_worker.add_argument("--name", help="Consumer name prefix (default: <hostname>-worker)")
    p_worker.set_defaults(func=cmd_worker)

    # preview
    p_preview = sub.add_parser("preview", help="Render one mockup to a PNG file")
    p_preview.add_argument("artwork", help="Path to the artwork image")
    p_preview.add_argument("definition", help="Definition key, e.g. tote-bag")
    p_preview.add_argument("-o", "--output", required=True, help="Output PNG path")
    p_preview.add_argument("--color", help="Use the colour template for this colour")
    p_preview.add_argument("--templates-dir", help="Template directory (default: TEMPLATES_DIR)")
    p_preview.set_defaults(func=cmd_preview)

    # dead-letters
    p_dead = sub.add_parser("dead-letters", help="List dead-lettered jobs")
    p_dead.add_argument("--count", type=int, default=20, help="Number of entries")
    p_dead.add_argument("--json", action="store_true", help="Print JSON")
    p_dead.set_defaults(func=cmd_dead_letters)

    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(settings.log_level)
    args.func(args, settings)


if __name__ == "__main__":
    main()
