#!/usr/bin/env python3
"""
Command line entry point: ipfs-launchpad
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from ipfs_launchpad.config import Settings, load_settings, parse_timeout
from ipfs_launchpad.durations import parse_duration
from ipfs_launchpad.errors import FilesystemError, LaunchpadError
from ipfs_launchpad.ipfs_client import IPFSClient
from ipfs_launchpad.report import build_report, write_json_file
from ipfs_launchpad.workflow import (
    DEFAULT_LIFETIME,
    DEFAULT_TEXT,
    DEFAULT_TTL,
    StepResult,
    WorkflowOptions,
    run_workflow,
)

logger = logging.getLogger(__name__)

LOG_FILE_NAME = "ipfs-launchpad.log"


def setup_logging(log_dir: str, level: str = "INFO") -> None:
    """Log to <log_dir>/ipfs-launchpad.log and to the console"""
    os.makedirs(log_dir, exist_ok=True)
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=[
            logging.FileHandler(os.path.join(log_dir, LOG_FILE_NAME)),
            logging.StreamHandler(),
        ],
    )


def print_step(step: StepResult) -> None:
    if step.ok:
        print(f"✅ {step.step}: {step.value}")
    else:
        print(f"❌ {step.step}: {step.error}")


def save_report(path: Path, report: dict) -> None:
    try:
        write_json_file(path, report)
    except OSError as e:
        raise FilesystemError(f"Could not write report to {path}: {e}") from e
    logger.info(f"Report written to {path}")


def add_publish_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--lifetime", type=parse_duration, default=DEFAULT_LIFETIME, help="Record lifetime, e.g. 50h (default: 50h)")
    parser.add_argument("--ttl", type=parse_duration, default=DEFAULT_TTL, help="Record cache TTL, 0 keeps the node default (default: 0)")
    parser.add_argument("--no-resolve", action="store_true", help="Publish without checking that the path resolves first")


def build_parser(settings: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Add, read, download, publish and resolve content on an IPFS node")
    parser.add_argument("--api-url", default=settings.api_url, help=f"IPFS API address, host:port or URL (default: {settings.api_url})")
    parser.add_argument("--timeout", type=parse_timeout, default=settings.timeout, help="Request timeout in seconds, 0 disables it")
    parser.add_argument("--log-dir", default=settings.log_dir, help=f"Log directory (default: {settings.log_dir})")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])

    commands = parser.add_subparsers(dest="command", required=True)

    run = commands.add_parser("run", help="Run the full add/read/download/publish/resolve workflow")
    run.add_argument("--text", default=DEFAULT_TEXT, help=f"Text to add (default: {DEFAULT_TEXT!r})")
    run.add_argument("--key", default=settings.key, help="Key name or ID to publish under (default: IPFS_KEY)")
    run.add_argument("--output", type=Path, default=Path(settings.output), help=f"Download path (default: {settings.output})")
    run.add_argument("--report", type=Path, default=None, help="Write a JSON summary of the run to this file")
    add_publish_arguments(run)

    add = commands.add_parser("add", help="Add text and print its CID")
    add.add_argument("text")

    cat = commands.add_parser("cat", help="Print the content behind a CID")
    cat.add_argument("cid")

    get = commands.add_parser("get", help="Download a CID to a local path")
    get.add_argument("cid")
    get.add_argument("path", type=Path)

    publish = commands.add_parser("publish", help="Publish a CID under an IPNS key")
    publish.add_argument("cid")
    publish.add_argument("--key", default=settings.key, help="Key name or ID (default: IPFS_KEY, or the node's own key)")
    add_publish_arguments(publish)

    resolve = commands.add_parser("resolve", help="Resolve an IPNS key to a CID")
    resolve.add_argument("key", nargs="?", default=settings.key)
    resolve.add_argument("--nocache", action="store_true", help="Bypass the node's name cache")

    commands.add_parser("keys", help="List the node's keys (name and ID)")
    commands.add_parser("version", help="Show the node's version")

    return parser


def run_command(client: IPFSClient, args: argparse.Namespace) -> None:
    if args.command == "run":
        options = WorkflowOptions(
            output_path=args.output,
            key=args.key,
            text=args.text,
            lifetime=args.lifetime,
            ttl=args.ttl,
            resolve_first=not args.no_resolve,
        )
        steps: List[StepResult] = []

        def record(step: StepResult) -> None:
            steps.append(step)
            print_step(step)

        try:
            result = run_workflow(client, options, on_step=record)
        except LaunchpadError:
            if args.report:
                try:
                    save_report(args.report, build_report(options, steps))
                except FilesystemError as report_error:
                    # The step error is the one to report
                    logger.error(str(report_error))
            raise
        if args.report:
            save_report(args.report, build_report(options, steps, result))
        if result.consistent:
            print(f"🎉 /ipns/{result.ipns_name} -> /ipfs/{result.resolved_cid}")
        else:
            print(f"⚠️ /ipns/{result.ipns_name} -> /ipfs/{result.resolved_cid}, expected /ipfs/{result.cid}")
    elif args.command == "add":
        print(client.add_str(args.text))
    elif args.command == "cat":
        print(client.cat_text(args.cid))
    elif args.command == "get":
        print(client.get(args.cid, args.path))
    elif args.command == "publish":
        published = client.publish(
            args.cid,
            key=args.key,
            lifetime=args.lifetime,
            ttl=args.ttl,
            resolve=not args.no_resolve,
        )
        print(f"/ipns/{published.name} -> {published.value}")
    elif args.command == "resolve":
        print(client.resolve(args.key, nocache=args.nocache))
    elif args.command == "keys":
        for key in client.key_list():
            print(f"{key.id} {key.name}")
    elif args.command == "version":
        info = client.version()
        print(f"{info.get('Version', 'unknown')} (commit {info.get('Commit') or 'unknown'})")


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for ipfs-launchpad"""
    try:
        settings = load_settings()
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)

    args = build_parser(settings).parse_args(argv)
    setup_logging(args.log_dir, args.log_level)

    with IPFSClient(api_url=args.api_url, timeout=args.timeout) as client:
        try:
            run_command(client, args)
        except LaunchpadError as e:
            logger.error(f"{args.command} failed: {e}")
            print(f"Error: {e}")
            sys.exit(1)


if __name__ == "__main__":
    main()
