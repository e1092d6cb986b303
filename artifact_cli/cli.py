"""artifact-cli command line.

Usage:
    artifact-cli push ghcr.io/org/content:1.0 -f ./content
    artifact-cli push ghcr.io/org/content:1.0 -f ./content -p linux/amd64,linux/arm64
    artifact-cli pull ghcr.io/org/content:1.0 -o ./out -p linux/arm64
    artifact-cli sync -c sync.yaml
    artifact-cli describe ghcr.io/org/content:1.0 -o json
"""

import argparse
import json
import sys
from typing import List, Optional

import yaml

from artifact_cli.artifact.metadata import format_table, get_image_metadata
from artifact_cli.artifact.publisher import publish
from artifact_cli.artifact.puller import pull
from artifact_cli.artifact.types import ArtifactKind
from artifact_cli.context import operation_context
from artifact_cli.errors import ArtifactError, OperationCancelled
from artifact_cli.logging_config import configure_cli_logging, configure_module_logging
from artifact_cli.platforms import split_platforms
from artifact_cli.registry.client import connect
from artifact_cli.registry.exceptions import RegistryError
from artifact_cli.registry.reference import ENV_PASSWORD, ENV_USERNAME, RepositoryRef
from artifact_cli.sync.config import load_sync_config
from artifact_cli.sync.engine import run_sync

logger = configure_module_logging("cli")

OUTPUT_FORMATS = ("table", "json", "yaml")


def _repo_ref(args) -> RepositoryRef:
    """Reference from the positional argument, with flags overriding embedded credentials."""
    ref = RepositoryRef.parse(args.reference, insecure=args.insecure)
    if args.username or args.password:
        ref = RepositoryRef.create(
            ref.url,
            args.username or ref.username,
            args.password or ref.password,
            args.insecure,
        )
    return ref


def cmd_push(args) -> int:
    """Publish a folder."""
    repo_ref = _repo_ref(args)
    with operation_context("push", args.timeout) as context:
        root = publish(
            repo_ref,
            args.folder,
            platforms=split_platforms(args.platform),
            kind=ArtifactKind(args.artifact_type),
            context=context,
        )
    print(f"Pushed {repo_ref}")
    print(f"Digest: {root.digest}")
    return 0


def cmd_pull(args) -> int:
    """Pull an artifact into a directory."""
    repo_ref = _repo_ref(args)
    with operation_context("pull", args.timeout) as context:
        pull(
            repo_ref,
            args.output,
            platform=args.platform,
            kind=ArtifactKind(args.artifact_type),
            context=context,
        )
    print(f"Successfully pulled and extracted artifact to {args.output}")
    return 0


def cmd_sync(args) -> int:
    """Run a sync configuration."""
    config = load_sync_config(args.config)
    with operation_context("sync", args.timeout) as context:
        result = run_sync(config, context=context)
    print(f"Successfully synced {result.synced} artifacts to {result.destination}")
    return 0


def cmd_describe(args) -> int:
    """Print information about a published artifact."""
    repo_ref = _repo_ref(args)
    with operation_context("describe", args.timeout):
        with connect(repo_ref) as registry:
            metadata = get_image_metadata(registry, repo_ref)

    if args.output == "json":
        print(json.dumps(metadata.to_output(), indent=2))
    elif args.output == "yaml":
        print(yaml.safe_dump(metadata.to_output(), sort_keys=False), end="")
    else:
        print(format_table(metadata))
    return 0


def _add_registry_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-u",
        "--username",
        default="",
        help=f"Registry username (can also use {ENV_USERNAME})",
    )
    parser.add_argument(
        "-w",
        "--password",
        default="",
        help=f"Registry password or token (can also use {ENV_PASSWORD})",
    )
    parser.add_argument(
        "-i",
        "--insecure",
        action="store_true",
        help="Allow insecure (plain HTTP) registry communication",
    )


def _add_timeout_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-t",
        "--timeout",
        default=None,
        help="Timeout for the operation (e.g. '30s', '5m', '1h'; default: 5m)",
    )


def _add_kind_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--as",
        dest="artifact_type",
        choices=[kind.value for kind in ArtifactKind],
        default=ArtifactKind.OCI.value,
        help="Type of artifact (default: oci)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="artifact-cli",
        description="Publish folders as OCI artifacts, pull them back and sync them",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Push a folder for the default platforms
  artifact-cli push ghcr.io/my-user/my-app:1.0.0 -f ./my-app

  # Pull the arm64 variant
  artifact-cli pull ghcr.io/my-user/my-app:1.0.0 -o ./out -p linux/arm64

  # Sync several artifacts into one directory
  artifact-cli sync -c sync.yaml
        """,
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose output"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    push_parser = subparsers.add_parser("push", help="Push a folder as an OCI artifact")
    push_parser.add_argument("reference", help="Repository reference host/repository:tag")
    push_parser.add_argument(
        "-f", "--folder", required=True, help="Folder to push"
    )
    push_parser.add_argument(
        "-p",
        "--platform",
        default="",
        help="Comma-separated platforms (default: linux/amd64,linux/arm64 and the host)",
    )
    _add_kind_flag(push_parser)
    _add_registry_flags(push_parser)
    _add_timeout_flag(push_parser)
    push_parser.set_defaults(handler=cmd_push)

    pull_parser = subparsers.add_parser("pull", help="Pull an artifact into a directory")
    pull_parser.add_argument("reference", help="Repository reference host/repository:tag")
    pull_parser.add_argument(
        "-o", "--output", required=True, help="Directory to extract into"
    )
    pull_parser.add_argument(
        "-p",
        "--platform",
        default="",
        help="Target platform, e.g. linux/amd64 (default: current system platform)",
    )
    _add_kind_flag(pull_parser)
    _add_registry_flags(pull_parser)
    _add_timeout_flag(pull_parser)
    pull_parser.set_defaults(handler=cmd_pull)

    sync_parser = subparsers.add_parser("sync", help="Sync artifacts from a config file")
    sync_parser.add_argument(
        "-c", "--config", required=True, help="Path to the sync configuration file"
    )
    _add_timeout_flag(sync_parser)
    sync_parser.set_defaults(handler=cmd_sync)

    describe_parser = subparsers.add_parser(
        "describe", help="Show information about a published artifact"
    )
    describe_parser.add_argument(
        "reference", help="Repository reference host/repository:tag"
    )
    describe_parser.add_argument(
        "-o",
        "--output",
        choices=OUTPUT_FORMATS,
        default="table",
        help="Output format (default: table)",
    )
    _add_registry_flags(describe_parser)
    _add_timeout_flag(describe_parser)
    describe_parser.set_defaults(handler=cmd_describe)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Run the command line and return the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_cli_logging(verbose=args.verbose)

    try:
        return args.handler(args)
    except OperationCancelled as e:
        if e.user_requested:
            print(f"\n{e}")
            return 0
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except (ArtifactError, RegistryError) as e:
        logger.debug(f"{args.command} failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1
