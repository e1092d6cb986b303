"""
Sync orchestrator.

Artifacts are processed one at a time: pull into a temporary directory,
filter, copy under the destination. The first failure stops the run;
artifacts already copied stay in place.
"""

import os
from dataclasses import dataclass
from typing import Callable, Optional

from artifact_cli.artifact.puller import pull
from artifact_cli.context import OperationContext
from artifact_cli.errors import ArtifactError, OperationCancelled, SyncError
from artifact_cli.logging_config import configure_module_logging
from artifact_cli.registry.exceptions import RegistryError
from artifact_cli.registry.protocol import RegistryClient
from artifact_cli.registry.reference import RepositoryRef
from artifact_cli.sync.config import SyncArtifact, SyncConfig, validate_sync_config
from artifact_cli.sync.file_filter import FileFilter
from artifact_cli.sync.files import copy_files

logger = configure_module_logging("sync.engine")


@dataclass
class SyncResult:
    """Outcome of a completed sync run"""

    destination: str
    requested: int
    synced: int = 0


def process_artifact(
    entry: SyncArtifact,
    dest_root: str,
    context: OperationContext,
    registry_factory: Optional[Callable[[RepositoryRef], RegistryClient]] = None,
) -> int:
    """Pull, filter and copy one artifact. Returns the number of files copied."""
    temp_dir = context.cleanup.create_temp_dir(prefix="artifact-cli-sync-")

    repo_ref = RepositoryRef.create(
        entry.image.url,
        entry.image.username,
        entry.image.password,
        entry.image.insecure,
    )
    registry = registry_factory(repo_ref) if registry_factory else None

    # Multi-platform artifacts resolve to the host platform
    pull(repo_ref, temp_dir, registry=registry, context=context)

    FileFilter(entry.include_paths, entry.exclude_paths).apply(temp_dir)

    target = os.path.join(dest_root, entry.path)
    copied = copy_files(temp_dir, target)
    logger.debug(f"Copied {copied} file(s) from {entry.image.url} to {target}")
    return copied


def run_sync(
    config: SyncConfig,
    context: Optional[OperationContext] = None,
    registry_factory: Optional[Callable[[RepositoryRef], RegistryClient]] = None,
) -> SyncResult:
    """
    Run a sync configuration.

    Args:
        config: Parsed configuration; validated here
        context: Cancellation scope, checked before each artifact
        registry_factory: Builds the client for each artifact; by default
            each pull connects to the artifact's registry

    Returns:
        SyncResult with requested and synced counts

    Raises:
        ConfigurationError: If the configuration is incomplete
        SyncError: Naming the artifact URL that failed
        OperationCancelled: If cancelled between artifacts
    """
    validate_sync_config(config)
    if context is None:
        context = OperationContext(name="sync")
        try:
            return run_sync(config, context, registry_factory)
        finally:
            context.cleanup.cleanup()

    dest_root = os.path.abspath(config.spec.dest)
    try:
        os.makedirs(dest_root, exist_ok=True)
    except OSError as e:
        raise SyncError(f"failed to create destination directory: {e}")

    result = SyncResult(destination=dest_root, requested=len(config.spec.artifacts))
    for i, entry in enumerate(config.spec.artifacts, start=1):
        context.checkpoint()
        logger.info(f"Processing artifact {i}/{result.requested}: {entry.image.url}")
        try:
            process_artifact(entry, dest_root, context, registry_factory)
        except OperationCancelled:
            raise
        except (ArtifactError, RegistryError, OSError) as e:
            raise SyncError(f"failed to process artifact {entry.image.url}: {e}") from e
        result.synced += 1

    logger.info(f"Successfully synced {result.synced} artifacts to {dest_root}")
    return result
