"""
Publish a folder as an OCI artifact.

The folder is packed once into a single layer shared by every platform
manifest. For the oci kind the manifests are collected into an index; for
the imgpkg kind a single manifest without platform selector is the root.
"""

from pathlib import Path
from typing import Dict, List, Optional, Union

from artifact_cli import archive
from artifact_cli.artifact.types import ArtifactKind
from artifact_cli.context import OperationContext
from artifact_cli.errors import ConfigurationError
from artifact_cli.logging_config import configure_module_logging
from artifact_cli.platforms import (
    default_push_platforms,
    parse_platform,
    validate_platforms,
)
from artifact_cli.registry import media_types
from artifact_cli.registry.client import connect
from artifact_cli.registry.models import Descriptor, ImageIndex, ImageManifest, Platform
from artifact_cli.registry.protocol import RegistryClient
from artifact_cli.registry.reference import RepositoryRef

logger = configure_module_logging("artifact.publisher")


def default_annotations(kind: ArtifactKind = ArtifactKind.OCI) -> Dict[str, str]:
    """Annotations written on every published index and manifest"""
    return {
        media_types.ANNOTATION_TITLE: f"{media_types.TOOL_NAME} artifact",
        media_types.ANNOTATION_DESCRIPTION: f"Folder artifact created by {media_types.TOOL_NAME}",
        media_types.ANNOTATION_TOOL: media_types.TOOL_NAME,
        media_types.ANNOTATION_VERSION: media_types.TOOL_VERSION,
        media_types.ANNOTATION_ARTIFACT_TYPE: kind.value,
    }


def push_layer(registry: RegistryClient, folder: Union[str, Path]) -> Descriptor:
    """Pack the folder and push it as the shared content layer."""
    content = archive.pack(folder)
    descriptor = Descriptor.from_bytes(media_types.OCI_LAYER, content)
    registry.push(descriptor, content)
    logger.debug(f"Pushed layer: {descriptor.digest}")
    return descriptor


def push_manifest(
    registry: RegistryClient,
    layer: Descriptor,
    platform: Optional[Platform],
    annotations: Dict[str, str],
) -> Descriptor:
    """
    Push a config blob and a manifest referencing the shared layer.

    Args:
        registry: Client to push to
        layer: Descriptor of the already-pushed layer
        platform: Platform to record, or None for a manifest without selector
        annotations: Base annotations; copied, never modified

    Returns:
        Manifest descriptor (carrying the platform when one was given)
    """
    config = Descriptor.from_bytes(media_types.OCI_CONFIG, media_types.EMPTY_CONFIG_BYTES)
    registry.push(config, media_types.EMPTY_CONFIG_BYTES)
    logger.debug(f"Pushed config: {config.digest}")

    manifest_annotations = dict(annotations)
    if platform is not None:
        manifest_annotations[media_types.ANNOTATION_PLATFORM] = str(platform)

    manifest = ImageManifest(
        mediaType=media_types.OCI_MANIFEST,
        config=config,
        layers=[layer],
        annotations=manifest_annotations,
    )
    content = manifest.to_bytes()
    descriptor = Descriptor.from_bytes(media_types.OCI_MANIFEST, content, platform)
    registry.push(descriptor, content)

    if platform is not None:
        logger.debug(f"Pushed manifest for platform {platform}: {descriptor.digest}")
    else:
        logger.debug(f"Pushed manifest without platform selector: {descriptor.digest}")
    return descriptor


def push_index(
    registry: RegistryClient,
    layer: Descriptor,
    platforms: List[Platform],
    annotations: Dict[str, str],
    context: Optional[OperationContext] = None,
) -> Descriptor:
    """Push one manifest per platform, in order, then the index over them."""
    manifests = []
    for platform in platforms:
        if context is not None:
            context.checkpoint()
        manifests.append(push_manifest(registry, layer, platform, annotations))

    index = ImageIndex(
        mediaType=media_types.OCI_INDEX,
        manifests=manifests,
        annotations=dict(annotations),
    )
    content = index.to_bytes()
    descriptor = Descriptor.from_bytes(media_types.OCI_INDEX, content)
    registry.push(descriptor, content)
    logger.debug(f"Pushed index: {descriptor.digest}")
    return descriptor


def publish(
    repo_ref: RepositoryRef,
    folder: Union[str, Path],
    platforms: Optional[List[str]] = None,
    annotations: Optional[Dict[str, str]] = None,
    kind: ArtifactKind = ArtifactKind.OCI,
    registry: Optional[RegistryClient] = None,
    context: Optional[OperationContext] = None,
) -> Descriptor:
    """
    Publish a folder to the repository and tag the result.

    Args:
        repo_ref: Destination reference; its tag names the result
        folder: Directory to publish
        platforms: "os/arch" strings; empty means the default set plus the host
        annotations: Extra annotations merged over the defaults
        kind: oci (index over per-platform manifests) or imgpkg (one manifest)
        registry: Client to push through; connects to repo_ref when omitted
        context: Cancellation scope checked before each platform

    Returns:
        Descriptor of the tagged root

    Raises:
        ConfigurationError: On invalid platforms or a digest reference
        ArchiveError: If the folder cannot be packed
        RegistryError: If any push fails; nothing is tagged in that case
    """
    if repo_ref.is_digest:
        raise ConfigurationError(f"cannot push to a digest reference: {repo_ref}")

    requested = list(platforms or [])
    if kind == ArtifactKind.IMGPKG and requested:
        logger.warning("Platforms are ignored for imgpkg artifacts")
        requested = []
    parsed = validate_platforms(requested)
    if kind == ArtifactKind.OCI and not parsed:
        parsed = [parse_platform(p) for p in default_push_platforms()]

    merged = default_annotations(kind)
    merged.update(annotations or {})

    owned = registry is None
    if owned:
        registry = connect(repo_ref)
    try:
        if context is not None:
            context.checkpoint()
        layer = push_layer(registry, folder)

        if kind == ArtifactKind.IMGPKG:
            root = push_manifest(registry, layer, None, merged)
        else:
            logger.info(
                f"Performing a multi-platform push for: {', '.join(str(p) for p in parsed)}"
            )
            root = push_index(registry, layer, parsed, merged, context)

        if context is not None:
            context.checkpoint()
        registry.tag(root, repo_ref.tag)
        logger.info(f"Pushed {repo_ref} ({root.digest})")
        return root
    finally:
        if owned:
            registry.close()
