"""
Pull a published folder artifact and extract it.

The root is classified from its media type alone. Multi-platform roots need
an exact platform match; single-platform roots are taken as they are. The
folder layer is located by trying the known layer media types in priority
order, so artifacts produced by other tools can be consumed too.
"""

from pathlib import Path
from typing import Optional, Union

from artifact_cli import archive
from artifact_cli.artifact.types import (
    ArtifactKind,
    ArtifactType,
    ManifestWrapper,
    detect_artifact_type,
)
from artifact_cli.context import OperationContext
from artifact_cli.errors import (
    CompatibilityError,
    ConfigurationError,
    NoFolderLayerError,
)
from artifact_cli.logging_config import configure_module_logging
from artifact_cli.platforms import (
    host_platform,
    parse_platform,
    split_platforms,
    validate_platforms,
)
from artifact_cli.registry import media_types
from artifact_cli.registry.client import connect
from artifact_cli.registry.exceptions import RegistryValidationError
from artifact_cli.registry.models import Descriptor, ImageManifest, Platform
from artifact_cli.registry.protocol import RegistryClient
from artifact_cli.registry.reference import RepositoryRef
from artifact_cli.registry.store import MemoryStore

logger = configure_module_logging("artifact.puller")


def _requested_platform(platform: Optional[str]) -> Optional[Platform]:
    platforms = split_platforms(platform)
    if len(platforms) > 1:
        raise ConfigurationError(
            f"only one platform can be pulled at a time, got: {', '.join(platforms)}"
        )
    if not platforms:
        return None
    return validate_platforms(platforms)[0]


def find_folder_layer(manifest: ImageManifest) -> Descriptor:
    """
    Locate the layer holding the packed folder.

    Layer media types are tried in priority order and the first match wins.

    Raises:
        NoFolderLayerError: If no layer has a supported media type
    """
    for media_type in media_types.FOLDER_LAYER_MEDIA_TYPES:
        layer = manifest.find_layer(media_type)
        if layer is not None:
            logger.debug(f"Found layer with media type {media_type}: {layer.digest}")
            return layer
    found = ", ".join(layer.mediaType for layer in manifest.layers) or "none"
    raise NoFolderLayerError(f"no supported folder layer found (layers: {found})")


def extract(store: RegistryClient, root: Descriptor, dest: Union[str, Path]) -> ImageManifest:
    """Extract the folder layer of the manifest at root from store into dest"""
    logger.debug(f"Processing pulled artifact with digest: {root.digest}")
    content = store.fetch(root)
    try:
        manifest = ImageManifest.model_validate_json(content)
    except ValueError as e:
        raise RegistryValidationError(f"failed to parse manifest {root.digest}: {e}")
    logger.debug(f"Found manifest with media type {manifest.mediaType or root.mediaType}")

    annotations = manifest.annotations or {}
    if annotations.get(media_types.ANNOTATION_TOOL) == media_types.TOOL_NAME:
        logger.debug(
            f"Detected {media_types.TOOL_NAME} generated artifact "
            f"(version: {annotations.get(media_types.ANNOTATION_VERSION, 'unknown')})"
        )

    layer = find_folder_layer(manifest)
    archive.unpack(store.fetch(layer), dest)
    return manifest


def pull(
    repo_ref: RepositoryRef,
    dest: Union[str, Path],
    platform: Optional[str] = None,
    kind: ArtifactKind = ArtifactKind.OCI,
    registry: Optional[RegistryClient] = None,
    context: Optional[OperationContext] = None,
) -> Descriptor:
    """
    Pull an artifact and extract its folder layer into dest.

    Args:
        repo_ref: Reference to pull
        dest: Directory to extract into; created if missing
        platform: Single "os/arch" to select from a multi-platform artifact;
            defaults to the host platform
        kind: oci accepts any recognized root; imgpkg requires a single manifest
        registry: Client to pull through; connects to repo_ref when omitted
        context: Cancellation scope checked between steps

    Returns:
        Descriptor of the manifest that was extracted

    Raises:
        ConfigurationError: On more than one platform or an invalid platform,
            before any network call
        CompatibilityError: If the root is unrecognized or not of the requested kind
        NoMatchingPlatformError: If the index has no manifest for the platform
        NoFolderLayerError: If the manifest has no supported folder layer
    """
    requested = _requested_platform(platform)

    owned = registry is None
    if owned:
        registry = connect(repo_ref)
    try:
        root = registry.resolve(repo_ref.reference)
        artifact_type = detect_artifact_type(root.mediaType)
        logger.debug(f"Resolved {repo_ref} to {root.digest} ({artifact_type})")
        if artifact_type == ArtifactType.UNDEFINED:
            raise CompatibilityError(
                f"unsupported media type {root.mediaType!r} for {repo_ref}"
            )
        if kind == ArtifactKind.IMGPKG and not artifact_type.is_single_platform:
            raise CompatibilityError(
                f"{repo_ref} is not an imgpkg artifact, please use the correct type to pull it"
            )

        try:
            wrapper = ManifestWrapper.parse(artifact_type, registry.fetch(root))
        except ValueError as e:
            raise RegistryValidationError(f"failed to parse manifest for {repo_ref}: {e}")

        target = None
        if artifact_type.is_multi_platform:
            target = requested or parse_platform(host_platform())
            # Fails before any blob is copied
            wrapper.index.find_platform(target)
            logger.info(f"Pulling artifact for platform {target}...")
        else:
            logger.info(f"Pulling artifact for current platform: {host_platform()}")

        if context is not None:
            context.checkpoint()
        store = MemoryStore()
        selected = registry.copy(repo_ref.reference, store, target)

        if context is not None:
            context.checkpoint()
        extract(store, selected, dest)
        logger.info(f"Successfully pulled and extracted artifact to {dest}")
        return selected
    finally:
        if owned:
            registry.close()
