"""Describe a published reference without pulling its content."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from artifact_cli.artifact.types import ArtifactType, ManifestWrapper, detect_artifact_type
from artifact_cli.errors import CompatibilityError
from artifact_cli.logging_config import configure_module_logging
from artifact_cli.registry.exceptions import RegistryValidationError
from artifact_cli.registry.protocol import RegistryClient
from artifact_cli.registry.reference import RepositoryRef

logger = configure_module_logging("artifact.metadata")


class PlatformInfo(BaseModel):
    os: str
    architecture: str


class ImageMetadata(BaseModel):
    """What describe reports about a reference"""

    model_config = ConfigDict(populate_by_name=True)

    image_ref: str
    media_type: ArtifactType = ArtifactType.UNDEFINED
    oci_compliant: bool = False
    multi_platform: bool = False
    platforms: List[PlatformInfo] = Field(default_factory=list)
    manifest: Optional[ManifestWrapper] = Field(default=None, alias="raw_manifest")

    @field_serializer("media_type")
    def _serialize_media_type(self, media_type: ArtifactType) -> str:
        return media_type.value

    def to_output(self) -> dict:
        """Plain dict for JSON/YAML output, using the wire field names."""
        return self.model_dump(by_alias=True, exclude_none=True)


def get_image_metadata(registry: RegistryClient, repo_ref: RepositoryRef) -> ImageMetadata:
    """
    Resolve, classify and parse the root document of a reference

    Args:
        registry: Registry client scoped to the reference's repository
        repo_ref: Reference to describe

    Returns:
        ImageMetadata for the reference

    Raises:
        CompatibilityError: If the root media type is not recognized
        RegistryError: If the registry cannot resolve or serve the reference
    """
    descriptor = registry.resolve(repo_ref.reference)
    artifact_type = detect_artifact_type(descriptor.mediaType)
    logger.debug(f"Resolved {repo_ref} to {descriptor.digest} ({artifact_type})")
    if artifact_type == ArtifactType.UNDEFINED:
        raise CompatibilityError(
            f"unsupported media type {descriptor.mediaType!r} for {repo_ref}"
        )

    content = registry.fetch(descriptor)
    try:
        wrapper = ManifestWrapper.parse(artifact_type, content)
    except ValueError as e:
        raise RegistryValidationError(f"failed to parse manifest for {repo_ref}: {e}")

    platforms = []
    if wrapper.is_index():
        platforms = [
            PlatformInfo(os=p.os, architecture=p.architecture)
            for p in wrapper.index.platforms
        ]

    return ImageMetadata(
        image_ref=str(repo_ref),
        media_type=artifact_type,
        oci_compliant=artifact_type.is_oci,
        multi_platform=artifact_type.is_multi_platform,
        platforms=platforms,
        manifest=wrapper,
    )


def format_table(metadata: ImageMetadata) -> str:
    """Human-readable summary"""
    lines = [
        f"Image Ref: {metadata.image_ref}",
        f"Media Type: {metadata.media_type}",
        f"OCI Compliant: {str(metadata.oci_compliant).lower()}",
        f"Multi-Platform: {str(metadata.multi_platform).lower()}",
    ]
    if metadata.platforms:
        lines.append("Platforms:")
        for platform in metadata.platforms:
            lines.append(f"  - {platform.architecture} ({platform.os})")
    return "\n".join(lines)
