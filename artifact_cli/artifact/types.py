"""
Artifact classification and the manifest/index wrapper.

Classification is a pure function of the root descriptor's media type; it
never looks at content.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, model_validator

from artifact_cli.registry import media_types
from artifact_cli.registry.models import ImageIndex, ImageManifest


class ArtifactType(str, Enum):
    """(Docker | OCI) x (single | multi platform), or Undefined."""

    UNDEFINED = "Undefined"
    DOCKER_MULTI_PLATFORM = "Docker-MultiPlatform"
    OCI_MULTI_PLATFORM = "OCI-MultiPlatform"
    DOCKER_SINGLE_PLATFORM = "Docker-SinglePlatform"
    OCI_SINGLE_PLATFORM = "OCI-SinglePlatform"

    @classmethod
    def _missing_(cls, value):
        # Unknown names decode to Undefined
        return cls.UNDEFINED

    def __str__(self) -> str:
        return self.value

    @property
    def is_multi_platform(self) -> bool:
        return self in (ArtifactType.DOCKER_MULTI_PLATFORM, ArtifactType.OCI_MULTI_PLATFORM)

    @property
    def is_single_platform(self) -> bool:
        return self in (ArtifactType.DOCKER_SINGLE_PLATFORM, ArtifactType.OCI_SINGLE_PLATFORM)

    @property
    def is_oci(self) -> bool:
        return self in (ArtifactType.OCI_MULTI_PLATFORM, ArtifactType.OCI_SINGLE_PLATFORM)

    @property
    def is_docker(self) -> bool:
        return self in (ArtifactType.DOCKER_MULTI_PLATFORM, ArtifactType.DOCKER_SINGLE_PLATFORM)


_MEDIA_TYPE_CLASSIFICATION = {
    media_types.OCI_INDEX: ArtifactType.OCI_MULTI_PLATFORM,
    media_types.OCI_MANIFEST: ArtifactType.OCI_SINGLE_PLATFORM,
    media_types.DOCKER_MANIFEST_LIST: ArtifactType.DOCKER_MULTI_PLATFORM,
    media_types.DOCKER_MANIFEST: ArtifactType.DOCKER_SINGLE_PLATFORM,
}


def detect_artifact_type(media_type: str) -> ArtifactType:
    """Classify a root descriptor media type; unknown types are Undefined."""
    return _MEDIA_TYPE_CLASSIFICATION.get(media_type, ArtifactType.UNDEFINED)


class ArtifactKind(str, Enum):
    """How a folder is published and which roots a pull accepts."""

    OCI = "oci"
    IMGPKG = "imgpkg"


class ManifestWrapper(BaseModel):
    """Holds exactly one of a single-platform manifest or a multi-platform index"""

    manifest: Optional[ImageManifest] = None
    index: Optional[ImageIndex] = None

    @model_validator(mode="after")
    def _exactly_one(self):
        if (self.manifest is None) == (self.index is None):
            raise ValueError("exactly one of manifest or index must be set")
        return self

    def is_manifest(self) -> bool:
        return self.manifest is not None

    def is_index(self) -> bool:
        return self.index is not None

    def get_media_type(self) -> str:
        document = self.manifest if self.manifest is not None else self.index
        return document.mediaType or ""

    @classmethod
    def parse(cls, artifact_type: ArtifactType, content: bytes) -> "ManifestWrapper":
        """Parse root bytes into whichever document the classification names."""
        if artifact_type.is_multi_platform:
            return cls(index=ImageIndex.model_validate_json(content))
        if artifact_type.is_single_platform:
            return cls(manifest=ImageManifest.model_validate_json(content))
        raise ValueError(f"cannot parse a document classified as {artifact_type}")
