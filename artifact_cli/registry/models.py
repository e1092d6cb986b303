import hashlib
import json
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from artifact_cli.errors import NoMatchingPlatformError
from artifact_cli.registry import media_types


def compute_digest(content: bytes) -> str:
    """Calculate SHA256 digest for content"""
    return f"sha256:{hashlib.sha256(content).hexdigest()}"


class Platform(BaseModel):
    """OS/architecture pair"""

    model_config = ConfigDict(frozen=True)

    architecture: str
    os: str
    variant: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.os}/{self.architecture}"

    def matches(self, other: "Platform") -> bool:
        return self.os == other.os and self.architecture == other.architecture


class Descriptor(BaseModel):
    """Content-addressed reference to a blob or manifest"""

    mediaType: str
    digest: str
    size: int
    platform: Optional[Platform] = None
    annotations: Optional[Dict[str, str]] = None

    @classmethod
    def from_bytes(
        cls, media_type: str, content: bytes, platform: Optional[Platform] = None
    ) -> "Descriptor":
        """Describe exactly these bytes."""
        return cls(
            mediaType=media_type,
            digest=compute_digest(content),
            size=len(content),
            platform=platform,
        )


class _Document(BaseModel):
    def to_bytes(self) -> bytes:
        """Canonical JSON payload as pushed to the registry."""
        payload = self.model_dump(exclude_none=True)
        return json.dumps(payload, separators=(",", ":")).encode()


class ImageManifest(_Document):
    """OCI image manifest (also parses Docker v2 manifests)"""

    schemaVersion: int = 2
    mediaType: Optional[str] = None
    config: Descriptor
    layers: List[Descriptor] = Field(default_factory=list)
    annotations: Optional[Dict[str, str]] = None

    def find_layer(self, media_type: str) -> Optional[Descriptor]:
        for layer in self.layers:
            if layer.mediaType == media_type:
                return layer
        return None


class ImageIndex(_Document):
    """OCI image index (also parses Docker manifest lists)"""

    schemaVersion: int = 2
    mediaType: Optional[str] = None
    manifests: List[Descriptor] = Field(default_factory=list)
    annotations: Optional[Dict[str, str]] = None

    @property
    def platforms(self) -> List[Platform]:
        return [m.platform for m in self.manifests if m.platform is not None]

    def find_platform(self, platform: Platform) -> Descriptor:
        """
        Select the manifest built for exactly this platform

        Raises:
            NoMatchingPlatformError: If no manifest matches os and architecture
        """
        for descriptor in self.manifests:
            if descriptor.platform is not None and descriptor.platform.matches(
                platform
            ):
                return descriptor
        available = ", ".join(str(p) for p in self.platforms) or "none"
        raise NoMatchingPlatformError(
            f"no matching platform {platform} found (available: {available})"
        )


class RegistryConfig(BaseModel):
    """Registry client configuration"""

    timeout: int = Field(default=30, gt=0)
    user_agent: str = Field(
        default=f"{media_types.TOOL_NAME}/{media_types.TOOL_VERSION}"
    )
