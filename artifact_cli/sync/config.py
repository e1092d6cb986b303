"""
Sync configuration documents.

Example:

    spec:
      dest: ./workshop
      artifacts:
        - image:
            url: ghcr.io/org/content:1.0
          path: content
          includePaths: ["/workshop/**"]
          excludePaths: ["/workshop/secret.txt"]
"""

from pathlib import Path
from typing import List, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from artifact_cli.errors import ConfigurationError


class ArtifactImage(BaseModel):
    """Registry location and credentials of one artifact"""

    url: str = Field("", description="Artifact reference host/repository:tag")
    username: str = Field("", description="Registry username")
    password: str = Field("", description="Registry password or token", repr=False)
    insecure: bool = Field(False, description="Use plain HTTP")


class SyncArtifact(BaseModel):
    """One artifact to pull, filter and copy under the destination"""

    model_config = ConfigDict(populate_by_name=True)

    image: ArtifactImage = Field(default_factory=ArtifactImage)
    path: str = Field("", description="Sub-path under the destination")
    include_paths: List[str] = Field(
        default_factory=list, alias="includePaths", description="Globs of files to keep"
    )
    exclude_paths: List[str] = Field(
        default_factory=list, alias="excludePaths", description="Globs of files to drop"
    )


class SyncSpec(BaseModel):
    dest: str = Field("", description="Destination root directory")
    artifacts: List[SyncArtifact] = Field(default_factory=list)


class SyncConfig(BaseModel):
    spec: SyncSpec = Field(default_factory=SyncSpec)


def load_sync_config(path: Union[str, Path]) -> SyncConfig:
    """
    Load a sync configuration file (YAML or JSON).

    Args:
        path: Path to the configuration file

    Returns:
        Parsed SyncConfig, not yet validated

    Raises:
        ConfigurationError: If the file cannot be read or parsed
    """
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigurationError(f"failed to read config file: {e}")
    except yaml.YAMLError as e:
        raise ConfigurationError(f"failed to parse YAML: {e}")

    try:
        return SyncConfig(**(data or {}))
    except (TypeError, ValidationError) as e:
        raise ConfigurationError(f"invalid sync config {path}: {e}")


def validate_sync_config(config: SyncConfig) -> None:
    """Raise ConfigurationError if required fields are missing."""
    if not config.spec.dest:
        raise ConfigurationError("destination path is required")
    if not config.spec.artifacts:
        raise ConfigurationError("at least one artifact must be specified")
    for i, artifact in enumerate(config.spec.artifacts, start=1):
        if not artifact.image.url:
            raise ConfigurationError(f"artifact {i}: image URL is required")
