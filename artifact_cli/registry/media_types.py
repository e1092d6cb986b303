"""
OCI and Docker media types.

Single source of truth for every media type the tool writes or recognizes.
"""

# Root documents
OCI_INDEX = "application/vnd.oci.image.index.v1+json"
OCI_MANIFEST = "application/vnd.oci.image.manifest.v1+json"
DOCKER_MANIFEST_LIST = "application/vnd.docker.distribution.manifest.list.v2+json"
DOCKER_MANIFEST = "application/vnd.docker.distribution.manifest.v2+json"

# Config blobs
OCI_CONFIG = "application/vnd.oci.image.config.v1+json"
DOCKER_CONFIG = "application/vnd.docker.container.image.v1+json"

# Layers
OCI_LAYER = "application/vnd.oci.image.layer.v1.tar+gzip"
DOCKER_LAYER = "application/vnd.docker.image.rootfs.diff.tar.gzip"
FOLDER_LAYER = "application/vnd.oci.image.layer.v1.tar+gzip"

INDEX_MEDIA_TYPES = (OCI_INDEX, DOCKER_MANIFEST_LIST)
MANIFEST_MEDIA_TYPES = (OCI_MANIFEST, DOCKER_MANIFEST)
ROOT_MEDIA_TYPES = INDEX_MEDIA_TYPES + MANIFEST_MEDIA_TYPES

# Priority order when locating the folder layer in a pulled manifest
FOLDER_LAYER_MEDIA_TYPES = [
    OCI_LAYER,  # written by this tool
    DOCKER_LAYER,  # imgpkg / docker buildx
    FOLDER_LAYER,  # legacy folder layer
]

# Minimal config blob
EMPTY_CONFIG_BYTES = b"{}"

# Annotations
ANNOTATION_TITLE = "org.opencontainers.image.title"
ANNOTATION_DESCRIPTION = "org.opencontainers.image.description"
ANNOTATION_PLATFORM = "org.opencontainers.image.platform"
ANNOTATION_TOOL = "dev.educates.artifact-cli.tool"
ANNOTATION_VERSION = "dev.educates.artifact-cli.version"
ANNOTATION_ARTIFACT_TYPE = "dev.educates.artifact-cli.artifact-type"

TOOL_NAME = "artifact-cli"
TOOL_VERSION = "1.0.0"


def is_index(media_type: str) -> bool:
    return media_type in INDEX_MEDIA_TYPES


def is_manifest(media_type: str) -> bool:
    return media_type in MANIFEST_MEDIA_TYPES
