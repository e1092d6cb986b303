"""
In-memory content store and graph copy.

MemoryStore holds pulled manifests and blobs for the duration of a single
pull. It implements the full RegistryClient protocol, so it can also stand
in for a registry.
"""

import threading
from typing import Dict, Optional, Tuple

from artifact_cli.logging_config import configure_module_logging
from artifact_cli.registry import media_types
from artifact_cli.registry.exceptions import (
    RegistryNotFoundError,
    RegistryValidationError,
)
from artifact_cli.registry.models import (
    Descriptor,
    ImageIndex,
    ImageManifest,
    Platform,
    compute_digest,
)
from artifact_cli.registry.protocol import RegistryClient

logger = configure_module_logging("registry.store")


class MemoryStore:
    """Content-addressed store kept entirely in memory."""

    def __init__(self):
        self._blobs: Dict[str, bytes] = {}
        self._descriptors: Dict[str, Descriptor] = {}
        self._tags: Dict[str, str] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._blobs)

    def exists(self, descriptor: Descriptor) -> bool:
        return descriptor.digest in self._blobs

    def push(self, descriptor: Descriptor, content: bytes) -> None:
        if compute_digest(content) != descriptor.digest or len(content) != descriptor.size:
            raise RegistryValidationError(
                f"content does not match descriptor {descriptor.digest}"
            )
        with self._lock:
            self._blobs[descriptor.digest] = content
            self._descriptors[descriptor.digest] = descriptor

    def fetch(self, descriptor: Descriptor) -> bytes:
        try:
            return self._blobs[descriptor.digest]
        except KeyError:
            raise RegistryNotFoundError(f"{descriptor.digest}: not found")

    def tag(self, descriptor: Descriptor, tag: str) -> None:
        if not self.exists(descriptor):
            raise RegistryNotFoundError(f"{descriptor.digest}: not found")
        with self._lock:
            self._tags[tag] = descriptor.digest

    def resolve(self, reference: str) -> Descriptor:
        digest = self._tags.get(reference, reference)
        try:
            return self._descriptors[digest]
        except KeyError:
            raise RegistryNotFoundError(f"{reference}: not found")

    def fetch_reference(self, reference: str) -> Tuple[Descriptor, bytes]:
        descriptor = self.resolve(reference)
        return descriptor, self.fetch(descriptor)

    def copy(
        self, reference: str, target: RegistryClient, platform: Optional[Platform] = None
    ) -> Descriptor:
        return copy_graph(self, reference, target, platform)


def copy_graph(
    source: RegistryClient,
    reference: str,
    target: RegistryClient,
    platform: Optional[Platform] = None,
) -> Descriptor:
    """
    Copy the manifest graph rooted at reference from source into target.

    Children are copied before their parents so the target never holds a
    manifest whose blobs are missing.

    Args:
        source: Client to read from
        reference: Tag or digest in the source repository
        target: Client or store to write into
        platform: Select this platform's manifest when the root is an index

    Returns:
        Descriptor of the copied root (the selected manifest when a platform
        was given and the root is an index)
    """
    root = source.resolve(reference)
    if platform is not None and media_types.is_index(root.mediaType):
        index = _parse(ImageIndex, source.fetch(root), root)
        root = index.find_platform(platform)
        logger.debug(f"Selected manifest {root.digest} for platform {platform}")
    _copy_node(source, target, root)
    return root


def _copy_node(source: RegistryClient, target: RegistryClient, descriptor: Descriptor) -> None:
    if target.exists(descriptor):
        return
    content = source.fetch(descriptor)
    if media_types.is_index(descriptor.mediaType):
        index = _parse(ImageIndex, content, descriptor)
        for child in index.manifests:
            _copy_node(source, target, child)
    elif media_types.is_manifest(descriptor.mediaType):
        manifest = _parse(ImageManifest, content, descriptor)
        for child in [manifest.config, *manifest.layers]:
            _copy_node(source, target, child)
    target.push(descriptor, content)


def _parse(model, content: bytes, descriptor: Descriptor):
    try:
        return model.model_validate_json(content)
    except ValueError as e:
        raise RegistryValidationError(
            f"invalid {descriptor.mediaType} document {descriptor.digest}: {e}"
        )
