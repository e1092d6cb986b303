"""
Registry Client protocol definition.

The publisher, puller and sync engine only talk to a registry through this
interface. Both the HTTP client and the in-memory store implement it, and
every operation is scoped to the single repository the client was built for.
"""

from typing import Optional, Protocol, Tuple, runtime_checkable

from artifact_cli.registry.models import Descriptor, Platform


@runtime_checkable
class RegistryClient(Protocol):
    """Repository-scoped OCI content operations."""

    def resolve(self, reference: str) -> Descriptor:
        """
        Resolve a tag or digest to the descriptor of the root manifest/index.

        Raises:
            RegistryNotFoundError: If the reference does not exist
            RegistryError: For other registry errors
        """
        ...

    def fetch(self, descriptor: Descriptor) -> bytes:
        """
        Fetch the exact bytes a descriptor points at.

        Raises:
            RegistryValidationError: If the content does not match the digest
            RegistryError: For other registry errors
        """
        ...

    def fetch_reference(self, reference: str) -> Tuple[Descriptor, bytes]:
        """Resolve a tag or digest and fetch the root document bytes."""
        ...

    def push(self, descriptor: Descriptor, content: bytes) -> None:
        """Push a blob or manifest; the descriptor must describe content."""
        ...

    def tag(self, descriptor: Descriptor, tag: str) -> None:
        """Point a tag at an already pushed manifest or index."""
        ...

    def copy(
        self,
        reference: str,
        target: "RegistryClient",
        platform: Optional[Platform] = None,
    ) -> Descriptor:
        """
        Copy the graph rooted at reference into target.

        When platform is given and the root is an index, only the manifest
        for that platform (and its blobs) is copied and its descriptor returned.
        """
        ...

    def exists(self, descriptor: Descriptor) -> bool:
        """Check whether content for the descriptor is already present."""
        ...
