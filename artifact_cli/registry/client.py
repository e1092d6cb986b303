import re
from typing import Dict, Optional, Tuple

import requests
from requests.auth import HTTPBasicAuth
from requests.exceptions import RequestException

from artifact_cli.logging_config import configure_module_logging
from artifact_cli.registry import media_types
from artifact_cli.registry.exceptions import (
    RegistryAuthError,
    RegistryConnectionError,
    RegistryError,
    RegistryNotFoundError,
    RegistryValidationError,
    is_authentication_error,
)
from artifact_cli.registry.models import (
    Descriptor,
    Platform,
    RegistryConfig,
    compute_digest,
)
from artifact_cli.registry.protocol import RegistryClient
from artifact_cli.registry.reference import RepositoryRef
from artifact_cli.registry.store import copy_graph

logger = configure_module_logging("registry.client")

_CHALLENGE_PARAM = re.compile(r'(\w+)="([^"]*)"')

MANIFEST_ACCEPT = ", ".join(media_types.ROOT_MEDIA_TYPES)


class Registry:
    """OCI distribution API client scoped to one repository"""

    def __init__(self, repo_ref: RepositoryRef, config: Optional[RegistryConfig] = None):
        self.repo_ref = repo_ref
        self.config = config or RegistryConfig()
        scheme = "http" if repo_ref.plain_http else "https"
        self.url = f"{scheme}://{repo_ref.api_host}"
        self.repository = repo_ref.repository
        self._session = self._create_session()

    def _create_session(self) -> requests.Session:
        """Create configured requests session"""
        session = requests.session()
        session.headers.update({"User-Agent": self.config.user_agent})
        return session

    # -- transport ---------------------------------------------------------

    def _request(
        self, method: str, path: str, headers: Optional[Dict[str, str]] = None, **kwargs
    ) -> requests.Response:
        """Send a request, answering one auth challenge if the registry asks."""
        url = path if path.startswith("http") else f"{self.url}/v2/{self.repository}/{path}"
        response = self._session.request(
            method, url, headers=headers, timeout=self.config.timeout, **kwargs
        )
        if response.status_code == 401 and self._authorize(response):
            response = self._session.request(
                method, url, headers=headers, timeout=self.config.timeout, **kwargs
            )
        return response

    def _authorize(self, response: requests.Response) -> bool:
        """Handle a WWW-Authenticate challenge. Returns True if a retry makes sense."""
        challenge = response.headers.get("WWW-Authenticate", "")
        scheme = challenge.split(" ", 1)[0].lower()

        if scheme == "basic":
            if not self.repo_ref.has_auth:
                return False
            self._session.auth = HTTPBasicAuth(self.repo_ref.username, self.repo_ref.password)
            return True

        if scheme != "bearer":
            return False

        params = dict(_CHALLENGE_PARAM.findall(challenge))
        realm = params.pop("realm", None)
        if not realm:
            return False

        auth = None
        if self.repo_ref.has_auth:
            auth = (self.repo_ref.username, self.repo_ref.password)
        logger.debug(f"Requesting token from {realm} (scope: {params.get('scope')})")
        token_response = self._session.get(
            realm, params=params, auth=auth, timeout=self.config.timeout
        )
        if token_response.status_code in (401, 403):
            raise RegistryAuthError(
                f"authentication failed: invalid credentials for repository {self.repo_ref.url}"
            )
        token_response.raise_for_status()
        payload = token_response.json()
        token = payload.get("token") or payload.get("access_token")
        if not token:
            return False
        self._session.headers["Authorization"] = f"Bearer {token}"
        return True

    def _check(self, response: requests.Response, operation: str, *expected: int):
        if response.status_code in expected:
            return
        detail = f"{response.status_code} - {response.text.strip()}"
        if response.status_code in (401, 403):
            raise RegistryAuthError(f"{operation} failed: {detail}")
        if response.status_code == 404:
            raise RegistryNotFoundError(f"{operation} failed: {detail}")
        raise RegistryConnectionError(f"{operation} failed: {detail}")

    # -- authentication ----------------------------------------------------

    def validate_authentication(self) -> None:
        """
        Test the configured credentials against the repository

        A missing tag is not an authentication failure, so pushes to a new
        repository still work.

        Raises:
            RegistryAuthError: If the registry rejects the credentials
            RegistryConnectionError: If the repository cannot be reached
        """
        if not self.repo_ref.has_auth:
            return
        try:
            self.resolve(self.repo_ref.reference)
        except RegistryNotFoundError:
            return
        except RegistryError as e:
            if is_authentication_error(e):
                raise RegistryAuthError(
                    f"authentication failed: invalid credentials for repository {self.repo_ref.url}"
                )
            raise RegistryConnectionError(
                f"failed to access repository {self.repo_ref.url}: {e}"
            )

    # -- read --------------------------------------------------------------

    def resolve(self, reference: str) -> Descriptor:
        """
        Resolve a tag or digest to its root descriptor without fetching content

        Args:
            reference: Tag or digest

        Returns:
            Descriptor with the media type reported by the registry
        """
        try:
            response = self._request(
                "HEAD", f"manifests/{reference}", headers={"Accept": MANIFEST_ACCEPT}
            )
            self._check(response, f"Resolve {self.repository}:{reference}", 200)
        except RequestException as e:
            logger.error(f"Failed to resolve {self.repository}:{reference}: {e}")
            raise RegistryConnectionError(f"Resolve failed: {e}")

        media_type = response.headers.get("Content-Type", "").split(";")[0].strip()
        digest = response.headers.get("Docker-Content-Digest")
        size = response.headers.get("Content-Length")
        if not digest or not size:
            # Some registries omit the digest on HEAD
            descriptor, _ = self.fetch_reference(reference)
            return descriptor
        return Descriptor(mediaType=media_type, digest=digest, size=int(size))

    def fetch_reference(self, reference: str) -> Tuple[Descriptor, bytes]:
        """
        Fetch a manifest or index by tag or digest

        Returns:
            Descriptor computed from the received bytes, and the bytes
        """
        try:
            response = self._request(
                "GET", f"manifests/{reference}", headers={"Accept": MANIFEST_ACCEPT}
            )
            self._check(response, f"Manifest fetch {self.repository}:{reference}", 200)
        except RequestException as e:
            logger.error(f"Failed to get manifest {self.repository}:{reference}: {e}")
            raise RegistryConnectionError(f"Manifest fetch failed: {e}")

        content = response.content
        media_type = response.headers.get("Content-Type", "").split(";")[0].strip()
        descriptor = Descriptor.from_bytes(media_type, content)
        if reference.startswith("sha256:") and descriptor.digest != reference:
            raise RegistryValidationError(
                f"manifest digest mismatch: expected {reference}, got {descriptor.digest}"
            )
        return descriptor, content

    def fetch(self, descriptor: Descriptor) -> bytes:
        """
        Get manifest or blob content by descriptor

        Returns:
            Raw content, verified against the descriptor digest
        """
        if media_types.is_index(descriptor.mediaType) or media_types.is_manifest(
            descriptor.mediaType
        ):
            path = f"manifests/{descriptor.digest}"
            headers = {"Accept": descriptor.mediaType}
        else:
            path = f"blobs/{descriptor.digest}"
            headers = None

        try:
            response = self._request("GET", path, headers=headers)
            self._check(response, f"Fetch {descriptor.digest}", 200)
        except RequestException as e:
            logger.error(f"Failed to get {descriptor.digest}: {e}")
            raise RegistryConnectionError(f"Fetch failed: {e}")

        content = response.content
        if compute_digest(content) != descriptor.digest:
            raise RegistryValidationError(
                f"content digest mismatch for {descriptor.digest}"
            )
        return content

    def exists(self, descriptor: Descriptor) -> bool:
        """Check if a blob is already in the repository"""
        if media_types.is_index(descriptor.mediaType) or media_types.is_manifest(
            descriptor.mediaType
        ):
            path = f"manifests/{descriptor.digest}"
        else:
            path = f"blobs/{descriptor.digest}"
        try:
            response = self._request("HEAD", path, headers={"Accept": MANIFEST_ACCEPT})
        except RequestException as e:
            logger.debug(f"Existence check failed for {descriptor.digest}: {e}")
            return False
        return response.status_code == 200

    # -- write -------------------------------------------------------------

    def push(self, descriptor: Descriptor, content: bytes) -> None:
        """Push a manifest/index (by digest) or a blob"""
        if media_types.is_index(descriptor.mediaType) or media_types.is_manifest(
            descriptor.mediaType
        ):
            self.push_manifest(descriptor, content, descriptor.digest)
        else:
            self.upload_blob(descriptor, content)

    def upload_blob(self, descriptor: Descriptor, content: bytes) -> None:
        """Upload blob using monolithic upload, skipping blobs already present"""
        if self.exists(descriptor):
            logger.debug(f"Blob {descriptor.digest} already exists, skipping upload")
            return

        try:
            initiate_response = self._request("POST", "blobs/uploads/")
            self._check(initiate_response, "Blob upload initiation", 202)

            upload_location = initiate_response.headers.get("Location")
            if not upload_location:
                raise RegistryConnectionError(
                    "No Location header in upload initiation response"
                )

            # Make location absolute if it's relative
            if upload_location.startswith("/"):
                upload_location = f"{self.url}{upload_location}"

            upload_response = self._request(
                "PUT",
                upload_location,
                params={"digest": descriptor.digest},
                data=content,
                headers={
                    "Content-Type": "application/octet-stream",
                    "Content-Length": str(len(content)),
                },
            )
            self._check(upload_response, f"Blob upload {descriptor.digest}", 201)

        except RequestException as e:
            logger.error(f"Failed to upload blob {descriptor.digest}: {e}")
            raise RegistryConnectionError(f"Blob upload failed: {e}")

    def push_manifest(self, descriptor: Descriptor, content: bytes, reference: str) -> None:
        """
        Push a manifest or index under a tag or its digest

        Args:
            descriptor: Descriptor of content
            content: Exact manifest bytes
            reference: Tag or digest to store it under
        """
        try:
            response = self._request(
                "PUT",
                f"manifests/{reference}",
                data=content,
                headers={"Content-Type": descriptor.mediaType},
            )
            self._check(response, f"Manifest push {self.repository}:{reference}", 201, 200)
        except RequestException as e:
            logger.error(f"Failed to push manifest {self.repository}:{reference}: {e}")
            raise RegistryConnectionError(f"Manifest upload failed: {e}")

        server_digest = response.headers.get("Docker-Content-Digest")
        if server_digest and server_digest != descriptor.digest:
            raise RegistryValidationError(
                f"registry computed digest {server_digest}, expected {descriptor.digest}"
            )

    def tag(self, descriptor: Descriptor, tag: str) -> None:
        """Tag an existing manifest by re-putting its bytes under the tag"""
        content = self.fetch(descriptor)
        self.push_manifest(descriptor, content, tag)

    def copy(
        self, reference: str, target: RegistryClient, platform: Optional[Platform] = None
    ) -> Descriptor:
        """Copy the artifact at reference (optionally one platform) into target"""
        return copy_graph(self, reference, target, platform)

    def close(self):
        """Close the underlying session"""
        self._session.close()

    def __enter__(self):
        return self

    def __exit__(self, exec_type, exec_val, exec_tb):
        self.close()


def connect(repo_ref: RepositoryRef, config: Optional[RegistryConfig] = None) -> Registry:
    """Create a client for repo_ref and validate its credentials if any."""
    registry = Registry(repo_ref, config)
    try:
        registry.validate_authentication()
    except RegistryError:
        registry.close()
        raise
    return registry
