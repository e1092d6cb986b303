"""
Repository references with optional credentials.

A reference has the form host[:port]/repository[:tag|@digest]. Credentials
default from ARTIFACT_CLI_USERNAME / ARTIFACT_CLI_PASSWORD when not given.
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from artifact_cli.errors import ConfigurationError

ENV_USERNAME = "ARTIFACT_CLI_USERNAME"
ENV_PASSWORD = "ARTIFACT_CLI_PASSWORD"

DEFAULT_TAG = "latest"

_LOCAL_HOSTS = ("localhost", "127.0.0.1")
_DOCKER_HUB = "docker.io"
_DOCKER_HUB_API = "registry-1.docker.io"


def get_tag_from_ref(ref: str) -> str:
    """
    Extract the tag from a full repository reference string.

    Example: ghcr.io/user/repo:tag -> tag. A colon that belongs to the
    registry port (before the last "/") is not a tag separator.
    """
    index = ref.rfind(":")
    if index == -1 or index < ref.rfind("/"):
        return DEFAULT_TAG
    return ref[index + 1 :]


def _strip_scheme(url: str) -> str:
    for scheme in ("https://", "http://"):
        if url.startswith(scheme):
            return url[len(scheme) :]
    return url


@dataclass(frozen=True)
class RepositoryRef:
    """Registry + repository + tag address with optional credentials."""

    url: str
    username: str = ""
    password: str = field(default="", repr=False)
    insecure: bool = False

    @classmethod
    def create(
        cls,
        url: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        insecure: bool = False,
    ) -> "RepositoryRef":
        """Build a reference, falling back to environment credentials."""
        if not username:
            username = os.getenv(ENV_USERNAME, "")
        if not password:
            password = os.getenv(ENV_PASSWORD, "")
        ref = cls(url=_strip_scheme(url), username=username, password=password, insecure=insecure)
        ref._split()
        return ref

    @classmethod
    def parse(cls, value: str, insecure: bool = False) -> "RepositoryRef":
        """
        Parse a reference that may embed credentials.

        Format: username:password@registry.com/repo:tag
        """
        value = _strip_scheme(value)
        if "@" in value:
            auth_part, _, url_part = value.partition("@")
            if "/" not in auth_part and auth_part.count(":") == 1:
                username, _, password = auth_part.partition(":")
                return cls.create(url_part, username, password, insecure)
        return cls.create(value, insecure=insecure)

    def __str__(self) -> str:
        return self.url

    @property
    def has_auth(self) -> bool:
        return bool(self.username and self.password)

    def _split(self):
        registry, slash, remainder = self.url.partition("/")
        if not slash or not registry or not remainder:
            raise ConfigurationError(
                f"invalid reference '{self.url}' (expected host/repository[:tag])"
            )
        if "@" in remainder:
            repository, _, reference = remainder.partition("@")
        else:
            last_segment = remainder.rsplit("/", 1)[-1]
            if ":" in last_segment:
                repository, _, reference = remainder.rpartition(":")
            else:
                repository, reference = remainder, DEFAULT_TAG
        if not repository or not reference:
            raise ConfigurationError(f"invalid reference '{self.url}'")
        return registry, repository, reference

    @property
    def registry(self) -> str:
        return self._split()[0]

    @property
    def repository(self) -> str:
        repository = self._split()[1]
        if self.registry == _DOCKER_HUB and "/" not in repository:
            return f"library/{repository}"
        return repository

    @property
    def reference(self) -> str:
        """Tag or digest part of the reference."""
        return self._split()[2]

    @property
    def is_digest(self) -> bool:
        return self.reference.startswith("sha256:")

    @property
    def tag(self) -> str:
        return get_tag_from_ref(self.url)

    @property
    def api_host(self) -> str:
        if self.registry == _DOCKER_HUB:
            return _DOCKER_HUB_API
        return self.registry

    @property
    def plain_http(self) -> bool:
        """Use plain HTTP for insecure and local registries."""
        host = self.registry.split(":")[0]
        return self.insecure or host in _LOCAL_HOSTS
