"""Tests for the HTTP registry client."""

from unittest.mock import MagicMock, patch

import pytest
from requests.auth import HTTPBasicAuth
from requests.exceptions import ConnectionError as RequestsConnectionError

from artifact_cli.registry import media_types
from artifact_cli.registry.client import Registry, connect
from artifact_cli.registry.exceptions import (
    RegistryAuthError,
    RegistryConnectionError,
    RegistryNotFoundError,
    RegistryValidationError,
)
from artifact_cli.registry.models import Descriptor, RegistryConfig
from artifact_cli.registry.protocol import RegistryClient
from artifact_cli.registry.reference import RepositoryRef
from tests.fixtures.sample_data import (
    ACCESS_TOKEN_RESPONSE,
    BEARER_CHALLENGE,
    TOKEN_RESPONSE,
)

pytestmark = pytest.mark.unit

MANIFEST_BYTES = b'{"schemaVersion":2}'
MANIFEST = Descriptor.from_bytes(media_types.OCI_MANIFEST, MANIFEST_BYTES)
BLOB_BYTES = b"blob-content"
BLOB = Descriptor.from_bytes(media_types.OCI_LAYER, BLOB_BYTES)


def _response(status_code=200, headers=None, content=b"", json_data=None):
    response = MagicMock()
    response.status_code = status_code
    response.headers = headers or {}
    response.content = content
    response.text = content.decode() if content else ""
    response.json.return_value = json_data
    return response


@pytest.fixture
def mock_session():
    session = MagicMock()
    session.headers = {}
    session.auth = None
    with patch("artifact_cli.registry.client.requests.session", return_value=session):
        yield session


@pytest.fixture
def registry(mock_session):
    return Registry(RepositoryRef.create("registry.example.com/team/app:1.0"))


class TestRegistryInit:
    """Tests for Registry initialization."""

    def test_https_by_default(self, registry):
        assert registry.url == "https://registry.example.com"
        assert registry.repository == "team/app"

    def test_plain_http_for_localhost(self, mock_session):
        registry = Registry(RepositoryRef.create("localhost:5000/team/app:1.0"))
        assert registry.url == "http://localhost:5000"

    def test_implements_registry_client(self, registry):
        assert isinstance(registry, RegistryClient)

    def test_user_agent(self, mock_session):
        Registry(
            RepositoryRef.create("ghcr.io/a/b:1"), RegistryConfig(user_agent="test-agent")
        )
        assert mock_session.headers["User-Agent"] == "test-agent"


class TestResolve:
    """Tests for Registry.resolve()."""

    def test_resolve_from_head(self, registry, mock_session):
        mock_session.request.return_value = _response(
            headers={
                "Content-Type": media_types.OCI_INDEX,
                "Docker-Content-Digest": "sha256:" + "a" * 64,
                "Content-Length": "321",
            }
        )
        descriptor = registry.resolve("1.0")

        assert descriptor.mediaType == media_types.OCI_INDEX
        assert descriptor.size == 321
        method, url = mock_session.request.call_args.args
        assert method == "HEAD"
        assert url == "https://registry.example.com/v2/team/app/manifests/1.0"
        accept = mock_session.request.call_args.kwargs["headers"]["Accept"]
        assert media_types.DOCKER_MANIFEST_LIST in accept

    def test_resolve_falls_back_to_get(self, registry, mock_session):
        """Test that a HEAD without digest is followed by a GET."""
        mock_session.request.side_effect = [
            _response(headers={"Content-Type": media_types.OCI_MANIFEST}),
            _response(headers={"Content-Type": media_types.OCI_MANIFEST}, content=MANIFEST_BYTES),
        ]
        assert registry.resolve("1.0") == MANIFEST

    def test_resolve_not_found(self, registry, mock_session):
        mock_session.request.return_value = _response(status_code=404)
        with pytest.raises(RegistryNotFoundError):
            registry.resolve("missing")

    def test_resolve_connection_error(self, registry, mock_session):
        mock_session.request.side_effect = RequestsConnectionError("refused")
        with pytest.raises(RegistryConnectionError, match="Resolve failed"):
            registry.resolve("1.0")


class TestFetch:
    """Tests for Registry.fetch()."""

    def test_fetch_blob_verifies_digest(self, registry, mock_session):
        mock_session.request.return_value = _response(content=BLOB_BYTES)
        assert registry.fetch(BLOB) == BLOB_BYTES
        assert mock_session.request.call_args.args[1].endswith(f"/blobs/{BLOB.digest}")

    def test_fetch_manifest_path(self, registry, mock_session):
        mock_session.request.return_value = _response(content=MANIFEST_BYTES)
        registry.fetch(MANIFEST)
        assert mock_session.request.call_args.args[1].endswith(
            f"/manifests/{MANIFEST.digest}"
        )

    def test_fetch_digest_mismatch(self, registry, mock_session):
        mock_session.request.return_value = _response(content=b"tampered")
        with pytest.raises(RegistryValidationError):
            registry.fetch(BLOB)

    def test_fetch_reference_by_digest_checks_content(self, registry, mock_session):
        mock_session.request.return_value = _response(
            headers={"Content-Type": media_types.OCI_MANIFEST}, content=b"{}"
        )
        with pytest.raises(RegistryValidationError, match="digest mismatch"):
            registry.fetch_reference(MANIFEST.digest)


class TestPush:
    """Tests for Registry.push()."""

    def test_upload_blob_monolithic(self, registry, mock_session):
        mock_session.request.side_effect = [
            _response(status_code=404),  # existence check
            _response(status_code=202, headers={"Location": "/v2/team/app/blobs/uploads/123"}),
            _response(status_code=201),
        ]
        registry.push(BLOB, BLOB_BYTES)

        put = mock_session.request.call_args_list[2]
        assert put.args == ("PUT", "https://registry.example.com/v2/team/app/blobs/uploads/123")
        assert put.kwargs["params"] == {"digest": BLOB.digest}
        assert put.kwargs["data"] == BLOB_BYTES

    def test_upload_blob_skips_existing(self, registry, mock_session):
        mock_session.request.return_value = _response(status_code=200)
        registry.push(BLOB, BLOB_BYTES)
        assert mock_session.request.call_count == 1

    def test_upload_blob_missing_location(self, registry, mock_session):
        mock_session.request.side_effect = [
            _response(status_code=404),
            _response(status_code=202),
        ]
        with pytest.raises(RegistryConnectionError, match="No Location header"):
            registry.push(BLOB, BLOB_BYTES)

    def test_push_manifest_by_digest(self, registry, mock_session):
        mock_session.request.return_value = _response(
            status_code=201, headers={"Docker-Content-Digest": MANIFEST.digest}
        )
        registry.push(MANIFEST, MANIFEST_BYTES)

        method, url = mock_session.request.call_args.args
        assert method == "PUT"
        assert url.endswith(f"/manifests/{MANIFEST.digest}")
        headers = mock_session.request.call_args.kwargs["headers"]
        assert headers["Content-Type"] == media_types.OCI_MANIFEST

    def test_push_manifest_server_digest_mismatch(self, registry, mock_session):
        mock_session.request.return_value = _response(
            status_code=201, headers={"Docker-Content-Digest": "sha256:" + "f" * 64}
        )
        with pytest.raises(RegistryValidationError):
            registry.push(MANIFEST, MANIFEST_BYTES)

    def test_push_forbidden(self, registry, mock_session):
        mock_session.request.return_value = _response(status_code=403, content=b"denied")
        with pytest.raises(RegistryAuthError):
            registry.push_manifest(MANIFEST, MANIFEST_BYTES, "1.0")

    def test_tag_reputs_manifest_under_tag(self, registry, mock_session):
        mock_session.request.side_effect = [
            _response(content=MANIFEST_BYTES),
            _response(status_code=201),
        ]
        registry.tag(MANIFEST, "1.0")

        put = mock_session.request.call_args_list[1]
        assert put.args[1].endswith("/manifests/1.0")
        assert put.kwargs["data"] == MANIFEST_BYTES


class TestAuthentication:
    """Tests for challenge handling and credential validation."""

    def test_bearer_challenge(self, mock_session):
        registry = Registry(
            RepositoryRef.create("registry.example.com/team/app:1.0", "robot", "pw")
        )
        mock_session.request.side_effect = [
            _response(status_code=401, headers={"WWW-Authenticate": BEARER_CHALLENGE}),
            _response(content=BLOB_BYTES),
        ]
        mock_session.get.return_value = _response(json_data=TOKEN_RESPONSE)

        assert registry.fetch(BLOB) == BLOB_BYTES

        realm = mock_session.get.call_args.args[0]
        assert realm == "https://auth.example.com/token"
        params = mock_session.get.call_args.kwargs["params"]
        assert params["scope"] == "repository:workshops/content:pull,push"
        assert mock_session.get.call_args.kwargs["auth"] == ("robot", "pw")
        assert mock_session.headers["Authorization"] == "Bearer registry-token"

    def test_bearer_access_token(self, registry, mock_session):
        mock_session.request.side_effect = [
            _response(status_code=401, headers={"WWW-Authenticate": BEARER_CHALLENGE}),
            _response(content=BLOB_BYTES),
        ]
        mock_session.get.return_value = _response(json_data=ACCESS_TOKEN_RESPONSE)
        registry.fetch(BLOB)
        assert mock_session.get.call_args.kwargs["auth"] is None
        assert mock_session.headers["Authorization"] == "Bearer oauth-token"

    def test_token_endpoint_rejects_credentials(self, mock_session):
        registry = Registry(
            RepositoryRef.create("registry.example.com/team/app:1.0", "robot", "bad")
        )
        mock_session.request.return_value = _response(
            status_code=401, headers={"WWW-Authenticate": BEARER_CHALLENGE}
        )
        mock_session.get.return_value = _response(status_code=401)
        with pytest.raises(RegistryAuthError, match="invalid credentials"):
            registry.fetch(BLOB)

    def test_basic_challenge(self, mock_session):
        registry = Registry(
            RepositoryRef.create("registry.example.com/team/app:1.0", "robot", "pw")
        )
        mock_session.request.side_effect = [
            _response(status_code=401, headers={"WWW-Authenticate": 'Basic realm="x"'}),
            _response(content=BLOB_BYTES),
        ]
        registry.fetch(BLOB)
        assert isinstance(mock_session.auth, HTTPBasicAuth)
        assert mock_session.auth.username == "robot"

    def test_basic_challenge_without_credentials(self, registry, mock_session):
        mock_session.request.return_value = _response(
            status_code=401, headers={"WWW-Authenticate": 'Basic realm="x"'}
        )
        with pytest.raises(RegistryAuthError):
            registry.fetch(BLOB)
        assert mock_session.request.call_count == 1

    def test_validate_skipped_without_credentials(self, registry, mock_session):
        registry.validate_authentication()
        mock_session.request.assert_not_called()

    def test_validate_missing_tag_is_not_auth_failure(self, mock_session):
        registry = Registry(
            RepositoryRef.create("registry.example.com/team/app:new", "robot", "pw")
        )
        mock_session.request.return_value = _response(status_code=404)
        registry.validate_authentication()

    def test_validate_rejected_credentials(self, mock_session):
        registry = Registry(
            RepositoryRef.create("registry.example.com/team/app:1.0", "robot", "pw")
        )
        mock_session.request.return_value = _response(status_code=403, content=b"forbidden")
        with pytest.raises(RegistryAuthError, match="authentication failed"):
            registry.validate_authentication()

    def test_validate_server_error(self, mock_session):
        registry = Registry(
            RepositoryRef.create("registry.example.com/team/app:1.0", "robot", "pw")
        )
        mock_session.request.return_value = _response(status_code=500, content=b"boom")
        with pytest.raises(RegistryConnectionError, match="failed to access repository"):
            registry.validate_authentication()

    def test_connect_closes_on_failure(self, mock_session):
        mock_session.request.return_value = _response(status_code=401)
        with pytest.raises(RegistryAuthError):
            connect(RepositoryRef.create("registry.example.com/team/app:1.0", "robot", "pw"))
        mock_session.close.assert_called_once()
