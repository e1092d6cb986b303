"""Tests for artifact classification and ManifestWrapper."""

import json

import pytest
import yaml
from pydantic import ValidationError

from artifact_cli.artifact.types import (
    ArtifactKind,
    ArtifactType,
    ManifestWrapper,
    detect_artifact_type,
)
from artifact_cli.registry import media_types
from artifact_cli.registry.models import Descriptor, ImageIndex, ImageManifest
from tests.fixtures.sample_data import DOCKER_MANIFEST, DOCKER_MANIFEST_LIST

pytestmark = pytest.mark.unit


class TestDetectArtifactType:
    """Tests for detect_artifact_type()."""

    @pytest.mark.parametrize(
        "media_type,expected",
        [
            (media_types.OCI_INDEX, ArtifactType.OCI_MULTI_PLATFORM),
            (media_types.OCI_MANIFEST, ArtifactType.OCI_SINGLE_PLATFORM),
            (media_types.DOCKER_MANIFEST_LIST, ArtifactType.DOCKER_MULTI_PLATFORM),
            (media_types.DOCKER_MANIFEST, ArtifactType.DOCKER_SINGLE_PLATFORM),
        ],
    )
    def test_known_media_types(self, media_type, expected):
        """Test each root media type maps to exactly one classification."""
        assert detect_artifact_type(media_type) == expected

    @pytest.mark.parametrize(
        "media_type",
        ["", "application/json", media_types.OCI_LAYER, "application/vnd.unknown+json"],
    )
    def test_unknown_media_types_are_undefined(self, media_type):
        """Test that anything else classifies as Undefined."""
        assert detect_artifact_type(media_type) == ArtifactType.UNDEFINED


class TestArtifactTypePredicates:
    """Tests for ArtifactType derived predicates."""

    def test_multi_platform(self):
        assert ArtifactType.OCI_MULTI_PLATFORM.is_multi_platform
        assert ArtifactType.DOCKER_MULTI_PLATFORM.is_multi_platform
        assert not ArtifactType.OCI_SINGLE_PLATFORM.is_multi_platform
        assert not ArtifactType.UNDEFINED.is_multi_platform

    def test_oci_and_docker(self):
        assert ArtifactType.OCI_SINGLE_PLATFORM.is_oci
        assert not ArtifactType.OCI_SINGLE_PLATFORM.is_docker
        assert ArtifactType.DOCKER_SINGLE_PLATFORM.is_docker
        assert not ArtifactType.UNDEFINED.is_oci
        assert not ArtifactType.UNDEFINED.is_docker

    def test_undefined_is_neither_single_nor_multi(self):
        assert not ArtifactType.UNDEFINED.is_single_platform
        assert not ArtifactType.UNDEFINED.is_multi_platform


class TestArtifactTypeText:
    """Tests for ArtifactType text encoding."""

    def test_str_is_name(self):
        assert str(ArtifactType.OCI_MULTI_PLATFORM) == "OCI-MultiPlatform"

    def test_decode_known_name(self):
        assert ArtifactType("Docker-SinglePlatform") == ArtifactType.DOCKER_SINGLE_PLATFORM

    def test_decode_unknown_name_is_undefined(self):
        """Test that unknown names decode to Undefined instead of failing."""
        assert ArtifactType("Something-Else") == ArtifactType.UNDEFINED

    def test_json_and_yaml_encode_as_text(self):
        assert json.dumps(ArtifactType.OCI_SINGLE_PLATFORM) == '"OCI-SinglePlatform"'
        assert yaml.safe_dump(ArtifactType.OCI_SINGLE_PLATFORM.value).strip() == "OCI-SinglePlatform"


class TestArtifactKind:
    def test_values(self):
        assert ArtifactKind("oci") == ArtifactKind.OCI
        assert ArtifactKind("imgpkg") == ArtifactKind.IMGPKG

    def test_educates_kind_is_not_offered(self):
        with pytest.raises(ValueError):
            ArtifactKind("educates")


class TestManifestWrapper:
    """Tests for ManifestWrapper."""

    def _manifest(self):
        config = Descriptor.from_bytes(media_types.OCI_CONFIG, b"{}")
        return ImageManifest(mediaType=media_types.OCI_MANIFEST, config=config)

    def test_wraps_manifest(self):
        wrapper = ManifestWrapper(manifest=self._manifest())
        assert wrapper.is_manifest()
        assert not wrapper.is_index()
        assert wrapper.get_media_type() == media_types.OCI_MANIFEST

    def test_wraps_index(self):
        wrapper = ManifestWrapper(index=ImageIndex(mediaType=media_types.OCI_INDEX))
        assert wrapper.is_index()
        assert not wrapper.is_manifest()
        assert wrapper.get_media_type() == media_types.OCI_INDEX

    def test_rejects_neither(self):
        with pytest.raises(ValidationError):
            ManifestWrapper()

    def test_rejects_both(self):
        with pytest.raises(ValidationError):
            ManifestWrapper(
                manifest=self._manifest(),
                index=ImageIndex(mediaType=media_types.OCI_INDEX),
            )

    def test_parse_docker_manifest_as_manifest(self):
        """Test that a Docker single-platform root parses as a manifest."""
        wrapper = ManifestWrapper.parse(
            ArtifactType.DOCKER_SINGLE_PLATFORM, json.dumps(DOCKER_MANIFEST).encode()
        )
        assert wrapper.is_manifest()
        assert wrapper.manifest.layers[0].mediaType == media_types.DOCKER_LAYER

    def test_parse_manifest_list_as_index(self):
        wrapper = ManifestWrapper.parse(
            ArtifactType.DOCKER_MULTI_PLATFORM, json.dumps(DOCKER_MANIFEST_LIST).encode()
        )
        assert wrapper.is_index()
        assert [str(p) for p in wrapper.index.platforms] == ["linux/amd64", "linux/arm64"]

    def test_parse_undefined_fails(self):
        with pytest.raises(ValueError):
            ManifestWrapper.parse(ArtifactType.UNDEFINED, b"{}")
