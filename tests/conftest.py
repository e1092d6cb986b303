"""Shared fixtures for tests."""

import logging
import os

import pytest

from artifact_cli.logging_config import ROOT_LOGGER_NAME
from artifact_cli.registry import media_types
from artifact_cli.registry.models import Descriptor, ImageIndex, ImageManifest
from artifact_cli.registry.reference import ENV_PASSWORD, ENV_USERNAME, RepositoryRef
from artifact_cli.registry.store import MemoryStore


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep credentials from the developer's shell out of tests."""
    monkeypatch.delenv(ENV_USERNAME, raising=False)
    monkeypatch.delenv(ENV_PASSWORD, raising=False)


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo handlers installed by CLI runs so later tests log normally."""
    yield
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def content_dir(tmp_path):
    """
    Folder to publish:

        README.md
        workshop/a.md
        workshop/secret.txt
        workshop/scripts/run.sh   (0755)
        other/file
    """
    root = tmp_path / "content"
    (root / "workshop" / "scripts").mkdir(parents=True)
    (root / "other").mkdir()
    (root / "README.md").write_text("# Workshop\n")
    (root / "workshop" / "a.md").write_text("lesson a\n")
    (root / "workshop" / "secret.txt").write_text("do not ship\n")
    run = root / "workshop" / "scripts" / "run.sh"
    run.write_text("#!/bin/sh\necho hello\n")
    os.chmod(run, 0o755)
    (root / "other" / "file").write_text("other\n")
    return root


@pytest.fixture
def store() -> MemoryStore:
    """Empty in-memory store used as the registry."""
    return MemoryStore()


@pytest.fixture
def repo_ref() -> RepositoryRef:
    return RepositoryRef.create("localhost:5000/workshops/content:1.0")


def push_bytes(store, media_type: str, content: bytes, platform=None) -> Descriptor:
    descriptor = Descriptor.from_bytes(media_type, content, platform)
    store.push(descriptor, content)
    return descriptor


def push_manifest(store, layers, media_type=media_types.OCI_MANIFEST, annotations=None):
    """Push a manifest over already-pushed layers with an empty config."""
    config = push_bytes(store, media_types.OCI_CONFIG, media_types.EMPTY_CONFIG_BYTES)
    manifest = ImageManifest(
        mediaType=media_type, config=config, layers=layers, annotations=annotations
    )
    return push_bytes(store, media_type, manifest.to_bytes())


def push_index(store, manifests, media_type=media_types.OCI_INDEX):
    index = ImageIndex(mediaType=media_type, manifests=manifests)
    return push_bytes(store, media_type, index.to_bytes())


@pytest.fixture
def registry_helpers():
    """Functions for seeding a MemoryStore with hand-built artifacts."""

    class Helpers:
        blob = staticmethod(push_bytes)
        manifest = staticmethod(push_manifest)
        index = staticmethod(push_index)

    return Helpers
