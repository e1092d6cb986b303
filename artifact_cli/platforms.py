"""Platform strings: parsing, validation and the host platform."""

import platform as _platform
import sys
from typing import List, Optional

from artifact_cli.errors import InvalidPlatformError
from artifact_cli.registry.models import Platform

DEFAULT_PLATFORMS = ["linux/amd64", "linux/arm64"]

SUPPORTED_PLATFORMS = ["linux/amd64", "linux/arm64", "darwin/amd64", "darwin/arm64"]

# Python reports machine names the way the kernel does; registries use Go names
_ARCH_ALIASES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv7l": "arm",
    "i386": "386",
    "i686": "386",
    "ppc64le": "ppc64le",
    "s390x": "s390x",
}

_OS_ALIASES = {
    "win32": "windows",
    "cygwin": "windows",
}


def split_platforms(platforms: Optional[str]) -> List[str]:
    """Split a comma-separated platform list, dropping blanks."""
    if not platforms:
        return []
    return [part.strip() for part in platforms.split(",") if part.strip()]


def parse_platform(platform: str) -> Platform:
    """
    Parse an "os/arch" string.

    Raises:
        InvalidPlatformError: If the string is not exactly two non-empty parts
    """
    parts = platform.strip().split("/")
    if len(parts) != 2 or not all(parts):
        raise InvalidPlatformError(
            f"invalid platform format: {platform} (expected format: os/arch)"
        )
    return Platform(os=parts[0], architecture=parts[1])


def validate_platforms(platforms: List[str]) -> List[Platform]:
    """
    Parse platforms and check each one against the supported set.

    Raises:
        InvalidPlatformError: On a malformed or unsupported platform
    """
    parsed = []
    for value in platforms:
        spec = parse_platform(value)
        if str(spec) not in SUPPORTED_PLATFORMS:
            raise InvalidPlatformError(f"unsupported platform: {value}")
        parsed.append(spec)
    return parsed


def host_platform() -> str:
    """Platform of the running interpreter as "os/arch"."""
    os_name = _OS_ALIASES.get(sys.platform, sys.platform)
    machine = _platform.machine().lower()
    return f"{os_name}/{_ARCH_ALIASES.get(machine, machine)}"


def default_push_platforms() -> List[str]:
    """Built-in platforms plus the host platform when it is not among them."""
    platforms = list(DEFAULT_PLATFORMS)
    current = host_platform()
    if current not in platforms:
        platforms.append(current)
    return platforms
