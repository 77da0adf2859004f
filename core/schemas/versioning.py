"""
Schemas
File: versioning.py

Purpose: Centralize leaf codec version constants.
This file must remain tiny and have no imports from other schema files
to avoid circular dependencies.

The leaf codec version is FROZEN. Any change to field order, number
formatting or null sentinels invalidates every previously anchored batch
and must ship as a new version string.
"""

from typing import Literal

# Leaf serialization format version
CODEC_VERSION: str = "v1"

CodecVersion = Literal["v1"]

SUPPORTED_CODEC_VERSIONS: frozenset[str] = frozenset({"v1"})


class UnsupportedCodecVersionError(ValueError):
    """Raised when an unsupported leaf codec version is encountered."""

    def __init__(self, version: str, supported: frozenset[str] | None = None) -> None:
        self.version = version
        self.supported = supported or SUPPORTED_CODEC_VERSIONS
        super().__init__(
            f"Unsupported codec version: '{version}'. "
            f"Supported versions: {sorted(self.supported)}"
        )


def assert_supported_codec_version(version: str) -> None:
    """
    Validate that the given codec version is supported.

    Raises:
        UnsupportedCodecVersionError: If the version is not supported.
    """
    if version not in SUPPORTED_CODEC_VERSIONS:
        raise UnsupportedCodecVersionError(version)

