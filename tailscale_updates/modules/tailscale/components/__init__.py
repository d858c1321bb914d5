"""
HOMESERVER Tailscale Update Components
Copyright (C) 2024 HOMESERVER LLC

Component-based Tailscale plugin update system.
"""

from .version_source import VersionSource, GitHubRelease, select_latest
from .checksum_source import ChecksumSource, is_sha256_hex
from .config_store import ConfigStore, PackageRecord
from .build_manager import BuildManager

__all__ = [
    'VersionSource',
    'GitHubRelease',
    'select_latest',
    'ChecksumSource',
    'is_sha256_hex',
    'ConfigStore',
    'PackageRecord',
    'BuildManager'
]
