"""
HOMESERVER Update Management System
Copyright (C) 2024 HOMESERVER LLC

This program is free software: you can redistribute it and/or modify
it under the terms of the GNU General Public License as published by
the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.

This program is distributed in the hope that it will be useful,
but WITHOUT ANY WARRANTY; without even the implied warranty of
MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
GNU General Public License for more details.

You should have received a copy of the GNU General Public License
along with this program.  If not, see <https://www.gnu.org/licenses/>.
"""

"""
Version Source Component

Determines the latest stable Tailscale release:
- Primary: scan the pkgs.tailscale.com stable listing for artifact filenames
- Fallback: the GitHub releases API's latest tag
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

import requests
from packaging.version import InvalidVersion, Version

from tailscale_updates.utils.index import log_message
from ..errors import VersionUnavailable


@dataclass
class GitHubRelease:
    """The one field of the GitHub release payload this tool relies on."""
    tag_name: str

    @classmethod
    def from_json(cls, data: Any) -> "GitHubRelease":
        if not isinstance(data, dict):
            raise ValueError("release payload is not a JSON object")
        tag_name = data.get("tag_name")
        if not isinstance(tag_name, str) or not tag_name:
            raise ValueError("release payload has no tag_name")
        return cls(tag_name=tag_name)

    @property
    def version(self) -> str:
        """Tag with a single leading non-numeric prefix removed (v1.92.0 -> 1.92.0)."""
        tag = self.tag_name.strip()
        if tag and not tag[0].isdigit():
            return tag[1:]
        return tag


def artifact_pattern(architecture: str = "amd64", extension: str = "tgz"):
    """Regex matching tailscale_<major>.<minor>.<patch>_<arch>.<ext> with the version captured."""
    return re.compile(
        rf"tailscale_(\d+\.\d+\.\d+)_{re.escape(architecture)}\.{re.escape(extension)}"
    )


def select_latest(versions: Iterable[str]) -> Optional[str]:
    """
    Pick the highest dotted-numeric version.

    Components compare as integers left to right and a missing trailing
    component counts as 0, so 1.90.10 beats 1.90.6 and 1.90 equals 1.90.0.
    """
    unique = set(versions)
    if not unique:
        return None
    return max(unique, key=Version)


class VersionSource:
    """Looks up the latest upstream Tailscale version."""

    def __init__(self, config: Dict[str, Any], session: requests.Session = None):
        installation = config.get('config', {}).get('installation', {})
        self.stable_url = installation.get('stable_url', "https://pkgs.tailscale.com/stable/")
        self.github_api_url = installation.get(
            'github_api_url', "https://api.github.com/repos/tailscale/tailscale/releases/latest")
        self.architecture = installation.get('architecture', "amd64")
        self.extension = installation.get('artifact_extension', "tgz")
        self.timeout = installation.get('request_timeout', 30)
        self.session = session or requests.Session()

    def latest_version(self) -> str:
        """
        Return the latest stable version, e.g. "1.92.0".

        Raises:
            VersionUnavailable: if both the listing and the release API fail
        """
        version = self._from_stable_listing()
        if version:
            return version

        log_message("[VERSION] Trying GitHub API as fallback...")
        version = self._from_github_release()
        if version:
            return version

        raise VersionUnavailable(
            f"Could not determine latest Tailscale version from {self.stable_url} or {self.github_api_url}")

    def _from_stable_listing(self) -> Optional[str]:
        log_message(f"[VERSION] Fetching latest Tailscale version from {self.stable_url}...")
        try:
            r = self.session.get(self.stable_url, timeout=self.timeout)
            r.raise_for_status()
        except requests.RequestException as e:
            log_message(f"[VERSION] Error fetching stable listing: {e}", "ERROR")
            return None

        pattern = artifact_pattern(self.architecture, self.extension)
        try:
            latest = select_latest(pattern.findall(r.text))
        except InvalidVersion as e:
            log_message(f"[VERSION] Unparseable version in stable listing: {e}", "ERROR")
            return None

        if latest is None:
            log_message("[VERSION] Could not find any Tailscale versions in the stable listing", "ERROR")
            return None

        log_message(f"[VERSION] Latest Tailscale version: {latest}")
        return latest

    def _from_github_release(self) -> Optional[str]:
        log_message(f"[VERSION] Fetching latest Tailscale release from {self.github_api_url}...")
        try:
            r = self.session.get(self.github_api_url, timeout=self.timeout)
            r.raise_for_status()
            release = GitHubRelease.from_json(r.json())
        except (requests.RequestException, ValueError) as e:
            log_message(f"[VERSION] Error fetching from GitHub: {e}", "ERROR")
            return None

        version = release.version
        if not version:
            log_message(f"[VERSION] Release tag '{release.tag_name}' carries no version", "ERROR")
            return None

        log_message(f"[VERSION] Latest version from GitHub: {version}")
        return version
