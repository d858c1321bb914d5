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
Checksum Source Component

Fetches the published SHA-256 digest for a Tailscale artifact. The
{artifact}.sha256 resource next to the artifact is authoritative; scanning
the stable listing is a best-effort fallback for when that resource is missing.
"""

import re
from typing import Any, Dict, Optional

import requests

from tailscale_updates.utils.index import log_message
from ..errors import ChecksumUnavailable

SHA256_RE = re.compile(r"^[0-9a-fA-F]{64}$")
SHA256_SEARCH_RE = re.compile(r"(?<![0-9a-fA-F])([0-9a-fA-F]{64})(?![0-9a-fA-F])")


def is_sha256_hex(token: str) -> bool:
    """True if token is exactly 64 hexadecimal characters."""
    return bool(token) and SHA256_RE.match(token) is not None


def parse_checksum_body(body: str) -> Optional[str]:
    """Return the first whitespace-delimited token of a .sha256 body ("hash  filename")."""
    tokens = body.split()
    return tokens[0] if tokens else None


class ChecksumSource:
    """Retrieves artifact digests from the stable package server."""

    def __init__(self, config: Dict[str, Any], session: requests.Session = None):
        installation = config.get('config', {}).get('installation', {})
        self.stable_url = installation.get('stable_url', "https://pkgs.tailscale.com/stable/")
        self.suffix = installation.get('checksum_suffix', ".sha256")
        self.timeout = installation.get('request_timeout', 30)
        self.listing_fallback = installation.get('listing_checksum_fallback', True)
        self.session = session or requests.Session()

    def checksum(self, artifact_name: str) -> str:
        """
        Return the lower-case hex SHA-256 digest for artifact_name.

        Raises:
            ChecksumUnavailable: on transport failure, a non-success response
                with no usable fallback, or a digest that is not 64 hex chars
        """
        url = f"{self.stable_url}{artifact_name}{self.suffix}"
        log_message(f"[CHECKSUM] Fetching SHA256 for {artifact_name}...")

        try:
            r = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise ChecksumUnavailable(f"Error fetching {url}: {e}") from e

        if r.ok:
            token = parse_checksum_body(r.text)
            if not is_sha256_hex(token):
                raise ChecksumUnavailable(
                    f"Invalid SHA256 for {artifact_name} from {url}: {token!r}")
            return token.lower()

        log_message(f"[CHECKSUM] {url} returned {r.status_code}", "WARNING")
        if self.listing_fallback:
            digest = self._from_listing(artifact_name)
            if digest:
                return digest

        raise ChecksumUnavailable(f"Could not find SHA256 for {artifact_name}")

    def _from_listing(self, artifact_name: str) -> Optional[str]:
        log_message(f"[CHECKSUM] Searching {self.stable_url} for a digest near {artifact_name}...")
        try:
            r = self.session.get(self.stable_url, timeout=self.timeout)
            r.raise_for_status()
        except requests.RequestException as e:
            log_message(f"[CHECKSUM] Error fetching stable listing: {e}", "ERROR")
            return None

        for line in r.text.splitlines():
            if artifact_name not in line:
                continue
            match = SHA256_SEARCH_RE.search(line)
            if match:
                log_message("[CHECKSUM] Found digest in stable listing", "WARNING")
                return match.group(1).lower()

        return None
