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
Config Store Component

Reads and rewrites the plugin descriptor (tools/plugin/tailscale.json):
- Typed PackageRecord with stable field order
- Whole-record atomic replace so version and checksum never diverge on disk
"""

import json
import os
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Union

from tailscale_updates.utils.index import log_message
from ..errors import ConfigUnreadable, ConfigUnwritable


# Attribute name -> descriptor key, in the order the descriptor is written
FIELD_KEYS = {
    "name": "name",
    "author": "author",
    "github_repository": "githubRepository",
    "version": "version",
    "tailscale_version": "tailscaleVersion",
    "tailscale_sha256": "tailscaleSHA256",
    "package_version": "packageVersion",
    "package_sha256": "packageSHA256",
    "plugin_directory": "pluginDirectory",
    "config_directory": "configDirectory",
    "minver": "minver",
}


@dataclass
class PackageRecord:
    """The packaged plugin's version descriptor."""
    name: str
    author: str
    github_repository: str
    version: str
    tailscale_version: str
    tailscale_sha256: str
    package_version: str
    package_sha256: str
    plugin_directory: str
    config_directory: str
    minver: str
    # Keys this tool does not manage, written back untouched
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PackageRecord":
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")

        values = {}
        for attr, key in FIELD_KEYS.items():
            if key not in data:
                raise ValueError(f"missing field '{key}'")
            if not isinstance(data[key], str):
                raise ValueError(f"field '{key}' must be a string")
            values[attr] = data[key]

        extra = {k: v for k, v in data.items() if k not in FIELD_KEYS.values()}
        return cls(extra=extra, **values)

    def to_dict(self) -> Dict[str, Any]:
        data = {key: getattr(self, attr) for attr, key in FIELD_KEYS.items()}
        data.update(self.extra)
        return data


class ConfigStore:
    """Loads and atomically persists a PackageRecord."""

    def __init__(self, config_path: Union[str, Path]):
        self.config_path = Path(config_path)

    def read(self) -> PackageRecord:
        """
        Parse the descriptor from disk.

        Raises:
            ConfigUnreadable: on any access, decode or shape failure
        """
        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            record = PackageRecord.from_dict(data)
        except (OSError, ValueError) as e:
            raise ConfigUnreadable(f"Cannot read {self.config_path}: {e}") from e

        log_message(f"[CONFIG] Loaded {self.config_path}", "DEBUG")
        return record

    def write(self, record: PackageRecord) -> None:
        """
        Replace the descriptor with the serialized record.

        The record is written to a temporary file beside the target and
        swapped in with os.replace, so readers see either the old or the
        new descriptor and never a partial one.

        Raises:
            ConfigUnwritable: if serialization, writing or the swap fails
        """
        tmp_path = None
        try:
            content = json.dumps(record.to_dict(), indent=4, ensure_ascii=False) + "\n"
            parent = self.config_path.parent
            with tempfile.NamedTemporaryFile('w', encoding='utf-8', delete=False, dir=parent,
                                             prefix=f".{self.config_path.name}.",
                                             suffix=".tmp") as tmp:
                tmp_path = Path(tmp.name)
                tmp.write(content)
                tmp.flush()
                os.fsync(tmp.fileno())

            if self.config_path.exists():
                shutil.copymode(self.config_path, tmp_path)
            else:
                os.chmod(tmp_path, 0o644)
            os.replace(tmp_path, self.config_path)
        except (OSError, TypeError, ValueError) as e:
            if tmp_path is not None:
                tmp_path.unlink(missing_ok=True)
            raise ConfigUnwritable(f"Cannot write {self.config_path}: {e}") from e

        log_message(f"[CONFIG] ✓ Wrote {self.config_path}")
