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
HOMESERVER Tailscale Update Module

Keeps the Tailscale plugin descriptor in step with the latest stable
Tailscale release and rebuilds the plugin when it changes.

Usage:
    from tailscale_updates.modules.tailscale import TailscaleUpdater
    
    updater = TailscaleUpdater()
    result = updater.update()
    if result["success"]:
        print(f"Finished in state {result['state']}")
    else:
        print(f"Update failed: {result['message']}")
"""

from .index import TailscaleUpdater, main, load_module_config, extract_version
from .errors import (
    TailscaleUpdateError,
    ConfigUnreadable,
    ConfigUnwritable,
    VersionUnavailable,
    ChecksumUnavailable,
    BuildFailed
)

__all__ = [
    'TailscaleUpdater',
    'main',
    'load_module_config',
    'extract_version',
    'TailscaleUpdateError',
    'ConfigUnreadable',
    'ConfigUnwritable',
    'VersionUnavailable',
    'ChecksumUnavailable',
    'BuildFailed'
]
