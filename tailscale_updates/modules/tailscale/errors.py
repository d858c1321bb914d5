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
Failure taxonomy for the Tailscale update workflow.

Every error is terminal: the updater logs it and exits without retrying.
"""


class TailscaleUpdateError(Exception):
    """Base class for Tailscale update failures."""
    reason = "TailscaleUpdateError"


class ConfigUnreadable(TailscaleUpdateError):
    """The plugin descriptor could not be read or parsed."""
    reason = "ConfigUnreadable"


class ConfigUnwritable(TailscaleUpdateError):
    """The plugin descriptor could not be rewritten."""
    reason = "ConfigUnwritable"


class VersionUnavailable(TailscaleUpdateError):
    """Neither the stable listing nor the release API produced a version."""
    reason = "VersionUnavailable"


class ChecksumUnavailable(TailscaleUpdateError):
    """No valid SHA-256 digest could be obtained for the artifact."""
    reason = "ChecksumUnavailable"


class BuildFailed(TailscaleUpdateError):
    """The plugin build script exited with a nonzero status."""
    reason = "BuildFailed"

    def __init__(self, message: str, returncode: int = None):
        super().__init__(message)
        self.returncode = returncode
