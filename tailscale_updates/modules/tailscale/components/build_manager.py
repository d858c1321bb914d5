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
Build Manager Component

Runs the plugin build script from the packaging-tools directory. The
script resolves its inputs relative to that directory, so cwd matters.
"""

import subprocess
from pathlib import Path
from typing import Any, Dict, List

from tailscale_updates.utils.index import log_message
from ..errors import BuildFailed


class BuildManager:
    """Invokes tools/build-plugin.sh and surfaces its output."""
    
    def __init__(self, config: Dict[str, Any]):
        cfg = config.get('config', {})
        self.tools_dir = Path(cfg.get('paths', {}).get('tools_dir', "./tools"))
        self.script = cfg.get('build', {}).get('script', "./build-plugin.sh")
        self.shell = cfg.get('build', {}).get('shell', "sh")

    @property
    def command(self) -> List[str]:
        return [self.shell, self.script]

    def run(self) -> int:
        """
        Run the build script to completion.

        Returns:
            int: The script's exit code (always 0; nonzero raises)

        Raises:
            BuildFailed: if the script cannot be started or exits nonzero
        """
        log_message(f"[BUILD] Executing {self.script} in {self.tools_dir}...")

        try:
            result = subprocess.run(
                self.command,
                cwd=self.tools_dir,
                capture_output=True,
                encoding="utf-8",
                errors="replace"
            )
        except OSError as e:
            raise BuildFailed(f"Error executing build script: {e}") from e

        self._echo(result.stdout, "INFO")
        self._echo(result.stderr, "WARNING")

        if result.returncode != 0:
            raise BuildFailed(f"Build failed with exit code {result.returncode}",
                              returncode=result.returncode)

        log_message("[BUILD] ✓ Build completed successfully")
        return result.returncode

    @staticmethod
    def _echo(output: str, level: str) -> None:
        if not output:
            return
        for line in output.rstrip('\n').split('\n'):
            log_message(f"[BUILD]   {line}", level)
