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

Checks pkgs.tailscale.com for a newer stable Tailscale release and, when one
exists, rewrites the plugin descriptor and rebuilds the plugin package.

Workflow states:
    start -> config_loaded -> version_checked -> up_to_date
                                              -> update_pending -> checksum_fetched
                                                 -> config_written -> build_complete -> done
Any state may end in failed. Nothing is retried or rolled back.
"""

import copy
import datetime
import json
import os
import re
from typing import Any, Callable, Dict

import requests

from tailscale_updates.utils.index import log_message, get_module_version
from .components import VersionSource, ChecksumSource, ConfigStore, BuildManager
from .errors import TailscaleUpdateError

DEFAULT_CONFIG = {
    "metadata": {
        "schema_version": "1.0.0",
        "module_name": "tailscale"
    },
    "config": {
        "paths": {
            "config_file": "./tools/plugin/tailscale.json",
            "tools_dir": "./tools"
        },
        "build": {
            "shell": "sh",
            "script": "./build-plugin.sh"
        },
        "installation": {
            "stable_url": "https://pkgs.tailscale.com/stable/",
            "github_api_url": "https://api.github.com/repos/tailscale/tailscale/releases/latest",
            "architecture": "amd64",
            "artifact_extension": "tgz",
            "checksum_suffix": ".sha256",
            "request_timeout": 30,
            "listing_checksum_fallback": True
        }
    }
}

# Load module configuration from index.json
def load_module_config():
    """
    Load configuration from the module's index.json file.
    Returns:
        dict: Configuration data or default values if loading fails
    """
    try:
        config_path = os.path.join(os.path.dirname(__file__), "index.json")
        with open(config_path, 'r') as f:
            return json.load(f)
    except Exception as e:
        log_message(f"Failed to load module config: {e}", "WARNING")
        return copy.deepcopy(DEFAULT_CONFIG)

# Global configuration
MODULE_CONFIG = load_module_config()

def with_overrides(config: Dict[str, Any], config_path: str = None,
                   tools_dir: str = None, build_script: str = None) -> Dict[str, Any]:
    """Return a copy of config with per-run path overrides applied."""
    merged = copy.deepcopy(config)
    cfg = merged.setdefault("config", {})
    if config_path:
        cfg.setdefault("paths", {})["config_file"] = config_path
    if tools_dir:
        cfg.setdefault("paths", {})["tools_dir"] = tools_dir
    if build_script:
        cfg.setdefault("build", {})["script"] = build_script
    return merged

def extract_version(identifier: str, architecture: str = "amd64") -> str:
    """
    Extract the semantic version from an identifier like "tailscale_1.90.6_amd64".

    A malformed identifier yields "" rather than an error. "" never equals a
    fetched version, so malformed stored state always leads to an update.
    """
    match = re.search(rf"tailscale_(\d+\.\d+\.\d+)_{re.escape(architecture)}", identifier or "")
    return match.group(1) if match else ""

def date_stamp(day: datetime.date) -> str:
    """Format a date as the plugin's YYYY.MM.DD release tag."""
    return day.strftime("%Y.%m.%d")


class TailscaleUpdater:
    """Single-pass update check, descriptor rewrite and plugin build."""

    def __init__(self, config: Dict[str, Any] = None, session: requests.Session = None,
                 today: Callable[[], datetime.date] = None):
        self.config = config if config is not None else MODULE_CONFIG
        cfg = self.config.get("config", {})
        installation = cfg.get("installation", {})
        self.architecture = installation.get("architecture", "amd64")
        self.extension = installation.get("artifact_extension", "tgz")
        self.today = today or datetime.date.today
        self.session = session or requests.Session()

        self.config_store = ConfigStore(cfg.get("paths", {}).get("config_file", "./tools/plugin/tailscale.json"))
        self.version_source = VersionSource(self.config, self.session)
        self.checksum_source = ChecksumSource(self.config, self.session)
        self.build_manager = BuildManager(self.config)
        self.state = "start"

    def _transition(self, state: str):
        log_message(f"State: {self.state} -> {state}", "DEBUG")
        self.state = state

    def identifier_for(self, version: str) -> str:
        return f"tailscale_{version}_{self.architecture}"

    def artifact_for(self, version: str) -> str:
        return f"{self.identifier_for(version)}.{self.extension}"

    def current_version(self) -> str:
        """Version currently packaged, "" if the stored identifier is malformed."""
        record = self.config_store.read()
        return extract_version(record.tailscale_version, self.architecture)

    def check(self) -> Dict[str, Any]:
        """
        Report whether an update is available without writing or building.
        Returns:
            dict: success, update_available, current_version, latest_version
        """
        result = {
            "success": False,
            "update_available": False,
            "current_version": None,
            "latest_version": None
        }
        try:
            current = self.current_version()
            result["current_version"] = current
            log_message(f"Current Tailscale version: {current or 'unknown'}")

            latest = self.version_source.latest_version()
            result["latest_version"] = latest
        except TailscaleUpdateError as e:
            log_message(f"{e.reason}: {e}", "ERROR")
            result["error"] = e.reason
            result["message"] = str(e)
            return result

        result["success"] = True
        result["update_available"] = current != latest
        if result["update_available"]:
            log_message(f"Update available: {current or 'unknown'} → {latest}")
        else:
            log_message("Tailscale is already up to date")
        return result

    def update(self, skip_build: bool = False) -> Dict[str, Any]:
        """
        Run the full workflow.
        Args:
            skip_build: stop after the descriptor is rewritten
        Returns:
            dict: success, updated, state and version details; error/message on failure
        """
        self.state = "start"
        result = {
            "success": False,
            "updated": False,
            "state": self.state,
            "current_version": None,
            "latest_version": None
        }

        try:
            record = self.config_store.read()
            self._transition("config_loaded")

            current = extract_version(record.tailscale_version, self.architecture)
            result["current_version"] = current
            if not current:
                log_message(f"Stored identifier '{record.tailscale_version}' is not recognised; treating as outdated",
                            "WARNING")
            log_message(f"Current Tailscale version: {current or 'unknown'}")

            latest = self.version_source.latest_version()
            result["latest_version"] = latest
            self._transition("version_checked")

            if current == latest:
                self._transition("up_to_date")
                log_message("✓ Tailscale is already up to date!")
                result["success"] = True
                result["state"] = self.state
                return result

            self._transition("update_pending")
            log_message(f"→ Update available: {current or 'unknown'} → {latest}")

            digest = self.checksum_source.checksum(self.artifact_for(latest))
            self._transition("checksum_fetched")
            log_message(f"SHA256: {digest}")

            record.version = date_stamp(self.today())
            record.tailscale_version = self.identifier_for(latest)
            record.tailscale_sha256 = digest
            self.config_store.write(record)
            self._transition("config_written")
            result["updated"] = True
            result["version"] = record.version

            if skip_build:
                log_message("Skipping plugin build as requested", "WARNING")
            else:
                self.build_manager.run()
                self._transition("build_complete")

            self._transition("done")
            log_message("✓ Update completed successfully!")
            result["success"] = True

        except TailscaleUpdateError as e:
            log_message(f"{e.reason} during '{self.state}': {e}", "ERROR")
            self._transition("failed")
            result["error"] = e.reason
            result["message"] = str(e)

        result["state"] = self.state
        return result


def main(args=None, config: Dict[str, Any] = None):
    """
    Main entry point for the Tailscale update module.
    Args:
        args: List of arguments (supports '--version', '--check', '--config', '--skip-build')
        config: Module configuration, defaults to index.json
    Returns:
        dict: Status and results of the update
    """
    if args is None:
        args = []
    if config is None:
        config = MODULE_CONFIG

    with requests.Session() as session:
        return _dispatch(TailscaleUpdater(config, session=session), args, config)


def _dispatch(updater: TailscaleUpdater, args, config: Dict[str, Any]):
    # --config mode: show current configuration
    if "--config" in args:
        log_message("Current Tailscale module configuration:")
        log_message(f"  Schema version: {get_module_version(os.path.dirname(__file__))}")
        log_message(f"  Descriptor: {updater.config_store.config_path}")
        log_message(f"  Tools dir: {updater.build_manager.tools_dir}")
        log_message(f"  Build command: {' '.join(updater.build_manager.command)}")
        log_message(f"  Stable listing: {updater.version_source.stable_url}")
        log_message(f"  Release API: {updater.version_source.github_api_url}")
        log_message(f"  Architecture: {updater.architecture}")
        return {"success": True, "config": config}

    # --version mode: report the packaged version without touching the network
    if "--version" in args:
        try:
            version = updater.current_version()
        except TailscaleUpdateError as e:
            log_message(f"{e.reason}: {e}", "ERROR")
            return {"success": False, "error": e.reason, "message": str(e)}
        log_message(f"Packaged Tailscale version: {version or 'unknown'}")
        return {"success": True, "version": version}

    if "--check" in args:
        return updater.check()

    log_message("Starting Tailscale module update...")
    return updater.update(skip_build="--skip-build" in args)
