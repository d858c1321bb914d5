#!/usr/bin/env python3
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

import argparse
import logging
import os
import sys

from . import run_update, __version__
from .utils.index import log_message
from .modules.tailscale.index import MODULE_CONFIG, with_overrides

def setup_global_update_logging(debug: bool = False):
    """
    Log to stdout only; the calling CI job owns any persistence.
    """
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG if debug else logging.INFO)
    unified_format = logging.Formatter('[%(asctime)s] [%(levelname)s] %(message)s',
                                       datefmt='%Y-%m-%d %H:%M:%S')
    console_handler.setFormatter(unified_format)
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    for h in list(root_logger.handlers):
        root_logger.removeHandler(h)
    root_logger.addHandler(console_handler)
    # urllib3 connection chatter is noise at DEBUG
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.info("="*80)
    logging.info(f"TAILSCALE UPDATE CHECK STARTED (tailscale-updates {__version__})")
    logging.info(f"Command: {' '.join(sys.argv)}")
    logging.info(f"Working Directory: {os.getcwd()}")
    logging.info(f"Python Version: {sys.version}")
    logging.info("="*80)

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Tailscale plugin update checker")
    parser.add_argument("--config-path", default=None,
                       help="Plugin descriptor to check and rewrite (default: from index.json)")
    parser.add_argument("--tools-dir", default=None,
                       help="Packaging tools directory the build script runs in")
    parser.add_argument("--build-script", default=None,
                       help="Build script, relative to the tools directory")
    parser.add_argument("--check-only", action="store_true",
                       help="Only check for a newer release, don't rewrite or build")
    parser.add_argument("--skip-build", action="store_true",
                       help="Rewrite the descriptor but don't run the build script")
    parser.add_argument("--show-version", action="store_true",
                       help="Print the packaged Tailscale version and exit")
    parser.add_argument("--show-config", action="store_true",
                       help="Print the effective module configuration and exit")
    parser.add_argument("--debug", action="store_true",
                       help="Verbose logging")
    return parser

def module_args(args: argparse.Namespace) -> list:
    """Translate CLI flags into the update module's argument list."""
    if args.show_config:
        return ["--config"]
    if args.show_version:
        return ["--version"]
    if args.check_only:
        return ["--check"]
    if args.skip_build:
        return ["--skip-build"]
    return []

def main(argv=None):
    """
    Main entry point for the Tailscale update checker.
    Exits 0 when the plugin is current or was updated, 1 on any failure.
    """
    args = build_parser().parse_args(argv)

    try:
        setup_global_update_logging(args.debug)

        config = with_overrides(MODULE_CONFIG, args.config_path, args.tools_dir, args.build_script)
        result = run_update("tailscale", module_args(args), config=config)

        if not isinstance(result, dict) or not result.get("success"):
            log_message("✗ Tailscale update failed", "ERROR")
            sys.exit(1)

        log_message("Tailscale update check completed successfully")
        sys.exit(0)

    except KeyboardInterrupt:
        log_message("Update process interrupted by user", "WARNING")
        sys.exit(130)

if __name__ == "__main__":
    main()
