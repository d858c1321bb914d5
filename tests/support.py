import json
from pathlib import Path

import requests

STABLE_URL = "https://pkgs.tailscale.com/stable/"
GITHUB_URL = "https://api.github.com/repos/tailscale/tailscale/releases/latest"
DIGEST = "3f1d2c4b5a69788796a5b4c3d2e1f0a9b8c7d6e5f4a3b2c1d0e9f8a7b6c5d4e3"

LISTING = """<html><body>
<a href="tailscale_1.90.6_amd64.tgz">tailscale_1.90.6_amd64.tgz</a>
<a href="tailscale_1.90.6_amd64.tgz.sha256">tailscale_1.90.6_amd64.tgz.sha256</a>
<a href="tailscale_1.92.0_amd64.tgz">tailscale_1.92.0_amd64.tgz</a>
<a href="tailscale_1.92.0_arm64.tgz">tailscale_1.92.0_arm64.tgz</a>
</body></html>
"""

SAMPLE_RECORD = {
    "name": "tailscale",
    "author": "HOMESERVER",
    "githubRepository": "homeserversltd/unraid-tailscale",
    "version": "2025.11.01",
    "tailscaleVersion": "tailscale_1.90.6_amd64",
    "tailscaleSHA256": "a" * 64,
    "packageVersion": "1.1.0",
    "packageSHA256": "b" * 64,
    "pluginDirectory": "/usr/local/emhttp/plugins/tailscale",
    "configDirectory": "/boot/config/plugins/tailscale",
    "minver": "6.11.0",
}


def make_response(status=200, text="", url=""):
    """A real requests.Response carrying a canned body."""
    r = requests.Response()
    r.status_code = status
    r._content = text.encode("utf-8")
    r.encoding = "utf-8"
    r.url = url
    r.reason = "OK" if status < 400 else "Error"
    return r


def json_response(payload, status=200, url=""):
    return make_response(status, json.dumps(payload), url)


class FakeSession:
    """Stands in for requests.Session; routes GETs by exact URL."""

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.requested = []

    def get(self, url, timeout=None):
        self.requested.append(url)
        outcome = self.routes.get(url)
        if outcome is None:
            return make_response(404, "not found", url)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def module_config(tmp_dir, **installation):
    """Module config pointing at a descriptor and tools dir under tmp_dir."""
    tmp_dir = Path(tmp_dir)
    install = {
        "stable_url": STABLE_URL,
        "github_api_url": GITHUB_URL,
        "architecture": "amd64",
        "artifact_extension": "tgz",
        "checksum_suffix": ".sha256",
        "request_timeout": 5,
        "listing_checksum_fallback": True,
    }
    install.update(installation)
    return {
        "metadata": {"schema_version": "1.0.0", "module_name": "tailscale"},
        "config": {
            "paths": {
                "config_file": str(tmp_dir / "plugin" / "tailscale.json"),
                "tools_dir": str(tmp_dir),
            },
            "build": {"shell": "sh", "script": "./build-plugin.sh"},
            "installation": install,
        },
    }


def write_record(path, record=None):
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(record or SAMPLE_RECORD, indent=4) + "\n")
    return path
