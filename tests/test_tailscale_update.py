import datetime
import json
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from tailscale_updates.modules.tailscale import index as tailscale_index
from tailscale_updates.modules.tailscale.index import TailscaleUpdater, date_stamp, extract_version, with_overrides
from tailscale_updates.modules.tailscale.errors import BuildFailed
from tailscale_updates.utils.index import get_module_version

from support import (
    DIGEST,
    GITHUB_URL,
    LISTING,
    SAMPLE_RECORD,
    STABLE_URL,
    FakeSession,
    json_response,
    make_response,
    module_config,
    write_record,
)

TODAY = datetime.date(2026, 10, 16)
SHA_URL = f"{STABLE_URL}tailscale_1.92.0_amd64.tgz.sha256"


class TestHelpers(unittest.TestCase):
    def test_extract_version(self):
        self.assertEqual(extract_version("tailscale_1.90.6_amd64"), "1.90.6")
        self.assertEqual(extract_version("tailscale_1.90.6_arm64"), "")
        self.assertEqual(extract_version("tailscale-latest"), "")
        self.assertEqual(extract_version(""), "")

    def test_date_stamp(self):
        self.assertEqual(date_stamp(datetime.date(2026, 1, 5)), "2026.01.05")

    def test_overrides_do_not_touch_base_config(self):
        base = module_config("/tmp")
        merged = with_overrides(base, config_path="/x/tailscale.json", tools_dir="/x", build_script="./b.sh")
        self.assertEqual(merged["config"]["paths"]["config_file"], "/x/tailscale.json")
        self.assertEqual(merged["config"]["paths"]["tools_dir"], "/x")
        self.assertEqual(merged["config"]["build"]["script"], "./b.sh")
        self.assertNotEqual(base["config"]["paths"]["tools_dir"], "/x")

    def test_module_schema_version(self):
        self.assertEqual(get_module_version(os.path.dirname(tailscale_index.__file__)), "1.0.0")
        self.assertEqual(get_module_version("/nonexistent/module"), "unknown")

    def test_shipped_module_config_loads(self):
        config = tailscale_index.load_module_config()
        self.assertEqual(config["metadata"]["module_name"], "tailscale")
        self.assertEqual(config["config"]["installation"]["architecture"], "amd64")


class TestTailscaleUpdater(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        self.config = module_config(self.tmp)
        self.descriptor = Path(self.config["config"]["paths"]["config_file"])

    def tearDown(self):
        self._tmp.cleanup()

    def make_updater(self, routes, record=None):
        write_record(self.descriptor, record)
        updater = TailscaleUpdater(self.config, session=FakeSession(routes), today=lambda: TODAY)
        updater.build_manager.run = mock.Mock(return_value=0)
        return updater

    def stored(self):
        return json.loads(self.descriptor.read_text())

    def test_up_to_date_makes_no_changes(self):
        listing = "tailscale_1.90.6_amd64.tgz tailscale_1.88.0_amd64.tgz"
        updater = self.make_updater({STABLE_URL: make_response(200, listing, STABLE_URL)})
        before = self.descriptor.read_text()

        with mock.patch.object(updater.config_store, "write") as write:
            result = updater.update()

        self.assertTrue(result["success"])
        self.assertFalse(result["updated"])
        self.assertEqual(result["state"], "up_to_date")
        write.assert_not_called()
        updater.build_manager.run.assert_not_called()
        self.assertEqual(self.descriptor.read_text(), before)

    def test_update_rewrites_descriptor_and_builds(self):
        updater = self.make_updater({
            STABLE_URL: make_response(200, LISTING, STABLE_URL),
            SHA_URL: make_response(200, f"{DIGEST}  tailscale_1.92.0_amd64.tgz\n", SHA_URL),
        })

        result = updater.update()

        self.assertTrue(result["success"])
        self.assertTrue(result["updated"])
        self.assertEqual(result["state"], "done")
        self.assertEqual((result["current_version"], result["latest_version"]), ("1.90.6", "1.92.0"))
        stored = self.stored()
        self.assertEqual(stored["tailscaleVersion"], "tailscale_1.92.0_amd64")
        self.assertEqual(stored["tailscaleSHA256"], DIGEST)
        self.assertEqual(stored["version"], "2026.10.16")
        for key in ("name", "packageVersion", "packageSHA256", "pluginDirectory", "configDirectory", "minver"):
            self.assertEqual(stored[key], SAMPLE_RECORD[key])
        updater.build_manager.run.assert_called_once_with()

    def test_invalid_checksum_fails_without_write(self):
        updater = self.make_updater({
            STABLE_URL: make_response(200, LISTING, STABLE_URL),
            SHA_URL: make_response(200, "abc123  tailscale_1.92.0_amd64.tgz\n", SHA_URL),
        })
        before = self.descriptor.read_text()

        result = updater.update()

        self.assertFalse(result["success"])
        self.assertEqual(result["state"], "failed")
        self.assertEqual(result["error"], "ChecksumUnavailable")
        self.assertEqual(self.descriptor.read_text(), before)
        updater.build_manager.run.assert_not_called()

    def test_malformed_identifier_forces_update(self):
        record = dict(SAMPLE_RECORD, tailscaleVersion="tailscale-unknown")
        updater = self.make_updater({
            STABLE_URL: make_response(200, LISTING, STABLE_URL),
            SHA_URL: make_response(200, DIGEST, SHA_URL),
        }, record=record)

        result = updater.update()

        self.assertTrue(result["success"])
        self.assertEqual(result["current_version"], "")
        self.assertEqual(self.stored()["tailscaleVersion"], "tailscale_1.92.0_amd64")

    def test_version_fallback_to_github(self):
        updater = self.make_updater({
            STABLE_URL: make_response(502, "", STABLE_URL),
            GITHUB_URL: json_response({"tag_name": "v1.92.0"}, url=GITHUB_URL),
            SHA_URL: make_response(200, DIGEST, SHA_URL),
        })
        result = updater.update()
        self.assertTrue(result["success"])
        self.assertEqual(self.stored()["tailscaleVersion"], "tailscale_1.92.0_amd64")

    def test_version_unavailable(self):
        updater = self.make_updater({})
        before = self.descriptor.read_text()
        result = updater.update()
        self.assertFalse(result["success"])
        self.assertEqual(result["error"], "VersionUnavailable")
        self.assertEqual(self.descriptor.read_text(), before)

    def test_unreadable_config(self):
        updater = TailscaleUpdater(self.config, session=FakeSession({}), today=lambda: TODAY)
        result = updater.update()
        self.assertFalse(result["success"])
        self.assertEqual(result["error"], "ConfigUnreadable")

    def test_build_failure_keeps_rewritten_descriptor(self):
        updater = self.make_updater({
            STABLE_URL: make_response(200, LISTING, STABLE_URL),
            SHA_URL: make_response(200, DIGEST, SHA_URL),
        })
        updater.build_manager.run.side_effect = BuildFailed("Build failed with exit code 1", returncode=1)

        result = updater.update()

        self.assertFalse(result["success"])
        self.assertTrue(result["updated"])
        self.assertEqual(result["error"], "BuildFailed")
        self.assertEqual(self.stored()["tailscaleVersion"], "tailscale_1.92.0_amd64")

    def test_skip_build(self):
        updater = self.make_updater({
            STABLE_URL: make_response(200, LISTING, STABLE_URL),
            SHA_URL: make_response(200, DIGEST, SHA_URL),
        })
        result = updater.update(skip_build=True)
        self.assertTrue(result["success"])
        self.assertEqual(result["state"], "done")
        updater.build_manager.run.assert_not_called()

    def test_check_reports_without_writing(self):
        updater = self.make_updater({STABLE_URL: make_response(200, LISTING, STABLE_URL)})
        before = self.descriptor.read_text()

        result = updater.check()

        self.assertTrue(result["success"])
        self.assertTrue(result["update_available"])
        self.assertEqual(result["latest_version"], "1.92.0")
        self.assertEqual(self.descriptor.read_text(), before)
        self.assertEqual(updater.session.requested, [STABLE_URL])


class TestModuleMain(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.config = module_config(self._tmp.name)
        write_record(self.config["config"]["paths"]["config_file"])

    def tearDown(self):
        self._tmp.cleanup()

    def test_version_mode_reads_descriptor_only(self):
        result = tailscale_index.main(["--version"], config=self.config)
        self.assertEqual(result, {"success": True, "version": "1.90.6"})

    def test_config_mode(self):
        result = tailscale_index.main(["--config"], config=self.config)
        self.assertTrue(result["success"])
        self.assertIs(result["config"], self.config)

    def test_session_closed_after_run(self):
        with mock.patch.object(tailscale_index.requests, "Session") as session_cls:
            result = tailscale_index.main(["--version"], config=self.config)
        self.assertTrue(result["success"])
        session_cls.return_value.__exit__.assert_called_once()

    def test_default_mode_runs_update(self):
        with mock.patch.object(TailscaleUpdater, "update", return_value={"success": True}) as update:
            result = tailscale_index.main([], config=self.config)
        self.assertEqual(result, {"success": True})
        update.assert_called_once_with(skip_build=False)


if __name__ == "__main__":
    unittest.main()
