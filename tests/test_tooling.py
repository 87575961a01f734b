"""
Tests for the tooling installer — the full provisioning sequence.
"""

import errno
import logging
import os
import shutil
import stat
from pathlib import Path

import pytest

from lxguest.adapters.mock import MockAdapter
from lxguest.core.engine.executor import ExecutionReport
from lxguest.core.errors import FilesystemOperationFailed, UnlinkFailed, UnsupportedDistribution
from lxguest.core.models.distro import Distribution
from lxguest.core.services.tooling import MDATA_COMMANDS, install_tools, plan_tools


def _mode(path: Path) -> int:
    return stat.S_IMODE(path.lstat().st_mode)


class TestInstallTools:
    def test_full_run_debian(self, make_guest):
        root = make_guest(Distribution.DEBIAN)
        report = install_tools(root)

        assert report.status == "ok"
        assert report.distribution == "debian"

        for command in MDATA_COMMANDS:
            link = root / "usr" / "sbin" / command
            assert link.is_symlink()
            assert os.readlink(link) == f"/native/usr/sbin/{command}"

        manpath = root / "etc" / "profile.d" / "native_manpath.sh"
        assert _mode(manpath) == 0o744

        smartdc = root / "lib" / "smartdc"
        assert _mode(smartdc / "joyent_rc.local") == 0o755
        assert _mode(smartdc / "mdata-execute") == 0o755

        assert _mode(root / "etc" / "rc.local") == 0o755

    def test_step_order(self, make_guest):
        root = make_guest(Distribution.ALPINE)
        mock = MockAdapter()
        install_tools(root, adapter=mock)
        assert mock.action_ids == [
            "mdata:mdata-get",
            "mdata:mdata-put",
            "mdata:mdata-delete",
            "mdata:mdata-list",
            "manpath:native_manpath.sh",
            "smartdc:smartdc",
            "distro:alpine:rc.local",
            "distro:alpine:shutdown",
        ]

    def test_ownership_is_root(self, make_guest, chown_calls):
        root = make_guest(Distribution.REDHAT)
        install_tools(root)
        assert chown_calls
        assert all((uid, gid) == (0, 0) for _, uid, gid in chown_calls)

    @pytest.mark.parametrize("distribution", [Distribution.ARCH, Distribution.VOID, Distribution.DEBIAN])
    def test_second_run_succeeds(self, make_guest, distribution):
        root = make_guest(distribution)
        install_tools(root)
        report = install_tools(root)
        assert report.status == "ok"
        for command in MDATA_COMMANDS:
            assert os.readlink(root / "usr" / "sbin" / command) == f"/native/usr/sbin/{command}"

    def test_existing_mdata_command_is_replaced(self, make_guest, caplog):
        caplog.set_level(logging.INFO, logger="lxguest")
        root = make_guest(Distribution.DEBIAN)
        stale = root / "usr" / "sbin" / "mdata-get"
        stale.write_text("#!/bin/sh\necho stale\n")

        report = install_tools(root)

        assert stale.is_symlink()
        assert "mdata:mdata-get:unlink" in [r.action_id for r in report.receipts]
        assert f"Unlinked {stale}" in caplog.text

    def test_unlink_failure_aborts(self, make_guest):
        root = make_guest(Distribution.DEBIAN)
        (root / "usr" / "sbin" / "mdata-put").write_text("locked")
        mock = MockAdapter()
        mock.set_failure("mdata:mdata-put:unlink", error="Permission denied", errno=errno.EPERM)

        with pytest.raises(UnlinkFailed) as exc:
            install_tools(root, adapter=mock)

        assert exc.value.step == "mdata:mdata-put:unlink"
        assert isinstance(exc.value, FilesystemOperationFailed)
        assert mock.action_ids == ["mdata:mdata-get", "mdata:mdata-put:unlink"]

    def test_missing_helper_dir_stops_before_distro(self, make_guest, assets_dir, tmp_path: Path):
        root = make_guest(Distribution.DEBIAN)
        assets = tmp_path / "assets"
        shutil.copytree(assets_dir, assets)
        shutil.rmtree(assets / "guest" / "lib" / "smartdc")

        report = ExecutionReport()
        with pytest.raises(FilesystemOperationFailed) as exc:
            install_tools(root, assets_dir=assets, report=report)

        assert exc.value.step == "smartdc:smartdc"
        assert exc.value.errno == errno.ENOENT
        assert not (root / "etc" / "rc.local").exists()
        assert report.distribution is None
        assert report.failed == 1
        # Steps before the failure stay applied.
        assert (root / "etc" / "profile.d" / "native_manpath.sh").exists()

    def test_missing_profile_dir_fails_manpath(self, make_guest):
        root = make_guest(Distribution.DEBIAN)
        (root / "etc" / "profile.d").rmdir()
        with pytest.raises(FilesystemOperationFailed) as exc:
            install_tools(root)
        assert exc.value.step == "manpath:native_manpath.sh"

    def test_unknown_distro_after_shared_steps(self, make_guest):
        root = make_guest()
        report = ExecutionReport()
        with pytest.raises(UnsupportedDistribution):
            install_tools(root, report=report)
        assert report.distribution == "unknown"
        assert (root / "lib" / "smartdc" / "joyent_rc.local").exists()
        assert not (root / "etc" / "rc.local").exists()

    def test_dry_run_changes_nothing(self, make_guest, tree_snapshot):
        root = make_guest(Distribution.ARCH)
        before = tree_snapshot(root)
        report = install_tools(root, dry_run=True)
        assert report.total == report.skipped == 9
        assert tree_snapshot(root) == before

    def test_dry_run_reports_missing_assets(self, make_guest, tmp_path: Path, tree_snapshot):
        root = make_guest(Distribution.DEBIAN)
        empty = tmp_path / "empty-assets"
        empty.mkdir()
        before = tree_snapshot(root)
        with pytest.raises(FilesystemOperationFailed) as exc:
            install_tools(root, assets_dir=empty, dry_run=True)
        assert exc.value.step == "manpath:native_manpath.sh"
        assert exc.value.errno == errno.ENOENT
        assert exc.value.path == str(empty / "guest" / "etc" / "profile.d" / "native_manpath.sh")
        assert tree_snapshot(root) == before


class TestPlanTools:
    def test_plan_fresh_root(self, make_guest):
        root = make_guest(Distribution.ARCH)
        actions = plan_tools(root)
        ops = [a.operation for a in actions]
        assert ops == ["symlink"] * 4 + ["copy_file", "copy_dir", "mkdirp", "copy_file", "symlink"]

    def test_plan_includes_unlink_for_existing(self, make_guest):
        root = make_guest(Distribution.DEBIAN)
        (root / "usr" / "sbin" / "mdata-list").symlink_to("/native/usr/sbin/mdata-list")
        ids = [a.id for a in plan_tools(root)]
        assert ids.index("mdata:mdata-list:unlink") == ids.index("mdata:mdata-list") - 1

    def test_plan_unknown_raises(self, make_guest):
        with pytest.raises(UnsupportedDistribution):
            plan_tools(make_guest())

    def test_sources_resolve_against_assets_dir(self, make_guest, tmp_path: Path):
        bundle = tmp_path / "bundle"
        actions = {a.id: a for a in plan_tools(make_guest(Distribution.VOID), assets_dir=bundle)}
        assert actions["smartdc:smartdc"].params["src"] == str(bundle / "guest" / "lib" / "smartdc")
        assert actions["distro:void:shutdown"].params["src"] == str(bundle / "guest" / "sbin" / "shutdown")
        assert actions["mdata:mdata-get"].params["target"] == "/native/usr/sbin/mdata-get"
        assert "src" not in actions["mdata:mdata-get"].params

    def test_default_sources_are_bundled(self, make_guest, assets_dir):
        actions = {a.id: a for a in plan_tools(make_guest(Distribution.DEBIAN))}
        assert actions["manpath:native_manpath.sh"].params["src"] == str(
            assets_dir / "guest" / "etc" / "profile.d" / "native_manpath.sh"
        )

    def test_given_distribution_skips_detection(self, make_guest, caplog):
        caplog.set_level(logging.INFO, logger="lxguest")
        actions = plan_tools(make_guest(), distribution=Distribution.REDHAT)
        assert actions[-1].id == "distro:redhat:rc.local"
        assert "Detected distro" not in caplog.text
        assert "No distribution marker" not in caplog.text
