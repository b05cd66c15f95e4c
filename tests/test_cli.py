#
# Copyright 2024 vlcbuild Project Authors. All rights reserved.
# Use of this source code is governed by a MIT-style
# license that can be found at
#
# https://opensource.org/license/MIT
#
# The above copyright notice and this permission
# notice shall be included in all copies or
# substantial portions of the Software.

import os
import shutil

import pytest

from vlcbuild import cli
from vlcbuild.commands import build as build_command
from vlcbuild.commands import check as check_command
from vlcbuild.commands import link as link_command


def run_cli(argv):
    with pytest.raises(SystemExit) as excinfo:
        cli.main(argv)
    return excinfo.value.code


def test_help_lists_commands(capsys):
    assert run_cli(["--help"]) == 0
    out = capsys.readouterr().out
    for command in ["build", "check", "clean", "init", "link"]:
        assert command in out


def test_command_list():
    assert cli.Cli().get_command_list() == ["build", "check", "clean", "init", "link"]


def test_no_command(capsys):
    assert run_cli([]) == 1
    assert "ERROR: No command specified" in capsys.readouterr().err


def test_build_outside_source_tree(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    assert run_cli(["build"]) == 1
    err = capsys.readouterr().err
    assert err.startswith("ERROR: ")
    assert "src/libvlc.h" in err


def test_build_rejects_watchos(vlc_tree, monkeypatch, capsys):
    monkeypatch.chdir(vlc_tree.build_dir)
    monkeypatch.setattr(build_command, "check_tools", lambda config: None)

    assert run_cli(["build", "--arch=arm64", "--sdk=watchos"]) == 1
    assert "ERROR: Building for watchOS is not supported" in capsys.readouterr().err


def test_build_passes_options(vlc_tree, monkeypatch):
    monkeypatch.chdir(vlc_tree.build_dir)
    monkeypatch.setattr(build_command, "check_tools", lambda config: None)
    calls = []

    def fake_build(arch, sdk, config, src_dir, build_dir, **kwargs):
        calls.append((arch, sdk, src_dir, build_dir, kwargs))
        return "libvlc-full-static.a"

    monkeypatch.setattr(build_command, "build_vlc", fake_build)
    assert run_cli(["build", "--arch=x86_64", "--sdk=iphonesimulator", "-j", "3", "--skip-tools"]) == 0

    arch, sdk, src_dir, build_dir, kwargs = calls[0]
    assert (arch, sdk) == ("x86_64", "iphonesimulator")
    assert os.path.realpath(src_dir) == os.path.realpath(vlc_tree.src_dir)
    assert os.path.realpath(build_dir) == os.path.realpath(vlc_tree.build_dir)
    assert kwargs["jobs"] == 3
    assert kwargs["skip_tools"] is True
    assert kwargs["skip_contribs"] is False


def test_link_only_links(vlc_tree, monkeypatch):
    monkeypatch.chdir(vlc_tree.build_dir)
    monkeypatch.setattr(link_command, "check_tools", lambda config: None)
    calls = []

    def fake_build(arch, sdk, config, src_dir, build_dir, **kwargs):
        calls.append(kwargs)
        return "libvlc-full-static.a"

    monkeypatch.setattr(link_command, "build_vlc", fake_build)
    assert run_cli(["link", "--arch=arm64", "--sdk=iphoneos"]) == 0
    assert calls[0]["link_only"] is True


def test_check_missing_tools(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(shutil, "which", lambda name: None)

    assert run_cli(["check"]) == 1
    captured = capsys.readouterr()
    assert "xcrun: Not found" in captured.out
    assert "ERROR: " in captured.err


def test_check_all_found(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(shutil, "which", lambda name: f"/usr/bin/{name}")
    monkeypatch.setattr(
        check_command,
        "exec_command_with_timeout_second",
        lambda cmd, timeout_second=10, **kw: (0, "/usr/bin/libtool\n"),
    )
    assert run_cli(["check", "--verbose"]) == 0


def test_clean_link_outputs(tmp_path, monkeypatch, capsys):
    monkeypatch.chdir(tmp_path)
    link_dir = tmp_path / "build" / "arm64-apple-iOS_9.0" / "build-sh"
    link_dir.mkdir(parents=True)
    (link_dir / "static-libs-list").write_text("")
    (tmp_path / "build" / "arm64-apple-iOS_9.0" / "Makefile").write_text("")

    assert run_cli(["clean", "--dry-run"]) == 0
    assert link_dir.exists()

    assert run_cli(["clean"]) == 0
    assert not link_dir.exists()
    assert (tmp_path / "build" / "arm64-apple-iOS_9.0" / "Makefile").exists()


def test_clean_all(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    for name in ["build", "contrib", "vlc-arm64-apple-iOS_9.0", "keep-me"]:
        (tmp_path / name).mkdir()

    assert run_cli(["clean", "all", "-y"]) == 0
    assert sorted(os.listdir(tmp_path)) == ["keep-me"]
