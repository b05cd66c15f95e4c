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
import sys
from pathlib import Path

import pytest

from vlcbuild.build_scripts.build_apple import AppleSdk, BuildPaths, TargetPlatform

from macho_fixtures import bsd_archive, macho_object, text_symbol, write_plugin

# writes the object file named by its first argument, standing in for clang
FAKE_COMPILER = "import sys; open(sys.argv[1], 'wb').write(b'\\xcf\\xfa\\xed\\xfe')"


class FakeToolchain:
    """Compiles by writing a placeholder object, records every call."""

    def __init__(self, fail=False):
        self.fail = fail
        self.calls = []

    def compile_command(self, source_path, object_path):
        self.calls.append((str(source_path), str(object_path)))
        if self.fail:
            return [sys.executable, "-c", "import sys; print('error: bad source'); sys.exit(1)"]
        return [sys.executable, "-c", FAKE_COMPILER, str(object_path)]

    def environ(self):
        return dict(os.environ)


@pytest.fixture
def fake_toolchain():
    return FakeToolchain()


@pytest.fixture
def ios_target(tmp_path):
    sdk = AppleSdk(name="iphoneos", path=str(tmp_path / "iPhoneOS.sdk"), version="17.0")
    return TargetPlatform(
        arch="arm64",
        sdk=sdk,
        platform="iOS",
        host_os="ios",
        simulator=False,
        deployment_target="9.0",
    )


@pytest.fixture
def vlc_tree(tmp_path):
    """
    Installed VLC and contrib trees with two plugins and two contribs.
    """
    src_dir = tmp_path / "vlc"
    (src_dir / "src").mkdir(parents=True)
    (src_dir / "src" / "libvlc.h").write_text("")
    build_dir = src_dir / "build-ios"
    build_dir.mkdir()
    paths = BuildPaths(
        src_dir=str(src_dir),
        build_dir=str(build_dir),
        pseudo_triplet="arm64-apple-iOS_9.0",
    )

    plugins = Path(paths.plugins_dir)
    write_plugin(plugins / "codec" / "libfoo_plugin.a", ["_vlc_entry__FOO"])
    write_plugin(plugins / "demux" / "libbar_plugin.a", ["_vlc_entry__BAR"])

    core = bsd_archive([("core.o", macho_object([text_symbol("_libvlc_new")]))])
    for archive in paths.core_archives:
        os.makedirs(os.path.dirname(archive), exist_ok=True)
        with open(archive, "wb") as f:
            f.write(core)

    contrib_lib = Path(paths.contrib_lib_dir)
    contrib_lib.mkdir(parents=True)
    (contrib_lib / "libavcodec.a").write_bytes(core)
    (contrib_lib / "libz.a").write_bytes(core)
    (contrib_lib / "pkgconfig").mkdir()
    (contrib_lib / "pkgconfig" / "zlib.pc").write_text("")
    return paths
