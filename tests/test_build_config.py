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

import pytest

from vlcbuild.build_scripts import build_utils
from vlcbuild.build_scripts.build_utils import (
    check_tools,
    clean_paths,
    find_missing_tools,
    load_build_config,
    required_tools,
)
from vlcbuild.build_scripts.errors import ConfigurationError, ToolingMissingError
from vlcbuild.utils.apple.config import (
    DEFAULT_CONTRIB_OPTIONS,
    DEFAULT_MODULE_REMOVAL,
    BuildConfig,
    PlatformOptions,
    merge_options,
)

SAMPLE_TOML = """
[deployment_target]
ios = "12.0"

[contrib]
options = ["--disable-a", "--disable-b"]
symbol_blacklist = ["clock_gettime"]

[contrib.ios]
options = ["--disable-c", "--disable-a"]

[configure]
options = ["--disable-x"]

[configure.tvos]
options = ["--disable-y"]

[modules]
remove = ["dummy"]

[modules.macosx]
remove = ["vdpau"]

[link]
output = "libvlc-static.a"
symbol_reader = "nm"

[build]
timeout = 600
"""


def test_merge_options_keeps_order():
    assert merge_options(["a", "b"], ["c", "a", "d"]) == ["a", "b", "c", "d"]
    assert merge_options([], ["x"]) == ["x"]
    assert merge_options(["x"], []) == ["x"]


def test_platform_options_for_os():
    options = PlatformOptions(["--base"], {"ios": ["--ios"]})
    assert options.for_os("ios") == ["--base", "--ios"]
    assert options.for_os("tvos") == ["--base"]


def test_defaults():
    config = BuildConfig()
    assert config.deployment_target("macosx") == "10.11"
    assert config.deployment_target("ios") == "9.0"
    assert config.deployment_target("tvos") == "10.2"
    assert config.contrib_options.for_os("ios") == DEFAULT_CONTRIB_OPTIONS
    assert config.module_removal.for_os("macosx") == DEFAULT_MODULE_REMOVAL
    assert config.link.entry_prefix == "vlc_entry__"
    assert config.link.output == "libvlc-full-static.a"
    assert config.link.symbol_reader == "macho"
    assert config.timeout == 3 * 3600


def test_defaults_are_not_shared():
    first = BuildConfig()
    first.contrib_options.base.append("--extra")
    first.deployment_targets["ios"] = "15.0"
    second = BuildConfig()
    assert "--extra" not in second.contrib_options.base
    assert second.deployment_target("ios") == "9.0"


def test_load_build_config(tmp_path):
    (tmp_path / "vlcbuild.toml").write_text(SAMPLE_TOML)
    config = load_build_config(str(tmp_path))

    assert config.source == str(tmp_path / "vlcbuild.toml")
    assert config.deployment_target("ios") == "12.0"
    assert config.deployment_target("macosx") == "10.11"
    assert config.contrib_options.for_os("ios") == ["--disable-a", "--disable-b", "--disable-c"]
    assert config.contrib_options.for_os("macosx") == ["--disable-a", "--disable-b"]
    assert config.configure_options.for_os("tvos") == ["--disable-x", "--disable-y"]
    assert config.module_removal.for_os("macosx") == ["dummy", "vdpau"]
    assert config.module_removal.for_os("ios") == ["dummy"]
    assert config.symbol_blacklist == ["clock_gettime"]
    assert config.link.output == "libvlc-static.a"
    assert config.link.symbol_reader == "nm"
    assert config.link.entry_prefix == "vlc_entry__"
    assert config.timeout == 600


def test_missing_config_uses_defaults(tmp_path, capsys):
    config = load_build_config(str(tmp_path))
    assert config == BuildConfig()
    assert "vlcbuild.toml not found" in capsys.readouterr().out


def test_invalid_toml(tmp_path):
    (tmp_path / "vlcbuild.toml").write_text("[contrib\noptions = ")
    with pytest.raises(ConfigurationError) as excinfo:
        load_build_config(str(tmp_path))
    assert excinfo.value.path == str(tmp_path / "vlcbuild.toml")


@pytest.mark.parametrize(
    "content",
    [
        "[contrib]\noptions = \"--disable-a\"\n",
        "[modules]\nremove = [1, 2]\n",
        "[link]\nsymbol_reader = \"otool\"\n",
        "[link]\nentry_prefix = \"\"\n",
        "[build]\ntimeout = -1\n",
        "[build]\ntimeout = \"long\"\n",
        "deployment_target = \"9.0\"\n",
        "[contrib]\nios = [\"--x\"]\n",
    ],
)
def test_invalid_values(tmp_path, content):
    (tmp_path / "vlcbuild.toml").write_text(content)
    with pytest.raises(ConfigurationError):
        load_build_config(str(tmp_path))


def test_find_missing_tools(monkeypatch):
    monkeypatch.setattr(
        build_utils.shutil, "which", lambda name: None if name == "nm" else f"/usr/bin/{name}"
    )
    assert find_missing_tools(["xcrun", "clang -E", "nm", "nm"]) == ["nm"]


def test_required_tools():
    config = BuildConfig()
    assert required_tools(config) == ["xcrun", "make", "clang"]
    config.link.symbol_reader = "nm"
    assert required_tools(config) == ["xcrun", "make", "clang", "nm"]


def test_check_tools_missing(monkeypatch):
    monkeypatch.setattr(build_utils.shutil, "which", lambda name: None)
    with pytest.raises(ToolingMissingError) as excinfo:
        check_tools(BuildConfig())
    assert "xcrun" in str(excinfo.value)
    assert excinfo.value.stage == "preflight"


def test_clean_paths(tmp_path):
    directory = tmp_path / "build-sh"
    directory.mkdir()
    (directory / "static-libs-list").write_text("")
    single = tmp_path / "libvlc-full-static.a"
    single.write_bytes(b"")

    removed = clean_paths([str(directory), str(single), str(tmp_path / "missing")])

    assert removed == [str(directory), str(single)]
    assert not os.path.exists(directory)
    assert not os.path.exists(single)
