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

"""
Build configuration records for Apple targets.

Values come from vlcbuild.toml (see build_utils.load_build_config). Every
option list has a base part and per-OS extensions, composed by
merge_options() in a fixed order: base first, then the OS entries.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List

# Host OS names as used by the Apple tools (-m<os>-version-min, ...)
APPLE_HOST_OS_LIST = ["macosx", "ios", "tvos"]

DEFAULT_DEPLOYMENT_TARGETS = {
    "macosx": "10.11",
    "ios": "9.0",
    "tvos": "10.2",
}

DEFAULT_CONTRIB_OPTIONS = [
    "--disable-aom",
    "--disable-libarchive",
    "--disable-qt",
    "--disable-qtsvg",
    "--disable-sdl",
    "--disable-SDL_image",
    "--disable-caca",
    "--disable-gettext",
    "--disable-gcrypt",
    "--disable-gpg-error",
    "--disable-goom",
    "--disable-lua",
    "--disable-protobuf",
    "--disable-sidplay2",
    "--disable-srt",
    "--disable-vnc",
    "--disable-x265",
]

DEFAULT_CONFIGURE_OPTIONS = [
    "--disable-sse",
    "--disable-sparkle",
    "--disable-lua",
    "--disable-vcd",
    "--disable-libcddb",
    "--disable-macosx",
    "--disable-shared",
    "--enable-static",
    "--disable-qt",
    "--disable-skins2",
    "--disable-xcb",
    "--disable-caca",
    "--disable-pulse",
    "--disable-vnc",
    "--enable-merge-ffmpeg",
]

DEFAULT_MODULE_REMOVAL = [
    "access_output_dummy",
    "addonsfsstorage",
    "addonsvorepository",
    "dummy",
    "stats",
    "vod_rtsp",
]

# Functions missing on the oldest supported OS versions, hidden from autoconf
DEFAULT_SYMBOL_BLACKLIST = [
    "clock_getres",
    "clock_gettime",
    "clock_settime",
    "getentropy",
    "aligned_alloc",
]


def merge_options(base, extra):
    """Base options followed by extra ones, dropping repeated entries."""
    merged = []
    for option in list(base) + list(extra):
        if option not in merged:
            merged.append(option)
    return merged


@dataclass
class PlatformOptions:
    """An option list with per-OS extensions."""
    base: List[str] = field(default_factory=list)
    per_os: Dict[str, List[str]] = field(default_factory=dict)

    def for_os(self, host_os: str) -> List[str]:
        return merge_options(self.base, self.per_os.get(host_os, []))


@dataclass
class LinkSettings:
    """Settings of the static link step."""
    entry_prefix: str = "vlc_entry__"  # C name prefix of module entry functions
    output: str = "libvlc-full-static.a"
    symbol_reader: str = "macho"  # "macho" (in-process) or "nm"


@dataclass
class BuildConfig:
    deployment_targets: Dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_DEPLOYMENT_TARGETS)
    )
    contrib_options: PlatformOptions = field(
        default_factory=lambda: PlatformOptions(list(DEFAULT_CONTRIB_OPTIONS))
    )
    configure_options: PlatformOptions = field(
        default_factory=lambda: PlatformOptions(list(DEFAULT_CONFIGURE_OPTIONS))
    )
    module_removal: PlatformOptions = field(
        default_factory=lambda: PlatformOptions(list(DEFAULT_MODULE_REMOVAL))
    )
    symbol_blacklist: List[str] = field(
        default_factory=lambda: list(DEFAULT_SYMBOL_BLACKLIST)
    )
    link: LinkSettings = field(default_factory=LinkSettings)
    timeout: int = 3 * 3600
    # Path of the file the values were read from, "" for built-in defaults
    source: str = ""

    def deployment_target(self, host_os: str) -> str:
        return self.deployment_targets[host_os]

    @classmethod
    def from_toml_data(cls, data: Dict[str, Any], source: str = "") -> "BuildConfig":
        """
        Build a configuration from parsed vlcbuild.toml content.

        Sections that are absent keep their defaults.

        Raises:
            ValueError: a value has the wrong type
        """
        config = cls(source=source)

        targets = data.get("deployment_target", {})
        _expect(targets, dict, "deployment_target")
        for host_os, version in targets.items():
            config.deployment_targets[host_os] = str(version)

        contrib = data.get("contrib", {})
        config.contrib_options = _platform_options(
            contrib, "options", "contrib", config.contrib_options
        )
        if "symbol_blacklist" in contrib:
            config.symbol_blacklist = _string_list(
                contrib["symbol_blacklist"], "contrib.symbol_blacklist"
            )

        config.configure_options = _platform_options(
            data.get("configure", {}), "options", "configure",
            config.configure_options,
        )
        config.module_removal = _platform_options(
            data.get("modules", {}), "remove", "modules", config.module_removal
        )

        link = data.get("link", {})
        _expect(link, dict, "link")
        config.link = LinkSettings(
            entry_prefix=str(link.get("entry_prefix", config.link.entry_prefix)),
            output=str(link.get("output", config.link.output)),
            symbol_reader=str(link.get("symbol_reader", config.link.symbol_reader)),
        )
        if config.link.symbol_reader not in ("macho", "nm"):
            raise ValueError(
                f"link.symbol_reader must be 'macho' or 'nm', not '{config.link.symbol_reader}'"
            )
        if not config.link.entry_prefix:
            raise ValueError("link.entry_prefix must not be empty")

        build = data.get("build", {})
        _expect(build, dict, "build")
        timeout = build.get("timeout", config.timeout)
        if not isinstance(timeout, int) or timeout <= 0:
            raise ValueError(f"build.timeout must be a positive integer, not {timeout!r}")
        config.timeout = timeout
        return config


def _expect(value, kind, key):
    if not isinstance(value, kind):
        raise ValueError(f"'{key}' must be a {kind.__name__}")


def _string_list(value, key) -> List[str]:
    if not isinstance(value, list) or not all(isinstance(x, str) for x in value):
        raise ValueError(f"'{key}' must be a list of strings")
    return list(value)


def _platform_options(section, list_key, section_name, default) -> PlatformOptions:
    _expect(section, dict, section_name)
    base = default.base
    if list_key in section:
        base = _string_list(section[list_key], f"{section_name}.{list_key}")
    per_os = dict(default.per_os)
    for host_os in APPLE_HOST_OS_LIST:
        os_section = section.get(host_os)
        if os_section is None:
            continue
        _expect(os_section, dict, f"{section_name}.{host_os}")
        per_os[host_os] = _string_list(
            os_section.get(list_key, []), f"{section_name}.{host_os}.{list_key}"
        )
    return PlatformOptions(base=base, per_os=per_os)
