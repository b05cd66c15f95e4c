#!/usr/bin/env python3
# -- coding: utf-8 --
#
# build_apple.py
# vlcbuild
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
Apple target resolution and toolchain environment.

Turns an architecture and SDK name into explicit records used by every
later step:
- TargetPlatform: arch, SDK, platform name, deployment target flags
- Toolchain: compilers, flags and the environment for build steps
- BuildPaths: where contribs and VLC are built and installed

Supported SDKs: macosx, iphoneos, iphonesimulator, appletvos,
appletvsimulator. watchOS is not supported.
"""

import os
import subprocess
from dataclasses import dataclass, field
from typing import Dict, List, Optional

try:
    from vlcbuild.build_scripts.errors import ConfigurationError, ToolingMissingError
    from vlcbuild.utils.cmd.cmd_util import (
        DEFAULT_TIMEOUT_SECOND,
        exec_command,
        exec_command_with_timeout_second,
    )
except ImportError:
    from errors import ConfigurationError, ToolingMissingError
    from utils.cmd.cmd_util import (
        DEFAULT_TIMEOUT_SECOND,
        exec_command,
        exec_command_with_timeout_second,
    )

SUPPORTED_ARCHS = ["i386", "x86_64", "armv7", "armv7s", "arm64"]
ARCH_ALIASES = {"aarch64": "arm64"}

DEFAULT_ARCH = "x86_64"
DEFAULT_SDK_NAME = "macosx"

# SDK name prefix -> (platform, host os, simulator)
SDK_PLATFORMS = [
    ("iphoneos", "iOS", "ios", False),
    ("iphonesimulator", "iOS-Simulator", "ios", True),
    ("appletvos", "tvOS", "tvos", False),
    ("appletvsimulator", "tvOS-Simulator", "tvos", True),
    ("macosx", "macOS", "macosx", False),
]

# Extra C-like flags per build step
CONTRIB_EXTRA_CFLAGS = ["-Werror=partial-availability"]
VLC_EXTRA_CFLAGS = ["-g"]


def validate_architecture(arch: str) -> str:
    """
    Normalize and check a target architecture.

    Raises:
        ConfigurationError: unsupported architecture
    """
    arch = ARCH_ALIASES.get(arch, arch)
    if arch not in SUPPORTED_ARCHS:
        raise ConfigurationError(
            f"Invalid architecture '{arch}', expected one of: {', '.join(SUPPORTED_ARCHS)}"
        )
    return arch


def platform_for_sdk(sdk_name: str):
    """
    Platform information for an SDK name (optionally with a version).

    Returns:
        tuple: (platform, host_os, simulator)

    Raises:
        ConfigurationError: watchOS or an unknown SDK
    """
    if sdk_name.startswith("watch"):
        raise ConfigurationError("Building for watchOS is not supported")
    for prefix, platform, host_os, simulator in SDK_PLATFORMS:
        if sdk_name.startswith(prefix):
            return platform, host_os, simulator
    raise ConfigurationError(f"Unhandled SDK name '{sdk_name}'")


@dataclass
class AppleSdk:
    name: str
    path: str
    version: str


def resolve_sdk(sdk_name: str, xcrun="xcrun", timeout_second=60) -> AppleSdk:
    """
    Look up an SDK with xcrun.

    Raises:
        ConfigurationError: xcrun does not know the SDK or its path is missing
    """
    err_code, sdk_path = exec_command_with_timeout_second(
        [xcrun, "--sdk", sdk_name, "--show-sdk-path"],
        timeout_second,
        stderr=subprocess.DEVNULL,
    )
    if err_code != 0:
        raise ConfigurationError(f"Failed to find SDK '{sdk_name}'")
    err_code, sdk_version = exec_command_with_timeout_second(
        [xcrun, "--sdk", sdk_name, "--show-sdk-version"],
        timeout_second,
        stderr=subprocess.DEVNULL,
    )
    if err_code != 0:
        raise ConfigurationError(f"Failed to get version of SDK '{sdk_name}'")
    sdk_path = sdk_path.strip()
    if not os.path.isdir(sdk_path):
        raise ConfigurationError(f"SDK at '{sdk_path}' does not exist")
    return AppleSdk(name=sdk_name, path=sdk_path, version=sdk_version.strip())


@dataclass
class TargetPlatform:
    arch: str
    sdk: AppleSdk
    platform: str  # e.g. "iOS-Simulator"
    host_os: str  # "macosx", "ios" or "tvos"
    simulator: bool
    deployment_target: str

    @property
    def deployment_cflag(self) -> str:
        flag = f"-m{self.host_os}"
        if self.simulator:
            flag += "-simulator"
        return f"{flag}-version-min={self.deployment_target}"

    @property
    def deployment_ldflag(self) -> str:
        flag = f"-Wl,-{self.host_os}"
        if self.simulator:
            flag += "_simulator"
        return f"{flag}_version_min,{self.deployment_target}"

    @property
    def pseudo_triplet(self) -> str:
        return f"{self.arch}-apple-{self.platform}_{self.deployment_target}"


def resolve_target(arch, sdk_name, config, sdk=None, xcrun="xcrun") -> TargetPlatform:
    """
    Validate SDK and architecture and build the TargetPlatform.

    Args:
        arch: architecture name
        sdk_name: SDK name as known to xcrun
        config: BuildConfig providing the deployment targets
        sdk: already resolved AppleSdk, skips the xcrun lookup
    """
    platform, host_os, simulator = platform_for_sdk(sdk_name)
    if sdk is None:
        sdk = resolve_sdk(sdk_name, xcrun=xcrun)
    arch = validate_architecture(arch)
    try:
        deployment_target = config.deployment_target(host_os)
    except KeyError:
        raise ConfigurationError(f"No deployment target configured for '{host_os}'")
    return TargetPlatform(
        arch=arch,
        sdk=sdk,
        platform=platform,
        host_os=host_os,
        simulator=simulator,
        deployment_target=deployment_target,
    )


@dataclass
class Toolchain:
    """Compilers and flags for one target, plus the environment of build steps."""
    target: TargetPlatform
    extra_cflags: List[str] = field(default_factory=list)
    cc: str = "clang"
    cpp: str = "clang -E"
    cxx: str = "clang++"
    objc: str = "clang"
    ld: str = "ld"
    ar: str = "ar"
    strip: str = "strip"
    ranlib: str = "ranlib"
    base_env: Optional[Dict[str, str]] = None  # None: the current process environment
    extra_env: Dict[str, str] = field(default_factory=dict)

    def cppflags(self) -> List[str]:
        return ["-arch", self.target.arch, "-isysroot", self.target.sdk.path]

    def clike_flags(self) -> List[str]:
        return [
            self.target.deployment_cflag,
            "-arch",
            self.target.arch,
            "-isysroot",
            self.target.sdk.path,
        ] + list(self.extra_cflags)

    def ldflags(self) -> List[str]:
        return [self.target.deployment_ldflag, "-arch", self.target.arch]

    def tool_variables(self) -> Dict[str, str]:
        clike = " ".join(self.clike_flags())
        return {
            "CPPFLAGS": " ".join(self.cppflags()),
            "CFLAGS": clike,
            "CXXFLAGS": clike,
            "OBJCFLAGS": clike,
            "LDFLAGS": " ".join(self.ldflags()),
            "CC": self.cc,
            "CPP": self.cpp,
            "CXX": self.cxx,
            "OBJC": self.objc,
            "LD": self.ld,
            "AR": self.ar,
            "STRIP": self.strip,
            "RANLIB": self.ranlib,
        }

    def environ(self) -> Dict[str, str]:
        env = dict(os.environ if self.base_env is None else self.base_env)
        env.update(self.tool_variables())
        env.update(self.extra_env)
        return env

    def compile_command(self, source_path, object_path) -> List[str]:
        return [self.cc] + self.clike_flags() + ["-c", str(source_path), "-o", str(object_path)]

    def with_extra_cflags(self, extra_cflags) -> "Toolchain":
        return Toolchain(
            target=self.target,
            extra_cflags=list(extra_cflags),
            cc=self.cc,
            cpp=self.cpp,
            cxx=self.cxx,
            objc=self.objc,
            ld=self.ld,
            ar=self.ar,
            strip=self.strip,
            ranlib=self.ranlib,
            base_env=self.base_env,
            extra_env=dict(self.extra_env),
        )


def build_step_environment(target, src_dir, config, base_env=None) -> Dict[str, str]:
    """
    Variables every contrib and VLC build step needs besides the tools.

    SDKROOT is not set; the SDK path goes to VLCSDKROOT for the contrib
    scripts.
    """
    if base_env is None:
        base_env = os.environ
    tools_bin = os.path.join(src_dir, "extras", "tools", "build", "bin")
    env = {
        # only find contribs, never packages of the build machine
        "PKG_CONFIG_LIBDIR": "",
        "PATH": tools_bin + os.pathsep + base_env.get("PATH", ""),
        "VLCSDKROOT": target.sdk.path,
    }
    if target.host_os == "ios":
        env["BUILDFORIOS"] = "yes"
    elif target.host_os == "tvos":
        env["BUILDFORIOS"] = "yes"
        env["BUILDFORTVOS"] = "yes"
    for symbol in config.symbol_blacklist:
        env[f"ac_cv_func_{symbol}"] = "no"
    return env


def make_toolchain(target, src_dir, config, extra_cflags=(), base_env=None) -> Toolchain:
    return Toolchain(
        target=target,
        extra_cflags=list(extra_cflags),
        base_env=base_env,
        extra_env=build_step_environment(target, src_dir, config, base_env=base_env),
    )


def get_host_triplet(toolchain, timeout_second=DEFAULT_TIMEOUT_SECOND) -> str:
    """Ask the compiler for the target triplet, e.g. aarch64-apple-darwin21."""
    err_code, output = exec_command_with_timeout_second(
        [toolchain.cc, "-arch", toolchain.target.arch, "-dumpmachine"],
        timeout_second,
        stderr=subprocess.DEVNULL,
    )
    if err_code != 0 or not output.strip():
        raise ConfigurationError(
            f"Failed to query target triplet from '{toolchain.cc}' for {toolchain.target.arch}"
        )
    return output.strip().splitlines()[0]


def find_apple_libtool(xcrun="xcrun", timeout_second=60) -> str:
    """
    Path of Apple's libtool.

    Neither GNU libtool nor the LIBTOOL variable will do, only xcrun's.

    Raises:
        ToolingMissingError: xcrun cannot find libtool
    """
    err_code, output = exec_command([xcrun, "-f", "libtool"], timeout_second=timeout_second)
    if err_code != 0 or not output.strip():
        raise ToolingMissingError(
            "Failed to find Apple libtool with xcrun", output=output
        )
    return output.strip().splitlines()[-1]


@dataclass
class BuildPaths:
    """Directory layout of one target build."""
    src_dir: str
    build_dir: str
    pseudo_triplet: str

    @property
    def tools_dir(self) -> str:
        return os.path.join(self.src_dir, "extras", "tools")

    @property
    def contrib_build_dir(self) -> str:
        return os.path.join(self.src_dir, "contrib", f"contrib-{self.pseudo_triplet}")

    @property
    def contrib_install_dir(self) -> str:
        return os.path.join(self.build_dir, "contrib", self.pseudo_triplet)

    @property
    def contrib_lib_dir(self) -> str:
        return os.path.join(self.contrib_install_dir, "lib")

    @property
    def vlc_build_dir(self) -> str:
        return os.path.join(self.build_dir, "build", self.pseudo_triplet)

    @property
    def vlc_install_dir(self) -> str:
        return os.path.join(self.build_dir, f"vlc-{self.pseudo_triplet}")

    @property
    def plugins_dir(self) -> str:
        return os.path.join(self.vlc_install_dir, "lib", "vlc", "plugins")

    @property
    def core_archives(self) -> List[str]:
        # libvlc first, then libvlccore, then the compat shims
        return [
            os.path.join(self.vlc_install_dir, "lib", "libvlc.a"),
            os.path.join(self.vlc_install_dir, "lib", "libvlccore.a"),
            os.path.join(self.vlc_install_dir, "lib", "vlc", "libcompat.a"),
        ]

    @property
    def link_dir(self) -> str:
        return os.path.join(self.vlc_build_dir, "build-sh")


def find_vlc_source_dir(build_dir, src_dir=None) -> str:
    """
    VLC source root for a build directory.

    Without src_dir the build directory must be a direct subdirectory of
    the source tree.

    Raises:
        ConfigurationError: no src/libvlc.h in the source directory
    """
    if src_dir is None:
        src_dir = os.path.dirname(os.path.abspath(build_dir))
    src_dir = os.path.abspath(src_dir)
    if not os.path.isfile(os.path.join(src_dir, "src", "libvlc.h")):
        raise ConfigurationError(
            "This script must be run from a build subdirectory in the VLC source"
            f" (no src/libvlc.h in '{src_dir}')"
        )
    return src_dir


def print_build_configuration(target):
    print("Build configuration")
    print(f"  Platform:     {target.platform}")
    print(f"  Architecture: {target.arch}")
    print(f"  SDK Version:  {target.sdk.version}")
    print("")
