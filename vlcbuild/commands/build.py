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
import argparse

# setup path
# >>>>>>>>>>>>>>
SCRIPT_PATH = os.path.split(os.path.realpath(__file__))[0]
PROJECT_ROOT_PATH = os.path.dirname(SCRIPT_PATH)
sys.path.append(SCRIPT_PATH)
sys.path.append(PROJECT_ROOT_PATH)
PACKAGE_NAME = os.path.basename(SCRIPT_PATH)
# <<<<<<<<<<<<<
# import this project modules
try:
    from vlcbuild.utils.context.namespace import CliNameSpace
    from vlcbuild.utils.context.context import CliContext
    from vlcbuild.utils.context.command import CliCommand
    from vlcbuild.utils.context.result import CliResult
    from vlcbuild.build_scripts.build_apple import (
        DEFAULT_ARCH,
        DEFAULT_SDK_NAME,
        find_vlc_source_dir,
    )
    from vlcbuild.build_scripts.build_utils import check_tools, load_build_config
    from vlcbuild.build_scripts.build_vlc import build_vlc
except ImportError:
    from utils.context.namespace import CliNameSpace
    from utils.context.context import CliContext
    from utils.context.command import CliCommand
    from utils.context.result import CliResult
    from build_scripts.build_apple import (
        DEFAULT_ARCH,
        DEFAULT_SDK_NAME,
        find_vlc_source_dir,
    )
    from build_scripts.build_utils import check_tools, load_build_config
    from build_scripts.build_vlc import build_vlc


def add_target_arguments(parser):
    parser.add_argument(
        "--arch",
        action="store",
        default=DEFAULT_ARCH,
        help=f"Architecture to build for: i386, x86_64, armv7, armv7s, arm64 (default: {DEFAULT_ARCH})",
    )
    parser.add_argument(
        "--sdk",
        action="store",
        default=DEFAULT_SDK_NAME,
        help=f"SDK name as known to xcrun, e.g. iphoneos, appletvsimulator (default: {DEFAULT_SDK_NAME})",
    )
    parser.add_argument(
        "--src-dir",
        action="store",
        default=None,
        help="VLC source directory (default: parent of the current directory)",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Print more details while building",
    )


class Build(CliCommand):
    def description(self) -> str:
        return """Build a fully static libVLC for one architecture and SDK.

Steps:
    1. extras tools        bootstrap, make
    2. contribs            bootstrap, make list, make
    3. VLC                 bootstrap, configure, make, make install
    4. module removal      plugins listed in [modules] of vlcbuild.toml
    5. static link         static-module-list.o + all archives -> libvlc-full-static.a

Run from a build directory inside the VLC source tree, e.g. vlc/build-ios.
Options are read from vlcbuild.toml in that directory (see 'vlcbuild init').

EXAMPLES:
    vlcbuild build --arch=arm64 --sdk=iphoneos
    vlcbuild build --arch=x86_64 --sdk=macosx -j 8
    vlcbuild build --arch=arm64 --sdk=appletvos --skip-tools --skip-contribs
        """

    def cli(self, argv=None) -> CliNameSpace:
        parser = argparse.ArgumentParser(
            prog="vlcbuild build",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            description=self.description(),
        )
        add_target_arguments(parser)
        parser.add_argument(
            "-j",
            "--jobs",
            type=int,
            default=None,
            help="Number of parallel make jobs (default: CPU count)",
        )
        parser.add_argument(
            "--skip-tools",
            action="store_true",
            help="Do not build the extras tools",
        )
        parser.add_argument(
            "--skip-contribs",
            action="store_true",
            help="Do not build the contribs",
        )
        parser.add_argument(
            "--skip-vlc",
            action="store_true",
            help="Do not build and install VLC",
        )
        args = parser.parse_args(self.command_argv(argv, __file__), CliNameSpace())
        return args

    def exec(self, context: CliContext, args: CliNameSpace):
        build_dir = context.work_dir
        src_dir = find_vlc_source_dir(build_dir, args.src_dir)
        context.verbose_msg(f"Configuration: {vars(args)}")

        config = load_build_config(build_dir)
        check_tools(config)

        output = build_vlc(
            args.arch,
            args.sdk,
            config,
            src_dir,
            build_dir,
            jobs=args.jobs,
            skip_tools=args.skip_tools,
            skip_contribs=args.skip_contribs,
            skip_vlc=args.skip_vlc,
            verbose=args.verbose,
        )
        print(f"\n✅ Built {output}")
        return CliResult.ok(output)
