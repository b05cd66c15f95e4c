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
    from vlcbuild.build_scripts.build_apple import find_vlc_source_dir
    from vlcbuild.build_scripts.build_utils import check_tools, load_build_config
    from vlcbuild.build_scripts.build_vlc import build_vlc
    from vlcbuild.commands.build import add_target_arguments
except ImportError:
    from utils.context.namespace import CliNameSpace
    from utils.context.context import CliContext
    from utils.context.command import CliCommand
    from utils.context.result import CliResult
    from build_scripts.build_apple import find_vlc_source_dir
    from build_scripts.build_utils import check_tools, load_build_config
    from build_scripts.build_vlc import build_vlc
    from commands.build import add_target_arguments


class Link(CliCommand):
    def description(self) -> str:
        return """
        Link libvlc-full-static.a against an existing VLC and contrib install.

        Removes the plugins on the removal list, regenerates the static
        module list and combines all archives again. Nothing is rebuilt.

        Examples:
            vlcbuild link --arch=arm64 --sdk=iphoneos
            vlcbuild link --arch=x86_64 --sdk=macosx --verbose
        """

    def cli(self, argv=None) -> CliNameSpace:
        parser = argparse.ArgumentParser(
            prog="vlcbuild link",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            description=self.description(),
        )
        add_target_arguments(parser)
        args = parser.parse_args(self.command_argv(argv, __file__), CliNameSpace())
        return args

    def exec(self, context: CliContext, args: CliNameSpace):
        build_dir = context.work_dir
        src_dir = find_vlc_source_dir(build_dir, args.src_dir)

        config = load_build_config(build_dir)
        check_tools(config)

        output = build_vlc(
            args.arch,
            args.sdk,
            config,
            src_dir,
            build_dir,
            link_only=True,
            verbose=args.verbose,
        )
        print(f"\n✅ Linked {output}")
        return CliResult.ok(output)
