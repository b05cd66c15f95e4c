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
import glob
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
    from vlcbuild.build_scripts.build_utils import clean_paths
except ImportError:
    from utils.context.namespace import CliNameSpace
    from utils.context.context import CliContext
    from utils.context.command import CliCommand
    from utils.context.result import CliResult
    from build_scripts.build_utils import clean_paths


def collect_clean_paths(build_dir, target="link"):
    """
    Paths removed by 'vlcbuild clean' in build_dir.

    Args:
        target: "link" for the link outputs of every target, "all" for
            every build and install directory as well
    """
    if target == "all":
        patterns = ["build", "contrib", "vlc-*"]
    else:
        patterns = [os.path.join("build", "*", "build-sh")]
    paths = []
    for pattern in patterns:
        paths.extend(sorted(glob.glob(os.path.join(build_dir, pattern))))
    return paths


class Clean(CliCommand):
    def description(self) -> str:
        return """
        This is a subcommand to clean build artifacts.

        Cleans the following directories of the current build directory:
        - build/*/build-sh/       # static-libs-list, static-module-list.{c,o}, libvlc-full-static.a
        With 'all' also:
        - build/                  # VLC build trees
        - contrib/                # contrib install prefixes
        - vlc-*/                  # VLC install prefixes

        Examples:
            vlcbuild clean              # Clean the link outputs
            vlcbuild clean all -y       # Clean everything without confirmation
            vlcbuild clean --dry-run    # Preview what will be cleaned
        """

    def get_target_list(self) -> list:
        return ["link", "all"]

    def cli(self, argv=None) -> CliNameSpace:
        parser = argparse.ArgumentParser(
            prog="vlcbuild clean",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            description=self.description(),
        )
        parser.add_argument(
            "target",
            nargs="?",
            default="link",
            type=str,
            choices=self.get_target_list(),
            help="What to clean (default: link)",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would be cleaned without actually deleting",
        )
        parser.add_argument(
            "-y", "--yes",
            action="store_true",
            help="Skip confirmation prompts",
        )
        args, unknown = parser.parse_known_args(
            self.command_argv(argv, __file__), CliNameSpace()
        )
        return args

    def exec(self, context: CliContext, args: CliNameSpace):
        print("Cleaning build artifacts...\n")

        paths = collect_clean_paths(context.work_dir, args.target)
        if not paths:
            print("Nothing to clean.")
            return CliResult.ok([])

        for path in paths:
            print(f"  {os.path.relpath(path, context.work_dir)}")

        if args.dry_run:
            print("\n[dry-run] Nothing was deleted.")
            return CliResult.ok([])

        if args.target == "all" and not args.yes:
            response = input("\nDo you want to continue? (y/N): ")
            if response.lower() != "y":
                print("Aborted.")
                return CliResult.ok([])

        removed = clean_paths(paths)
        print(f"\n✅ Removed {len(removed)} item(s)")
        return CliResult.ok(removed)
