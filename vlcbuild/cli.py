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
import importlib
import argparse

# setup path
# >>>>>>>>>>>>>>
SCRIPT_PATH = os.path.split(os.path.realpath(__file__))[0]
PROJECT_ROOT_PATH = os.path.dirname(SCRIPT_PATH)
sys.path.append(SCRIPT_PATH)
sys.path.append(PROJECT_ROOT_PATH)
PACKAGE_NAME = os.path.basename(SCRIPT_PATH)
# <<<<<<<<<<<<<<
# import this project modules
try:
    from vlcbuild.utils.context.namespace import CliNameSpace
    from vlcbuild.utils.context.context import CliContext
    from vlcbuild.utils.context.command import CliCommand
    from vlcbuild.utils.context.result import CliResult
    from vlcbuild.build_scripts.errors import VlcBuildError
except ImportError:
    from utils.context.namespace import CliNameSpace
    from utils.context.context import CliContext
    from utils.context.command import CliCommand
    from utils.context.result import CliResult
    from build_scripts.errors import VlcBuildError


# Root Class for Command Line Interface
class Cli(CliCommand):
    def description(self) -> str:
        return """vlcbuild - Build a fully static libVLC for Apple platforms

Builds the extras tools, the contribs and VLC for one architecture and SDK,
then combines every plugin, the VLC core and all contribs into
libvlc-full-static.a.

USAGE:
    vlcbuild <command> [options]

COMMANDS:
    build       Build tools, contribs and VLC, then link the static library
    link        Only remove modules and link against an existing install
    check       Check that the required tools are installed
    clean       Remove the link outputs
    init        Create vlcbuild.toml in the current directory

EXAMPLES:
    vlcbuild build --arch=arm64 --sdk=iphoneos
    vlcbuild build --arch=x86_64 --sdk=iphonesimulator -j 8
    vlcbuild link --arch=arm64 --sdk=appletvos
    vlcbuild init --data deployment_target_ios=12.0

Run from a build directory inside the VLC source tree, e.g. vlc/build-ios.

For more information on a specific command:
    vlcbuild <command> --help
        """

    def get_command_list(self) -> list:
        arr = []
        for command in os.listdir(os.path.join(SCRIPT_PATH, "commands")):
            if not command.startswith("_") and command.endswith(".py"):
                arr.append(os.path.splitext(os.path.basename(command))[0])
        return sorted(arr)

    def _parser(self, add_help=True):
        parser = argparse.ArgumentParser(
            prog="vlcbuild",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            description=self.description(),
            add_help=add_help,
        )
        parser.add_argument(
            "subcommand",
            metavar=f"{self.get_command_list()}",
            type=str,
            nargs="?" if not add_help else None,
            choices=self.get_command_list(),
        )
        return parser

    def cli(self, argv=None) -> CliNameSpace:
        if argv is None:
            argv = sys.argv[1:]
        # vlcbuild --help, but not vlcbuild build --help
        if len(argv) == 1 and argv[0] in ["--help", "-h"]:
            self._parser().print_help()
            sys.exit(0)

        # parse only known args, the subcommand parses the rest
        args, unknown = self._parser(add_help=False).parse_known_args(argv, CliNameSpace())
        args.argv = list(argv)
        return args

    def exec(self, context: CliContext, args: CliNameSpace):
        if not args.subcommand:
            print("ERROR: No command specified\n", file=sys.stderr)
            self._parser().print_help()
            sys.exit(1)

        # get module name
        module_name = f"{PACKAGE_NAME}.commands.{args.subcommand}"
        # get class name
        class_name = args.subcommand.capitalize()
        # import module
        module = importlib.import_module(module_name)
        # get class of module
        klass = getattr(module, class_name)
        # instance class
        sub_cmd = klass()
        sub_args = sub_cmd.cli(args.argv)
        context.verbose = getattr(sub_args, "verbose", False)
        # now execute the subcommand
        try:
            result = sub_cmd.exec(context, sub_args)
        except VlcBuildError as e:
            result = CliResult.fail(e)
        if result is None:
            result = CliResult.ok()
        if result.is_failure():
            report_error(result.get_error(), context.verbose)
        return result


def report_error(error, verbose=False):
    print(f"ERROR: {error}", file=sys.stderr)
    if verbose and isinstance(error, VlcBuildError):
        print(error.describe(), file=sys.stderr)


def main(argv=None):
    cmd = Cli()
    result = cmd.exec(CliContext(), cmd.cli(argv))
    sys.exit(result.exit_code())


if __name__ == "__main__":
    main()
