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
import shutil

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
    from vlcbuild.utils.cmd.cmd_util import exec_command_with_timeout_second
    from vlcbuild.build_scripts.build_utils import (
        load_build_config,
        required_tools,
        system_is_macos,
    )
    from vlcbuild.build_scripts.errors import ToolingMissingError
except ImportError:
    from utils.context.namespace import CliNameSpace
    from utils.context.context import CliContext
    from utils.context.command import CliCommand
    from utils.context.result import CliResult
    from utils.cmd.cmd_util import exec_command_with_timeout_second
    from build_scripts.build_utils import (
        load_build_config,
        required_tools,
        system_is_macos,
    )
    from build_scripts.errors import ToolingMissingError


class Check(CliCommand):
    def description(self) -> str:
        return """
        This is a subcommand to check that the tools needed to build are installed.

        Checked: xcrun, make, clang, Apple libtool, and nm when
        [link] symbol_reader = "nm" is set in vlcbuild.toml.

        Examples:
            vlcbuild check
            vlcbuild check --verbose
        """

    def cli(self, argv=None) -> CliNameSpace:
        parser = argparse.ArgumentParser(
            prog="vlcbuild check",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            description=self.description(),
        )
        parser.add_argument(
            "--verbose",
            action="store_true",
            help="Show detailed information",
        )
        args, unknown = parser.parse_known_args(
            self.command_argv(argv, __file__), CliNameSpace()
        )
        return args

    def exec(self, context: CliContext, args: CliNameSpace):
        print("🔍 Checking build tools...\n")
        config = load_build_config(context.work_dir)

        checker = ToolChecker(verbose=args.verbose)
        checker.check_host()
        checker.check_tools(required_tools(config))
        checker.check_apple_libtool()
        checker.print_summary()

        if checker.errors:
            return CliResult.fail(
                ToolingMissingError(f"{len(checker.errors)} required tool(s) missing")
            )
        return CliResult.ok()


class ToolChecker:
    def __init__(self, verbose=False):
        self.verbose = verbose
        self.warnings = []
        self.errors = []

    def check_host(self):
        self.print_section("Host")
        if system_is_macos():
            self.print_ok("macOS")
        else:
            self.print_warning("Not running on macOS, Apple SDKs are unlikely to be available")

    def check_tools(self, tools):
        self.print_section("Tools")
        for tool in tools:
            program = tool.split()[0]
            path = shutil.which(program)
            if path is None:
                self.print_error(f"{program}: Not found")
            elif self.verbose:
                self.print_ok(f"{program}: {path}")
            else:
                self.print_ok(f"{program}: Found")

    def check_apple_libtool(self):
        if shutil.which("xcrun") is None:
            return
        err_code, output = exec_command_with_timeout_second(["xcrun", "-f", "libtool"], 30)
        if err_code != 0:
            self.print_error("Apple libtool: Not found with 'xcrun -f libtool'")
        else:
            self.print_ok(f"Apple libtool: {output.strip()}")

    def print_ok(self, msg):
        """Print success message"""
        print(f"  ✅ {msg}")

    def print_error(self, msg):
        """Print error message"""
        print(f"  ❌ {msg}")
        self.errors.append(msg)

    def print_warning(self, msg):
        """Print warning message"""
        print(f"  ⚠️  {msg}")
        self.warnings.append(msg)

    def print_section(self, title):
        """Print section header"""
        print(f"\n{'='*60}")
        print(f"  {title}")
        print(f"{'='*60}")

    def print_summary(self):
        self.print_section("Summary")
        if not self.errors and not self.warnings:
            print("  ✅ All checks passed")
            return
        for msg in self.warnings:
            print(f"  ⚠️  {msg}")
        for msg in self.errors:
            print(f"  ❌ {msg}")
