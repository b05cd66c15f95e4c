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
from copier import run_copy

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
    from vlcbuild.build_scripts.build_utils import CONFIG_FILE_NAME
except ImportError:
    from utils.context.namespace import CliNameSpace
    from utils.context.context import CliContext
    from utils.context.command import CliCommand
    from utils.context.result import CliResult
    from build_scripts.build_utils import CONFIG_FILE_NAME

# bundled copier template
TEMPLATE_PATH = os.path.join(PROJECT_ROOT_PATH, "templates", "init")


def parse_template_data(items):
    """KEY=VALUE strings to template answers, 'true'/'false' become booleans."""
    data = {}
    for item in items or []:
        if "=" not in item:
            print(f"   ⚠️  Warning: ignoring '{item}', expected KEY=VALUE")
            continue
        key, value = item.split("=", 1)
        # Convert string boolean values to actual booleans
        if value.lower() == "true":
            value = True
        elif value.lower() == "false":
            value = False
        data[key] = value
    return data


class Init(CliCommand):
    def description(self) -> str:
        return """
        Create vlcbuild.toml in the current directory.

        The file holds deployment targets, contrib and configure options,
        the module removal list and link settings. Without it the built-in
        defaults are used.

        By default, the command runs in non-interactive mode using default values.
        Use --interact to enable interactive mode with prompts.

        Examples:
            vlcbuild init
            vlcbuild init --interact
            vlcbuild init --force --data deployment_target_ios=12.0
            vlcbuild init --data extra_removed_modules=vdpau,xcb_window
            vlcbuild init --data symbol_reader=nm
        """

    def cli(self, argv=None) -> CliNameSpace:
        parser = argparse.ArgumentParser(
            prog="vlcbuild init",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            description=self.description(),
        )
        parser.add_argument(
            "--data",
            action="append",
            help="Template data in KEY=VALUE format (can be used multiple times)",
        )
        parser.add_argument(
            "--interact",
            action="store_true",
            help="Enable interactive mode with prompts (default is non-interactive)",
        )
        parser.add_argument(
            "--force",
            action="store_true",
            help="Overwrite an existing vlcbuild.toml without asking",
        )
        args, unknown = parser.parse_known_args(
            self.command_argv(argv, __file__), CliNameSpace()
        )
        return args

    def exec(self, context: CliContext, args: CliNameSpace):
        current_dir = context.work_dir
        config_file = os.path.join(current_dir, CONFIG_FILE_NAME)

        print(f"Initializing {CONFIG_FILE_NAME} in '{current_dir}'")
        context.verbose_msg(f"Configuration: {vars(args)}")

        if os.path.exists(config_file):
            print(f"\n⚠️  WARNING: {CONFIG_FILE_NAME} already exists!")
            if not args.force:
                response = input("\nDo you want to overwrite it? (y/N): ")
                if response.lower() != "y":
                    print("Aborted.")
                    return CliResult.ok(None)

        data = parse_template_data(args.data)
        # Use defaults for unspecified questions unless --interact is provided
        use_defaults = not args.interact

        run_copy(
            TEMPLATE_PATH,
            current_dir,
            data=data,
            unsafe=True,
            defaults=use_defaults,
            overwrite=True,
            quiet=True,
        )

        print(f"\n✅ Created {config_file}")
        print(f"\nNext steps:")
        print(f"  # Review {CONFIG_FILE_NAME}, then run")
        print(f"  vlcbuild build --arch=arm64 --sdk=iphoneos")
        return CliResult.ok(config_file)
