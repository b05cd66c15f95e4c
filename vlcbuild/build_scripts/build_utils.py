#!/usr/bin/env python3
# -- coding: utf-8 --
#
# build_utils.py
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
Build utility functions shared by the commands.

- Configuration loading from vlcbuild.toml
- Preflight checks for required tools
- Cleaning of link outputs
"""

import os
import platform
import shutil
import sys

if sys.version_info >= (3, 11, 0, "alpha", 7):
    import tomllib
else:
    # For Python < 3.11, try to import tomli as fallback
    try:
        import tomli as tomllib
    except ImportError:
        tomllib = None

try:
    from vlcbuild.build_scripts.errors import ConfigurationError, ToolingMissingError
    from vlcbuild.utils.apple.config import BuildConfig
except ImportError:
    from errors import ConfigurationError, ToolingMissingError
    from utils.apple.config import BuildConfig

CONFIG_FILE_NAME = "vlcbuild.toml"

# Tools every build needs, the compiler and nm are added per configuration
REQUIRED_TOOLS = ["xcrun", "make"]


def load_build_config(project_dir=None):
    """
    Load the build configuration from vlcbuild.toml.

    Falls back to the built-in defaults if the file does not exist.

    Args:
        project_dir: directory containing vlcbuild.toml, the current
            working directory by default

    Returns:
        BuildConfig

    Raises:
        ConfigurationError: the file is not valid TOML or has bad values
        ToolingMissingError: no TOML parser is installed
    """
    if project_dir is None:
        project_dir = os.getcwd()
    config_file = os.path.join(project_dir, CONFIG_FILE_NAME)

    if not os.path.isfile(config_file):
        print(f"   ⚠️  Warning: {CONFIG_FILE_NAME} not found at {config_file}")
        print("   ⚠️  Using default configuration values")
        return BuildConfig()

    if not tomllib:
        raise ToolingMissingError(
            f"Cannot read {config_file}: tomllib not available. Install 'tomli' for Python < 3.11"
        )

    try:
        with open(config_file, "rb") as f:
            toml_data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML in {config_file}: {e}", path=config_file)
    except OSError as e:
        raise ConfigurationError(f"Failed to read {config_file}: {e}", path=config_file)

    try:
        return BuildConfig.from_toml_data(toml_data, source=config_file)
    except ValueError as e:
        raise ConfigurationError(f"Invalid value in {config_file}: {e}", path=config_file)


def find_missing_tools(tools):
    """Names of the tools that are not on PATH, in the given order."""
    missing = []
    for tool in tools:
        # "clang -E" and similar only need the program itself
        program = tool.split()[0]
        if shutil.which(program) is None and program not in missing:
            missing.append(program)
    return missing


def required_tools(config, cc="clang"):
    tools = list(REQUIRED_TOOLS) + [cc]
    if config.link.symbol_reader == "nm":
        tools.append("nm")
    return tools


def check_tools(config, cc="clang"):
    """
    Raises:
        ToolingMissingError: a required tool is missing
    """
    missing = find_missing_tools(required_tools(config, cc))
    if missing:
        raise ToolingMissingError(
            f"Required tools not found: {', '.join(missing)}"
        )


def clean_paths(paths):
    """Remove files and directories, returning the ones that existed."""
    removed = []
    for path in paths:
        if os.path.isdir(path) and not os.path.islink(path):
            shutil.rmtree(path)
        elif os.path.lexists(path):
            os.remove(path)
        else:
            continue
        removed.append(path)
    return removed


def system_is_macos():
    """Check if current platform is macOS/Darwin."""
    return platform.system().lower() == "darwin"
