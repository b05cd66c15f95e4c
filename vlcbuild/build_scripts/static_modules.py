#!/usr/bin/env python3
# -- coding: utf-8 --
#
# static_modules.py
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
Static module table of a fully static libVLC.

Every plugin archive defines one module entry function
(``vlc_entry__<module>``). In a static build nothing discovers plugins at
runtime, so the entry functions are listed in a generated C file that
defines ``vlc_static_modules``, a NULL-terminated array libvlccore walks
at startup.

- extract_entry_symbol() finds the entry function of one plugin archive
- render_module_list() produces the C source for a list of entry functions
- write_module_list() / compile_module_list() put it on disk and build it
"""

import os
import re

try:
    from vlcbuild.build_scripts.errors import (
        ArchiveInspectionError,
        CompilationError,
        DuplicateModuleSymbolError,
        GeneratedFileWriteError,
        ModuleSymbolMissingError,
    )
    from vlcbuild.build_scripts.symbol_reader import MachOSymbolReader
    from vlcbuild.utils.cmd.cmd_util import exec_command
except ImportError:
    from errors import (
        ArchiveInspectionError,
        CompilationError,
        DuplicateModuleSymbolError,
        GeneratedFileWriteError,
        ModuleSymbolMissingError,
    )
    from symbol_reader import MachOSymbolReader
    from utils.cmd.cmd_util import exec_command

DEFAULT_ENTRY_PREFIX = "vlc_entry__"
STATIC_MODULE_ARRAY_NAME = "vlc_static_modules"
STATIC_MODULELIST_NAME = "static-module-list"

C_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def extract_entry_symbol(archive_path, reader=None, entry_prefix=DEFAULT_ENTRY_PREFIX):
    """
    Find the module entry function defined by a plugin archive.

    Only defined global symbols count, references to other modules'
    entry functions are ignored.

    Args:
        archive_path: plugin archive, e.g. .../plugins/codec/libfoo_plugin.a
        reader: symbol reader, MachOSymbolReader by default
        entry_prefix: C name prefix of entry functions

    Returns:
        str: C name of the entry function, e.g. "vlc_entry__foo"

    Raises:
        ArchiveInspectionError: the archive could not be read, or the
            symbol found is not a usable C identifier
        ModuleSymbolMissingError: no entry function is defined
        DuplicateModuleSymbolError: more than one entry function is defined
    """
    if reader is None:
        reader = MachOSymbolReader()
    records = reader.read(archive_path)

    names = []
    for record in records:
        if not (record.defined and record.external):
            continue
        if record.c_name.startswith(entry_prefix) and record.c_name not in names:
            names.append(record.c_name)

    if not names:
        raise ModuleSymbolMissingError(
            f"Failed to find module entry function in '{archive_path}'",
            path=str(archive_path),
        )
    if len(names) > 1:
        raise DuplicateModuleSymbolError(
            f"Found {len(names)} module entry functions in '{archive_path}': "
            f"{', '.join(names)}",
            path=str(archive_path),
            symbols=names,
        )

    symbol = names[0]
    if symbol == entry_prefix or not C_IDENTIFIER.match(symbol):
        raise ArchiveInspectionError(
            f"Malformed module entry symbol '{symbol}' in '{archive_path}'",
            path=str(archive_path),
        )
    return symbol


def render_module_list(symbols):
    """
    C source declaring each entry function and the static module array.

    An empty list yields an array holding only the NULL terminator.

    Raises:
        ValueError: a symbol is not a valid C identifier
    """
    for symbol in symbols:
        if not C_IDENTIFIER.match(symbol):
            raise ValueError(f"'{symbol}' is not a valid C identifier")

    declarations = "".join(f"VLC_ENTRY_FUNC({symbol});\n" for symbol in symbols)
    entries = "".join(f"    {symbol},\n" for symbol in symbols)
    return (
        "// Generated by vlcbuild, do not edit.\n"
        "#include <stddef.h>\n"
        "\n"
        "#define VLC_ENTRY_FUNC(funcname) \\\n"
        "    int funcname(int (*)(void *, void *, int, ...), void *)\n"
        "\n"
        f"{declarations}"
        "\n"
        f"const void *{STATIC_MODULE_ARRAY_NAME}[] = {{\n"
        f"{entries}"
        "    NULL\n"
        "};\n"
    )


def count_module_entries(source):
    """Number of non-NULL entries of the static module array in source."""
    match = re.search(
        re.escape(STATIC_MODULE_ARRAY_NAME) + r"\[\]\s*=\s*\{(.*?)\};", source, re.S
    )
    if match is None:
        raise ValueError(f"no {STATIC_MODULE_ARRAY_NAME} array in source")
    items = [x.strip() for x in match.group(1).split(",")]
    return len([x for x in items if x and x != "NULL"])


def write_module_list(output_path, symbols):
    """
    Write the module list source, replacing any previous file.

    Raises:
        GeneratedFileWriteError: the file could not be written
    """
    contents = render_module_list(symbols)
    try:
        if os.path.lexists(output_path):
            os.remove(output_path)
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(contents)
            f.flush()
    except OSError as e:
        raise GeneratedFileWriteError(
            f"Failure writing static module list file '{output_path}': {e.strerror or e}",
            path=str(output_path),
        )
    return output_path


def check_module_list(source_path, expected):
    """
    Read the written source back and verify its entry count.

    Raises:
        GeneratedFileWriteError: the file cannot be read or lists a
            different number of entry functions
    """
    try:
        with open(source_path, "r", encoding="utf-8") as f:
            count = count_module_entries(f.read())
    except (OSError, ValueError) as e:
        raise GeneratedFileWriteError(
            f"Static module list file '{source_path}' is unreadable: {e}",
            path=str(source_path),
        )
    if count != expected:
        raise GeneratedFileWriteError(
            f"Static module list file '{source_path}' lists {count} modules,"
            f" expected {expected}",
            path=str(source_path),
        )


def compile_module_list(source_path, object_path, toolchain, timeout_second=600):
    """
    Compile the module list source to a relocatable object.

    Args:
        source_path: generated .c file
        object_path: .o file to produce
        toolchain: Toolchain providing the compiler and its flags

    Raises:
        CompilationError: the compiler failed or a stale object could not
            be removed
    """
    try:
        if os.path.lexists(object_path):
            os.remove(object_path)
    except OSError as e:
        raise CompilationError(
            f"Failed to remove stale object '{object_path}': {e.strerror or e}",
            path=str(object_path),
        )
    cmd = toolchain.compile_command(source_path, object_path)
    err_code, err_msg = exec_command(
        cmd, env=toolchain.environ(), timeout_second=timeout_second
    )
    if err_code != 0:
        raise CompilationError(
            f"Compiling module list file '{source_path}' failed (exit {err_code})",
            path=str(source_path),
            output=err_msg,
        )
    if not os.path.isfile(object_path):
        raise CompilationError(
            f"Compiler did not produce '{object_path}'", path=str(object_path)
        )
    return object_path


def gen_static_module_list(work_dir, symbols, toolchain, timeout_second=600):
    """
    Generate and compile static-module-list.{c,o} in work_dir.

    Returns:
        str: path of the compiled object
    """
    source_path = os.path.join(work_dir, f"{STATIC_MODULELIST_NAME}.c")
    object_path = os.path.join(work_dir, f"{STATIC_MODULELIST_NAME}.o")
    write_module_list(source_path, symbols)
    check_module_list(source_path, len(symbols))
    return compile_module_list(source_path, object_path, toolchain, timeout_second)
