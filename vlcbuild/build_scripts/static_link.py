#!/usr/bin/env python3
# -- coding: utf-8 --
#
# static_link.py
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
Assemble and link libvlc-full-static.a.

The link set is, in this order:
1. every plugin archive under <vlc prefix>/lib/vlc/plugins
2. static-module-list.o listing the entry function of each plugin
3. libvlc.a, libvlccore.a and libcompat.a
4. every contrib archive under <contrib prefix>/lib

The paths go to a file list (static-libs-list) that Apple's libtool
combines into a single static library.
"""

import os
from dataclasses import dataclass, field
from typing import List

try:
    from vlcbuild.build_scripts.errors import LinkError, ManifestEnumerationError
    from vlcbuild.build_scripts.static_modules import (
        DEFAULT_ENTRY_PREFIX,
        STATIC_MODULELIST_NAME,
        extract_entry_symbol,
        gen_static_module_list,
    )
    from vlcbuild.utils.cmd.cmd_util import BUILD_TIMEOUT_SECOND, exec_command
except ImportError:
    from errors import LinkError, ManifestEnumerationError
    from static_modules import (
        DEFAULT_ENTRY_PREFIX,
        STATIC_MODULELIST_NAME,
        extract_entry_symbol,
        gen_static_module_list,
    )
    from utils.cmd.cmd_util import BUILD_TIMEOUT_SECOND, exec_command

STATIC_LIBS_LIST_NAME = "static-libs-list"
STATIC_LIBRARY_SUFFIX = ".a"


@dataclass
class LinkSet:
    manifest_path: str
    entries: List[str] = field(default_factory=list)
    symbols: List[str] = field(default_factory=list)
    module_list_object: str = ""


def find_archives(root_dir, missing_msg=None):
    """
    All static archives below root_dir, in sorted walk order.

    Raises:
        ManifestEnumerationError: root_dir is missing or cannot be read,
            or an archive path contains a newline
    """
    if not os.path.isdir(root_dir):
        raise ManifestEnumerationError(
            missing_msg or f"Directory '{root_dir}' does not exist", path=str(root_dir)
        )

    def on_error(e):
        raise ManifestEnumerationError(
            f"Failed to enumerate '{e.filename}': {e.strerror}", path=e.filename
        )

    archives = []
    for dirpath, dirnames, filenames in os.walk(root_dir, onerror=on_error):
        dirnames.sort()
        for filename in sorted(filenames):
            if not filename.endswith(STATIC_LIBRARY_SUFFIX):
                continue
            path = os.path.join(dirpath, filename)
            if not os.path.isfile(path):
                continue
            check_manifest_path(path)
            archives.append(path)
    return archives


def check_manifest_path(path):
    # libtool -filelist takes one path per line
    if "\n" in path or "\r" in path:
        raise ManifestEnumerationError(
            f"Path cannot be written to a file list: {path!r}", path=path
        )
    try:
        os.fsencode(path)
    except UnicodeEncodeError:
        raise ManifestEnumerationError(
            f"Path cannot be encoded for the file system: {path!r}", path=path
        )


def write_manifest(manifest_path, entries):
    """
    Write one path per line, byte for byte as the file system names them.

    Raises:
        ManifestEnumerationError: a path has a line break or the file list
            could not be written
    """
    for entry in entries:
        check_manifest_path(entry)
    try:
        with open(manifest_path, "wb") as f:
            for entry in entries:
                f.write(os.fsencode(entry) + b"\n")
    except OSError as e:
        raise ManifestEnumerationError(
            f"Failure writing file list '{manifest_path}': {e.strerror or e}",
            path=str(manifest_path),
        )
    return manifest_path


def read_manifest(manifest_path):
    with open(manifest_path, "rb") as f:
        return [os.fsdecode(line.rstrip(b"\n")) for line in f if line.strip()]


class LinkSetAssembler:
    """
    Collects everything that goes into the full static library.

    Args:
        work_dir: directory receiving static-libs-list and static-module-list.{c,o}
        toolchain: Toolchain used to compile the module list
        reader: symbol reader, see symbol_reader.get_symbol_reader
        entry_prefix: C name prefix of module entry functions
        verbose: print every archive as it is processed
    """

    def __init__(
        self,
        work_dir,
        toolchain,
        reader=None,
        entry_prefix=DEFAULT_ENTRY_PREFIX,
        timeout_second=BUILD_TIMEOUT_SECOND,
        verbose=False,
    ):
        self.work_dir = work_dir
        self.toolchain = toolchain
        self.reader = reader
        self.entry_prefix = entry_prefix
        self.timeout_second = timeout_second
        self.verbose = verbose

    @property
    def manifest_path(self):
        return os.path.join(self.work_dir, STATIC_LIBS_LIST_NAME)

    def generated_paths(self):
        return [
            self.manifest_path,
            os.path.join(self.work_dir, f"{STATIC_MODULELIST_NAME}.c"),
            os.path.join(self.work_dir, f"{STATIC_MODULELIST_NAME}.o"),
        ]

    def reset(self):
        """Remove stale outputs and start with an empty manifest."""
        try:
            os.makedirs(self.work_dir, exist_ok=True)
            for path in self.generated_paths():
                if os.path.lexists(path):
                    os.remove(path)
        except OSError as e:
            failed = e.filename or self.work_dir
            raise ManifestEnumerationError(
                f"Failed to prepare '{failed}' for linking: {e.strerror or e}",
                path=str(failed),
            )
        write_manifest(self.manifest_path, [])

    def assemble(self, plugins_dir, core_archives, contrib_lib_dir) -> LinkSet:
        """
        Build the manifest for one link.

        Args:
            plugins_dir: installed plugin directory, module removal already applied
            core_archives: libvlc, libvlccore and libcompat archives, in link order
            contrib_lib_dir: lib directory of the contrib install prefix

        Raises:
            ManifestEnumerationError: a directory or core archive is missing
            ArchiveInspectionError, ModuleSymbolMissingError: a plugin is unusable
            GeneratedFileWriteError, CompilationError: the module list failed
        """
        self.reset()
        link_set = LinkSet(manifest_path=self.manifest_path)

        print("Generating static module list")
        plugins = find_archives(
            plugins_dir, f"Plugin directory '{plugins_dir}' does not exist"
        )
        for archive in plugins:
            symbol = extract_entry_symbol(
                archive, reader=self.reader, entry_prefix=self.entry_prefix
            )
            if self.verbose:
                print(f"  {symbol} <- {archive}")
            link_set.symbols.append(symbol)
            link_set.entries.append(archive)

        link_set.module_list_object = gen_static_module_list(
            self.work_dir, link_set.symbols, self.toolchain, self.timeout_second
        )
        link_set.entries.append(link_set.module_list_object)
        print(f"  {len(link_set.symbols)} modules")

        for archive in core_archives:
            check_manifest_path(archive)
            if not os.path.isfile(archive):
                raise ManifestEnumerationError(
                    f"Core library '{archive}' not found, was VLC installed?",
                    path=str(archive),
                )
            link_set.entries.append(archive)

        contribs = find_archives(
            contrib_lib_dir,
            f"Dependency directory '{contrib_lib_dir}' does not exist,"
            " dependencies were not built/installed",
        )
        link_set.entries.extend(contribs)

        write_manifest(self.manifest_path, link_set.entries)
        return link_set


def link_static_library(
    libtool, manifest_path, output_path, timeout_second=BUILD_TIMEOUT_SECOND
):
    """
    Combine all archives listed in manifest_path into output_path.

    The manifest is left in place when libtool fails.

    Raises:
        LinkError: libtool failed or timed out, or a previous output
            could not be removed
    """
    try:
        if os.path.lexists(output_path):
            os.remove(output_path)
    except OSError as e:
        raise LinkError(
            f"Failed to remove previous '{output_path}': {e.strerror or e}",
            path=str(output_path),
        )
    cmd = [
        libtool,
        "-static",
        "-no_warning_for_no_symbols",
        "-filelist",
        str(manifest_path),
        "-o",
        str(output_path),
    ]
    err_code, err_msg = exec_command(cmd, timeout_second=timeout_second)
    if err_code != 0:
        raise LinkError(
            f"Linking '{output_path}' failed (exit {err_code}),"
            f" file list kept at '{manifest_path}'",
            path=str(output_path),
            output=err_msg,
        )
    return output_path
