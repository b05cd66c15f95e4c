#!/usr/bin/env python3
# -- coding: utf-8 --
#
# symbol_reader.py
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
Symbol tables of static archives as structured records.

Two readers return the same SymbolRecord list:

- MachOSymbolReader parses the archive in-process: ``ar`` containers (BSD
  and GNU long-name variants), universal (fat) files and Mach-O 32/64-bit
  object members, reading their LC_SYMTAB nlist entries.
- NmSymbolReader runs ``nm -g -P --defined-only`` and reads the POSIX
  portable output, one ``name type [value [size]]`` record per line.

Mach-O prepends an underscore to every C symbol. Both readers remove it by
that rule and expose the C-level name as ``SymbolRecord.c_name``.
"""

import os
import struct
import subprocess
from dataclasses import dataclass
from typing import List, Optional

try:
    from vlcbuild.build_scripts.errors import ArchiveInspectionError
    from vlcbuild.utils.cmd.cmd_util import (
        NOT_FOUND_CODE,
        TIMEOUT_CODE,
        exec_command_with_timeout_second,
    )
except ImportError:
    from errors import ArchiveInspectionError
    from utils.cmd.cmd_util import (
        NOT_FOUND_CODE,
        TIMEOUT_CODE,
        exec_command_with_timeout_second,
    )

AR_MAGIC = b"!<arch>\n"
AR_HEADER_SIZE = 60
AR_HEADER_END = b"`\n"

# Symbol index members, they carry no object code
AR_INDEX_NAMES = (
    "/",
    "/SYM64/",
    "__.SYMDEF",
    "__.SYMDEF SORTED",
    "__.SYMDEF_64",
    "__.SYMDEF_64 SORTED",
)

FAT_MAGIC = 0xCAFEBABE
FAT_MAGIC_64 = 0xCAFEBABF

MH_MAGIC = 0xFEEDFACE
MH_MAGIC_64 = 0xFEEDFACF
MH_CIGAM = 0xCEFAEDFE
MH_CIGAM_64 = 0xCFFAEDFE

LC_SEGMENT = 0x1
LC_SYMTAB = 0x2
LC_SEGMENT_64 = 0x19

# nlist n_type bits
N_STAB = 0xE0
N_TYPE = 0x0E
N_EXT = 0x01
N_UNDF = 0x0
N_ABS = 0x2
N_INDR = 0xA
N_PBUD = 0xC
N_SECT = 0xE

MACHO_GLOBAL_PREFIX = "_"

SECTION_TYPE_LETTERS = {
    "__text": "T",
    "__data": "D",
    "__bss": "B",
    "__common": "B",
}


@dataclass(frozen=True)
class SymbolRecord:
    """One symbol table entry of an archive member."""
    name: str  # name as stored in the symbol table
    c_name: str  # name without the platform global prefix
    type: str  # nm-style type letter, lowercase for local symbols
    defined: bool
    external: bool
    member: str = ""  # archive member the symbol comes from


def strip_global_prefix(name: str, prefix: str = MACHO_GLOBAL_PREFIX) -> str:
    if prefix and name.startswith(prefix):
        return name[len(prefix):]
    return name


class MachOSymbolReader:
    """Reads symbol tables of Mach-O static archives without external tools."""

    name = "macho"

    def read(self, archive_path) -> List[SymbolRecord]:
        """
        Read all symbol records of an archive.

        Args:
            archive_path: path of a static archive (.a)

        Returns:
            list: SymbolRecord of every non-debugging symbol, member order

        Raises:
            ArchiveInspectionError: the file is missing or not a readable archive
        """
        try:
            with open(archive_path, "rb") as f:
                data = f.read()
        except OSError as e:
            raise ArchiveInspectionError(
                f"Failed to read archive '{archive_path}': {e.strerror or e}",
                path=str(archive_path),
            )
        try:
            return self._read_container(data, os.path.basename(str(archive_path)))
        except (struct.error, ValueError) as e:
            raise ArchiveInspectionError(
                f"Failed to parse archive '{archive_path}': {e}",
                path=str(archive_path),
            )

    def _read_container(self, data, label) -> List[SymbolRecord]:
        if data.startswith(AR_MAGIC):
            return self._read_ar(data)
        if len(data) >= 8:
            magic = struct.unpack(">I", data[:4])[0]
            if magic in (FAT_MAGIC, FAT_MAGIC_64):
                return self._read_fat(data, magic == FAT_MAGIC_64, label)
            if _macho_endian(data) is not None:
                return _read_macho_symbols(data, label)
        raise ValueError("not an ar archive, universal file or Mach-O object")

    def _read_fat(self, data, is_64, label) -> List[SymbolRecord]:
        nfat = struct.unpack(">I", data[4:8])[0]
        entry_size = 32 if is_64 else 20
        if 8 + nfat * entry_size > len(data):
            raise ValueError(f"truncated universal header ({nfat} architectures)")
        records = []
        seen = set()
        for i in range(nfat):
            pos = 8 + i * entry_size
            if is_64:
                _cpu, _sub, offset, size, _align, _res = struct.unpack(
                    ">iiQQII", data[pos:pos + entry_size]
                )
            else:
                _cpu, _sub, offset, size, _align = struct.unpack(
                    ">iiIII", data[pos:pos + entry_size]
                )
            if offset + size > len(data):
                raise ValueError(f"architecture {i} exceeds file size")
            # every slice holds the same modules, keep one record per symbol
            for record in self._read_container(data[offset:offset + size], label):
                key = (record.member, record.name, record.type)
                if key not in seen:
                    seen.add(key)
                    records.append(record)
        return records

    def _read_ar(self, data) -> List[SymbolRecord]:
        records = []
        for member_name, member_data in iter_ar_members(data):
            if _macho_endian(member_data) is None:
                # bitcode or foreign objects have no Mach-O symbol table
                continue
            records.extend(_read_macho_symbols(member_data, member_name))
        return records


def iter_ar_members(data):
    """
    Yield (name, data) of each object member of an ar archive.

    Index members are skipped. Raises ValueError on a malformed archive.
    """
    if not data.startswith(AR_MAGIC):
        raise ValueError("missing ar magic")
    pos = len(AR_MAGIC)
    gnu_names = b""
    while pos < len(data):
        if pos + AR_HEADER_SIZE > len(data):
            raise ValueError(f"truncated member header at offset {pos}")
        header = data[pos:pos + AR_HEADER_SIZE]
        if header[58:60] != AR_HEADER_END:
            raise ValueError(f"bad member header at offset {pos}")
        raw_name = header[:16].decode("utf-8", errors="replace").rstrip(" ")
        size = int(header[48:58].strip() or b"0")
        start = pos + AR_HEADER_SIZE
        end = start + size
        if end > len(data):
            raise ValueError(f"member '{raw_name}' exceeds archive size")
        body = data[start:end]
        # members are 2-byte aligned
        pos = end + (size % 2)

        if raw_name.startswith("#1/"):
            # BSD: the real name precedes the member data
            name_len = int(raw_name[3:])
            name = body[:name_len].rstrip(b"\0").decode("utf-8", errors="replace")
            body = body[name_len:]
        elif raw_name == "//":
            gnu_names = body
            continue
        elif raw_name.startswith("/") and raw_name[1:].isdigit():
            offset = int(raw_name[1:])
            name_end = gnu_names.find(b"/\n", offset)
            if name_end < 0:
                name_end = len(gnu_names)
            name = gnu_names[offset:name_end].decode("utf-8", errors="replace")
        elif raw_name in AR_INDEX_NAMES:
            continue
        else:
            name = raw_name[:-1] if raw_name.endswith("/") else raw_name

        if name in AR_INDEX_NAMES:
            continue
        yield name, body


def _macho_endian(data) -> Optional[str]:
    if len(data) < 4:
        return None
    magic = struct.unpack("<I", data[:4])[0]
    if magic in (MH_MAGIC, MH_MAGIC_64):
        return "<"
    if magic in (MH_CIGAM, MH_CIGAM_64):
        return ">"
    return None


def _read_macho_symbols(data, member) -> List[SymbolRecord]:
    endian = _macho_endian(data)
    magic = struct.unpack("<I", data[:4])[0]
    is_64 = magic in (MH_MAGIC_64, MH_CIGAM_64)
    header_size = 32 if is_64 else 28
    if len(data) < header_size:
        raise ValueError(f"truncated Mach-O header in '{member}'")
    ncmds = struct.unpack(f"{endian}I", data[16:20])[0]

    section_names = []  # index n_sect - 1
    symtab = None
    pos = header_size
    for _ in range(ncmds):
        if pos + 8 > len(data):
            raise ValueError(f"truncated load command in '{member}'")
        cmd, cmdsize = struct.unpack(f"{endian}II", data[pos:pos + 8])
        if cmdsize < 8 or pos + cmdsize > len(data):
            raise ValueError(f"bad load command size in '{member}'")
        if cmd == LC_SYMTAB:
            symtab = struct.unpack(f"{endian}IIII", data[pos + 8:pos + 24])
        elif cmd in (LC_SEGMENT, LC_SEGMENT_64):
            section_names.extend(
                _segment_section_names(data, pos, endian, cmd == LC_SEGMENT_64)
            )
        pos += cmdsize

    if symtab is None:
        return []
    symoff, nsyms, stroff, strsize = symtab
    nlist_size = 16 if is_64 else 12
    if symoff + nsyms * nlist_size > len(data) or stroff + strsize > len(data):
        raise ValueError(f"symbol table exceeds object size in '{member}'")
    strtab = data[stroff:stroff + strsize]

    records = []
    for i in range(nsyms):
        entry = symoff + i * nlist_size
        if is_64:
            n_strx, n_type, n_sect, _desc, _value = struct.unpack(
                f"{endian}IBBhQ", data[entry:entry + nlist_size]
            )
        else:
            n_strx, n_type, n_sect, _desc, _value = struct.unpack(
                f"{endian}IBBhI", data[entry:entry + nlist_size]
            )
        if n_type & N_STAB:
            continue
        if n_strx >= len(strtab):
            raise ValueError(f"symbol name offset out of range in '{member}'")
        name_end = strtab.find(b"\0", n_strx)
        if name_end < 0:
            name_end = len(strtab)
        name = strtab[n_strx:name_end].decode("utf-8", errors="replace")
        if not name:
            continue
        kind = n_type & N_TYPE
        external = bool(n_type & N_EXT)
        defined = kind not in (N_UNDF, N_PBUD)
        letter = _type_letter(kind, n_sect, section_names)
        records.append(
            SymbolRecord(
                name=name,
                c_name=strip_global_prefix(name),
                type=letter if external else letter.lower(),
                defined=defined,
                external=external,
                member=member,
            )
        )
    return records


def _segment_section_names(data, pos, endian, is_64):
    if is_64:
        nsects = struct.unpack(f"{endian}I", data[pos + 64:pos + 68])[0]
        first, section_size = pos + 72, 80
    else:
        nsects = struct.unpack(f"{endian}I", data[pos + 48:pos + 52])[0]
        first, section_size = pos + 56, 68
    names = []
    for i in range(nsects):
        start = first + i * section_size
        raw = data[start:start + 16]
        names.append(raw.rstrip(b"\0").decode("utf-8", errors="replace"))
    return names


def _type_letter(kind, n_sect, section_names):
    if kind in (N_UNDF, N_PBUD):
        return "U"
    if kind == N_ABS:
        return "A"
    if kind == N_INDR:
        return "I"
    if 0 < n_sect <= len(section_names):
        return SECTION_TYPE_LETTERS.get(section_names[n_sect - 1], "S")
    return "S"


class NmSymbolReader:
    """Reads defined global symbols through the nm tool."""

    name = "nm"

    def __init__(self, nm="nm", global_prefix=MACHO_GLOBAL_PREFIX, timeout_second=300):
        self.nm = nm
        self.global_prefix = global_prefix
        self.timeout_second = timeout_second

    def command(self, archive_path) -> List[str]:
        return [self.nm, "-g", "-P", "--defined-only", str(archive_path)]

    def read(self, archive_path) -> List[SymbolRecord]:
        err_code, output = exec_command_with_timeout_second(
            self.command(archive_path),
            self.timeout_second,
            stderr=subprocess.PIPE,
        )
        if err_code == TIMEOUT_CODE:
            raise ArchiveInspectionError(
                f"'{self.nm}' timed out on '{archive_path}'", path=str(archive_path)
            )
        if err_code == NOT_FOUND_CODE:
            raise ArchiveInspectionError(
                f"Failed to run '{self.nm}' on '{archive_path}'",
                path=str(archive_path),
                output=output,
            )
        if err_code != 0:
            raise ArchiveInspectionError(
                f"'{self.nm}' failed on '{archive_path}' (exit {err_code})",
                path=str(archive_path),
                output=output,
            )
        return parse_nm_portable_output(
            output, archive_path, global_prefix=self.global_prefix
        )


def parse_nm_portable_output(output, archive_path="", global_prefix=MACHO_GLOBAL_PREFIX):
    """
    Parse ``nm -P`` output into SymbolRecord entries.

    Member headers look like ``libfoo.a[foo.o]:`` and set the member of the
    records that follow.

    Raises:
        ArchiveInspectionError: a record line has fewer than two fields
    """
    records = []
    member = ""
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        if line.endswith(":"):
            header = line[:-1]
            if header.endswith("]") and "[" in header:
                header = header[header.rindex("[") + 1:-1]
            elif header.endswith(")") and "(" in header:
                header = header[header.rindex("(") + 1:-1]
            member = header
            continue
        fields = line.split()
        if len(fields) < 2:
            raise ArchiveInspectionError(
                f"Unexpected nm output line for '{archive_path}': {line!r}",
                path=str(archive_path),
            )
        name, letter = fields[0], fields[1]
        records.append(
            SymbolRecord(
                name=name,
                c_name=strip_global_prefix(name, global_prefix),
                type=letter,
                defined=letter not in ("U", "u", "w", "v"),
                external=letter.isupper(),
                member=member,
            )
        )
    return records


def get_symbol_reader(name="macho", nm="nm", timeout_second=300):
    """Symbol reader selected by the [link] symbol_reader setting."""
    if name == "macho":
        return MachOSymbolReader()
    if name == "nm":
        return NmSymbolReader(nm=nm, timeout_second=timeout_second)
    raise ValueError(f"Unknown symbol reader '{name}'")
