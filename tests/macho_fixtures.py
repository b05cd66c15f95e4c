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

"""Builders for minimal Mach-O objects and ar archives used by the tests."""

import struct

MH_MAGIC = 0xFEEDFACE
MH_MAGIC_64 = 0xFEEDFACF
CPU_TYPE_X86_64 = 0x01000007
CPU_TYPE_ARM64 = 0x0100000C

N_EXT = 0x01
N_SECT = 0x0E
N_STAB_FUN = 0x24

# (name, n_type, n_sect)
def text_symbol(name):
    """Defined global function in __text."""
    return (name, N_SECT | N_EXT, 1)


def local_symbol(name):
    return (name, N_SECT, 1)


def undefined_symbol(name):
    return (name, N_EXT, 0)


def debug_symbol(name):
    return (name, N_STAB_FUN, 1)


def macho_object(symbols, is_64=True, big_endian=False, cputype=CPU_TYPE_X86_64):
    """
    Mach-O MH_OBJECT with one __TEXT,__text section and an LC_SYMTAB.

    Args:
        symbols: (name, n_type, n_sect) tuples, see text_symbol() and friends
    """
    e = ">" if big_endian else "<"
    header_size = 32 if is_64 else 28
    if is_64:
        seg_size = 72 + 80
    else:
        seg_size = 56 + 68
    symtab_size = 24
    sizeofcmds = seg_size + symtab_size

    strtab = b"\0"
    offsets = []
    for name, _type, _sect in symbols:
        offsets.append(len(strtab))
        strtab += name.encode("utf-8") + b"\0"
    nlist_size = 16 if is_64 else 12
    symoff = header_size + sizeofcmds
    stroff = symoff + nlist_size * len(symbols)

    magic = MH_MAGIC_64 if is_64 else MH_MAGIC
    if is_64:
        header = struct.pack(f"{e}IiiIIIII", magic, cputype, 3, 1, 2, sizeofcmds, 0, 0)
        segment = struct.pack(
            f"{e}II16sQQQQiiII",
            0x19, seg_size, b"", 0, 0, 0, 0, 7, 7, 1, 0,
        )
        section = struct.pack(
            f"{e}16s16sQQIIIIIIII",
            b"__text", b"__TEXT", 0, 0, 0, 0, 0, 0, 0, 0, 0, 0,
        )
    else:
        header = struct.pack(f"{e}IiiIIII", magic, cputype, 3, 1, 2, sizeofcmds, 0)
        segment = struct.pack(
            f"{e}II16sIIIIiiII",
            0x1, seg_size, b"", 0, 0, 0, 0, 7, 7, 1, 0,
        )
        section = struct.pack(
            f"{e}16s16sIIIIIIIII",
            b"__text", b"__TEXT", 0, 0, 0, 0, 0, 0, 0, 0, 0,
        )
    symtab = struct.pack(f"{e}IIIIII", 0x2, symtab_size, symoff, len(symbols), stroff, len(strtab))

    nlists = b""
    for (name, n_type, n_sect), strx in zip(symbols, offsets):
        if is_64:
            nlists += struct.pack(f"{e}IBBhQ", strx, n_type, n_sect, 0, 0)
        else:
            nlists += struct.pack(f"{e}IBBhI", strx, n_type, n_sect, 0, 0)

    data = header + segment + section + symtab + nlists + strtab
    assert len(header + segment + section + symtab) == symoff
    return data


def _ar_header(name, size):
    header = (
        f"{name:<16}{0:<12}{0:<6}{0:<6}{644:<8}{size:<10}"
    ).encode("ascii") + b"`\n"
    assert len(header) == 60
    return header


def _pad(body):
    return body + (b"\n" if len(body) % 2 else b"")


def bsd_archive(members, with_index=True):
    """
    BSD ar archive (as written by Apple's ar/libtool).

    Args:
        members: (name, data) tuples
        with_index: start with a __.SYMDEF SORTED index member
    """
    out = b"!<arch>\n"
    if with_index:
        members = [("__.SYMDEF SORTED", b"\0" * 8)] + list(members)
    for name, data in members:
        raw_name = name.encode("utf-8")
        # names are stored NUL padded to a multiple of 8
        raw_name += b"\0" * (8 - len(raw_name) % 8)
        body = raw_name + data
        out += _ar_header(f"#1/{len(raw_name)}", len(body)) + _pad(body)
    return out


def gnu_archive(members):
    """GNU ar archive with a // long name table."""
    table = b""
    entries = []
    for name, data in members:
        if len(name) > 15:
            entries.append((f"/{len(table)}", data))
            table += name.encode("utf-8") + b"/\n"
        else:
            entries.append((name + "/", data))
    out = b"!<arch>\n"
    out += _ar_header("/", 4) + b"\0\0\0\0"
    if table:
        out += _ar_header("//", len(table)) + _pad(table)
    for name, data in entries:
        out += _ar_header(name, len(data)) + _pad(data)
    return out


def fat_file(slices):
    """
    Universal file from (cputype, data) slices.
    """
    header_size = 8 + 20 * len(slices)
    out = struct.pack(">II", 0xCAFEBABE, len(slices))
    offset = (header_size + 15) // 16 * 16
    body = b""
    for cputype, data in slices:
        out += struct.pack(">iiIII", cputype, 0, offset + len(body), len(data), 4)
        body += data
        while len(body) % 16:
            body += b"\0"
    out += b"\0" * (offset - len(out))
    return out + body


def plugin_archive(entry_symbols, extra_symbols=(), member="plugin.o"):
    """BSD archive of one object defining the given entry functions."""
    symbols = [text_symbol(s) for s in entry_symbols] + list(extra_symbols)
    return bsd_archive([(member, macho_object(symbols))])


def write_plugin(path, entry_symbols, extra_symbols=()):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(plugin_archive(entry_symbols, extra_symbols))
    return path
