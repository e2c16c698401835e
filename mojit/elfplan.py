"""Layout planning for aarch64 Linux ELF executables.

``plan_image`` parses the ELF and program headers and returns where
each ``PT_LOAD`` segment lands, the entry point, the requested
interpreter and the values the auxiliary vector needs.  It is pure
computation: nothing is mapped.
"""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass, field
from typing import BinaryIO, List, Union

__all__ = ["ElfPlanError", "Prot", "Segment", "Image", "plan_image"]

_U64 = 0xFFFFFFFFFFFFFFFF

_ELFCLASS64 = 2
_EV_CURRENT = 1
_EM_AARCH64 = 183
_ET_EXEC = 2
_ET_DYN = 3
_PT_LOAD = 1
_PT_INTERP = 3
_PT_PHDR = 6
_PF_X = 0x1
_PF_W = 0x2
_PF_R = 0x4
_PN_XNUM = 0xFFFF
_PHDR_SIZE = 56
_SHDR_SIZE = 64

_TYPE_NAMES = {0: "ET_NONE", 1: "ET_REL", 2: "ET_EXEC", 3: "ET_DYN", 4: "ET_CORE"}
_CLASS_NAMES = {0: "ELFCLASSNONE", 1: "ELFCLASS32", 2: "ELFCLASS64"}


class ElfPlanError(ValueError):
    """The input is not an ELF this loader can plan."""


class Prot(enum.IntFlag):
    """Segment protection bits, mirroring PROT_READ/WRITE/EXEC."""

    NONE = 0
    READ = 0x1
    WRITE = 0x2
    EXEC = 0x4


@dataclass(frozen=True)
class Segment:
    """One ``PT_LOAD`` region, with the load bias already applied."""

    vaddr: int
    mem_sz: int
    file_off: int
    file_sz: int
    prot: Prot
    align: int


@dataclass
class Image:
    """Layout plan for a guest ELF."""

    entry: int = 0
    load_bias: int = 0
    segments: List[Segment] = field(default_factory=list)
    interp: str = ""
    phdr_addr: int = 0
    ph_ent: int = _PHDR_SIZE
    ph_num: int = 0
    is_pie: bool = False


def _prot(flags: int) -> Prot:
    prot = Prot.NONE
    if flags & _PF_R:
        prot |= Prot.READ
    if flags & _PF_W:
        prot |= Prot.WRITE
    if flags & _PF_X:
        prot |= Prot.EXEC
    return prot


def _unpack(fmt: str, raw: bytes, offset: int, what: str) -> tuple:
    size = struct.calcsize(fmt)
    if offset < 0 or offset + size > len(raw):
        raise ElfPlanError(f"parse ELF: truncated {what}")
    return struct.unpack_from(fmt, raw, offset)


def plan_image(data: Union[bytes, bytearray, memoryview, BinaryIO], load_bias: int = 0) -> Image:
    """Parse an aarch64 ELF64 image and plan its guest layout.

    ``data`` is the file's bytes or a binary file object.  ``load_bias``
    is applied to position-independent (``ET_DYN``) images and ignored
    for ``ET_EXEC``.  Raises ``ElfPlanError`` for anything unsupported.
    """
    raw = bytes(data.read()) if hasattr(data, "read") else bytes(data)

    if len(raw) < 16 or raw[:4] != b"\x7fELF":
        raise ElfPlanError("parse ELF: bad magic number")
    elf_class, encoding, version = raw[4], raw[5], raw[6]
    if elf_class not in (1, 2):
        raise ElfPlanError(f"parse ELF: unknown ELF class {elf_class}")
    if encoding == 1:
        order = "<"
    elif encoding == 2:
        order = ">"
    else:
        raise ElfPlanError(f"parse ELF: unknown ELF data encoding {encoding}")
    if version != _EV_CURRENT:
        raise ElfPlanError(f"parse ELF: unknown ELF version {version}")

    e_type, e_machine, e_version = _unpack(order + "HHI", raw, 16, "ELF header")
    if e_version != version:
        raise ElfPlanError("parse ELF: mismatched ELF version")
    if e_machine != _EM_AARCH64:
        raise ElfPlanError(f"expected EM_AARCH64, got machine {e_machine}")
    if elf_class != _ELFCLASS64:
        raise ElfPlanError(f"expected ELFCLASS64, got {_CLASS_NAMES.get(elf_class, elf_class)}")

    (e_entry, e_phoff, e_shoff, _flags, _ehsize, e_phentsize, e_phnum,
     e_shentsize, _shnum, _shstrndx) = _unpack(order + "QQQIHHHHHH", raw, 24, "ELF header")

    if e_phnum == _PN_XNUM:
        if e_shoff == 0 or e_shentsize < _SHDR_SIZE:
            raise ElfPlanError("parse ELF: invalid program header count")
        (e_phnum,) = _unpack(order + "I", raw, e_shoff + 44, "section header 0")
    if e_phnum > 0 and e_phentsize < _PHDR_SIZE:
        raise ElfPlanError(f"parse ELF: invalid program header entry size {e_phentsize}")

    img = Image(ph_ent=_PHDR_SIZE, ph_num=e_phnum)
    if e_type == _ET_EXEC:
        img.is_pie = False
        img.load_bias = 0
    elif e_type == _ET_DYN:
        img.is_pie = True
        img.load_bias = load_bias & _U64
    else:
        raise ElfPlanError(f"unsupported ELF type {_TYPE_NAMES.get(e_type, e_type)}")
    img.entry = (e_entry + img.load_bias) & _U64

    for index in range(e_phnum):
        (p_type, p_flags, p_offset, p_vaddr, _paddr, p_filesz, p_memsz, p_align) = _unpack(
            order + "IIQQQQQQ", raw, e_phoff + index * e_phentsize, "program header"
        )
        if p_type == _PT_LOAD:
            img.segments.append(
                Segment(
                    vaddr=(p_vaddr + img.load_bias) & _U64,
                    mem_sz=p_memsz,
                    file_off=p_offset,
                    file_sz=p_filesz,
                    prot=_prot(p_flags),
                    align=p_align,
                )
            )
        elif p_type == _PT_INTERP:
            if p_offset + p_filesz > len(raw):
                raise ElfPlanError("read PT_INTERP: unexpected end of file")
            interp = raw[p_offset:p_offset + p_filesz]
            if interp.endswith(b"\x00"):
                interp = interp[:-1]
            img.interp = interp.decode("utf-8", "surrogateescape")
        elif p_type == _PT_PHDR:
            img.phdr_addr = (p_vaddr + img.load_bias) & _U64

    if not img.segments:
        raise ElfPlanError("no PT_LOAD segments")

    if img.phdr_addr == 0:
        phoff = int.from_bytes(raw[0x20:0x28], "little") if len(raw) >= 0x28 else 0
        for seg in img.segments:
            if seg.file_off <= phoff < seg.file_off + seg.file_sz:
                img.phdr_addr = (seg.vaddr + (phoff - seg.file_off)) & _U64
                break

    return img