"""Construction of the aarch64 Linux process-start stack image.

Before jumping to the entry point the kernel lays out, just below the
initial stack pointer, ``argc``, a NULL-terminated ``argv`` pointer
array, a NULL-terminated ``envp`` pointer array, an ``AT_NULL``
terminated auxiliary vector, the auxiliary data blocks (the
``AT_RANDOM`` bytes and the ``AT_PLATFORM`` / ``AT_EXECFN`` strings) and
finally the argument and environment strings.  ``build_start_stack``
reproduces that image byte for byte, without touching real memory.
"""

from __future__ import annotations

import enum
import struct
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

__all__ = ["AuxType", "AuxEntry", "BuildInput", "build_start_stack"]

_U64 = 0xFFFFFFFFFFFFFFFF
_WORD = 8
_ALIGN = 16
_RANDOM_LEN = 16

StrOrBytes = Union[str, bytes]


class AuxType(enum.IntEnum):
    """aarch64 Linux auxiliary vector tags."""

    NULL = 0
    IGNORE = 1
    EXECFD = 2
    PHDR = 3
    PHENT = 4
    PHNUM = 5
    PAGESZ = 6
    BASE = 7
    FLAGS = 8
    ENTRY = 9
    NOTELF = 10
    UID = 11
    EUID = 12
    GID = 13
    EGID = 14
    PLATFORM = 15
    HWCAP = 16
    CLKTCK = 17
    SECURE = 23
    BASE_PLATFORM = 24
    RANDOM = 25
    HWCAP2 = 26
    EXECFN = 31


@dataclass(frozen=True)
class AuxEntry:
    """One ``(type, value)`` pair of the auxiliary vector."""

    type: int
    val: int = 0


@dataclass(frozen=True)
class BuildInput:
    """Declarative description of the initial stack.

    ``stack_base`` is the guest address byte 0 of the image is mapped
    at and must be 16-byte aligned.  ``argv`` must be non-empty.
    ``aux`` excludes ``AT_RANDOM``, ``AT_PLATFORM`` and ``AT_EXECFN``;
    those are appended when ``random`` (exactly 16 bytes), ``platform``
    or ``exec_fn`` are given, because their values point into the
    aux-data region laid out by the packer.
    """

    stack_base: int
    argv: Sequence[StrOrBytes] = ()
    envp: Sequence[StrOrBytes] = ()
    aux: Sequence[AuxEntry] = ()
    random: Optional[bytes] = None
    platform: StrOrBytes = ""
    exec_fn: StrOrBytes = ""


def _encode(text: StrOrBytes) -> bytes:
    if isinstance(text, str):
        return text.encode("utf-8", "surrogateescape")
    return bytes(text)


def build_start_stack(spec: BuildInput) -> Tuple[bytes, int]:
    """Pack the start stack described by ``spec``.

    Returns ``(image, sp)``: the image is written verbatim at
    ``spec.stack_base`` and ``sp`` is the guest stack pointer at entry.
    Low addresses of the image hold ``argc``; the string bodies sit at
    the high end.  Raises ``ValueError`` on invalid input.
    """
    if not spec.argv:
        raise ValueError("argv must be non-empty")
    if spec.stack_base % _ALIGN:
        raise ValueError(f"stack base {spec.stack_base:#x} not 16-byte aligned")
    if spec.random is not None and len(spec.random) != _RANDOM_LEN:
        raise ValueError(f"random must be 16 bytes, got {len(spec.random)}")

    area = bytearray()

    def place(data: bytes, terminate: bool = True) -> int:
        offset = len(area)
        area.extend(data)
        if terminate:
            area.append(0)
        return offset

    argv_offsets = [place(_encode(s)) for s in spec.argv]
    envp_offsets = [place(_encode(s)) for s in spec.envp]

    data_entries: List[Tuple[int, int]] = []
    if spec.random is not None:
        data_entries.append((AuxType.RANDOM, place(bytes(spec.random), terminate=False)))
    if spec.platform:
        data_entries.append((AuxType.PLATFORM, place(_encode(spec.platform))))
    if spec.exec_fn:
        data_entries.append((AuxType.EXECFN, place(_encode(spec.exec_fn))))

    aux_count = len(spec.aux) + len(data_entries) + 1
    prefix_words = 1 + len(argv_offsets) + 1 + len(envp_offsets) + 1 + 2 * aux_count
    prefix_bytes = prefix_words * _WORD
    area_start = prefix_bytes + (-prefix_bytes % _ALIGN)
    total = area_start + len(area)
    total += -total % _ALIGN

    string_base = spec.stack_base + area_start
    words: List[int] = [len(argv_offsets)]
    words.extend(string_base + off for off in argv_offsets)
    words.append(0)
    words.extend(string_base + off for off in envp_offsets)
    words.append(0)
    for entry in spec.aux:
        words.extend((entry.type, entry.val))
    for tag, off in data_entries:
        words.extend((tag, string_base + off))
    words.extend((AuxType.NULL, 0))

    image = bytearray(total)
    struct.pack_into(f"<{len(words)}Q", image, 0, *(int(w) & _U64 for w in words))
    image[area_start:area_start + len(area)] = area
    return bytes(image), spec.stack_base