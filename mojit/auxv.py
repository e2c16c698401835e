"""The standard auxiliary vector derived from a planned image."""

from __future__ import annotations

from typing import List

from mojit.elfplan import Image
from mojit.stack import AuxEntry, AuxType

__all__ = ["standard_auxv"]

_PAGE_SIZE = 4096


def standard_auxv(image: Image, interp_base: int) -> List[AuxEntry]:
    """Return the auxv entries libc expects for ``image``.

    ``interp_base`` is the interpreter's load bias (zero for a static
    binary).  Entries whose values live in the aux-data region and the
    terminating ``AT_NULL`` are left to ``build_start_stack``.
    """
    return [
        AuxEntry(AuxType.PHDR, image.phdr_addr),
        AuxEntry(AuxType.PHENT, image.ph_ent),
        AuxEntry(AuxType.PHNUM, image.ph_num),
        AuxEntry(AuxType.PAGESZ, _PAGE_SIZE),
        AuxEntry(AuxType.BASE, interp_base),
        AuxEntry(AuxType.FLAGS, 0),
        AuxEntry(AuxType.ENTRY, image.entry),
    ]