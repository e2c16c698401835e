"""Access to the guest's virtual address space.

Handlers that take pointer arguments from the guest go through one of
the three interfaces here: ``PathReader`` for NUL-terminated path
strings, ``MemReader`` for fixed-length buffers and ``MemWriter`` for
data handed back to the guest.  A fresh setup installs the ``Noop*``
variants, which fault on every access so that a misconfigured bridge
fails loudly instead of silently pretending to succeed.
"""

from __future__ import annotations

import abc
import errno

__all__ = [
    "GuestFaultError",
    "MemReader",
    "MemWriter",
    "PathReader",
    "NoopMemReader",
    "NoopMemWriter",
    "NoopPathReader",
]


class GuestFaultError(OSError):
    """A guest pointer could not be safely dereferenced (EFAULT)."""

    def __init__(self, message: str = "guest pointer fault") -> None:
        super().__init__(errno.EFAULT, message)


class MemReader(abc.ABC):
    """Reads an exact number of bytes from guest memory.

    Implementations must raise ``GuestFaultError`` for a null pointer
    and for a partial read, must return freshly allocated bytes and
    must be safe to call from several threads at once.
    """

    @abc.abstractmethod
    def read_bytes(self, ptr: int, n: int) -> bytes:
        """Return ``n`` bytes starting at guest address ``ptr``."""


class MemWriter(abc.ABC):
    """Writes bytes into guest memory.

    Implementations must raise ``GuestFaultError`` for a null pointer
    and whenever not all of ``data`` can be written; ``data`` itself is
    never modified.
    """

    @abc.abstractmethod
    def write_bytes(self, ptr: int, data: bytes) -> None:
        """Write all of ``data`` starting at guest address ``ptr``."""


class PathReader(abc.ABC):
    """Reads a NUL-terminated string from guest memory.

    ``max_len`` caps the bytes read including the terminating NUL; a
    longer string raises ``GuestFaultError``, as does a null pointer.
    The returned string excludes the NUL.
    """

    @abc.abstractmethod
    def read_path(self, ptr: int, max_len: int) -> str:
        """Return the string at guest address ``ptr``."""


def _describe(ptr: int) -> str:
    return "NULL" if ptr == 0 else f"{ptr:#x}"


class NoopMemReader(MemReader):
    """Default reader: every access faults."""

    def read_bytes(self, ptr: int, n: int) -> bytes:
        message = (
            f"no guest memory reader installed: "
            f"read of {n} bytes at {_describe(ptr)}"
        )
        raise GuestFaultError(message)


class NoopMemWriter(MemWriter):
    """Default writer: every access faults."""

    def write_bytes(self, ptr: int, data: bytes) -> None:
        message = (
            f"no guest memory writer installed: "
            f"write of {len(data)} bytes at {_describe(ptr)}"
        )
        raise GuestFaultError(message)


class NoopPathReader(PathReader):
    """Default path reader: every access faults."""

    def read_path(self, ptr: int, max_len: int) -> str:
        message = (
            f"no guest path reader installed: "
            f"path of at most {max_len} bytes at {_describe(ptr)}"
        )
        raise GuestFaultError(message)