"""Serialisation of stat results into the aarch64 kernel wire formats.

The guest always sees arm64 layouts regardless of the host, so the
structures are packed explicitly rather than copied from host memory.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import Any, Tuple

__all__ = [
    "STAT_SIZE",
    "STATFS_SIZE",
    "AT_SYMLINK_NOFOLLOW",
    "AT_NO_AUTOMOUNT",
    "AT_EMPTY_PATH",
    "pack_stat",
    "StatfsInfo",
    "pack_statfs",
]

STAT_SIZE = 128
STATFS_SIZE = 120

# Flags shared by the *at syscalls.
AT_SYMLINK_NOFOLLOW = 0x100
AT_NO_AUTOMOUNT = 0x800
AT_EMPTY_PATH = 0x1000

_U32 = 0xFFFFFFFF
_U64 = 0xFFFFFFFFFFFFFFFF
_NS = 1_000_000_000

# dev ino mode nlink uid gid rdev pad size blksize pad blocks
# atime(sec,nsec) mtime(sec,nsec) ctime(sec,nsec) unused
_STAT = struct.Struct("<QQIIIIQ8xQI4xQQQQQQQ8x")
# type bsize blocks bfree bavail files ffree fsid[2] namelen frsize flags spare
_STATFS = struct.Struct("<QQQQQQQIIQQQ32x")


def _timespec(st: Any, name: str) -> Tuple[int, int]:
    ns = getattr(st, f"st_{name}_ns", None)
    if ns is None:
        ns = int(getattr(st, f"st_{name}") * _NS)
    sec, nsec = divmod(ns, _NS)
    return sec & _U64, nsec & _U64


def pack_stat(st: Any) -> bytes:
    """Pack an ``os.stat_result``-like object as aarch64 ``struct stat``.

    Narrow fields are truncated as an unsigned cast would.
    """
    atime = _timespec(st, "atime")
    mtime = _timespec(st, "mtime")
    ctime = _timespec(st, "ctime")
    return _STAT.pack(
        st.st_dev & _U64,
        st.st_ino & _U64,
        st.st_mode & _U32,
        st.st_nlink & _U32,
        st.st_uid & _U32,
        st.st_gid & _U32,
        getattr(st, "st_rdev", 0) & _U64,
        st.st_size & _U64,
        getattr(st, "st_blksize", 0) & _U32,
        getattr(st, "st_blocks", 0) & _U64,
        *atime,
        *mtime,
        *ctime,
    )


@dataclass(frozen=True)
class StatfsInfo:
    """Filesystem statistics as reported by statfs(2)."""

    f_type: int = 0
    f_bsize: int = 0
    f_blocks: int = 0
    f_bfree: int = 0
    f_bavail: int = 0
    f_files: int = 0
    f_ffree: int = 0
    f_fsid: Tuple[int, int] = (0, 0)
    f_namelen: int = 0
    f_frsize: int = 0
    f_flags: int = 0


def pack_statfs(st: StatfsInfo) -> bytes:
    """Pack ``st`` as the aarch64 ``struct statfs64`` (spare words zeroed)."""
    fsid0, fsid1 = st.f_fsid
    return _STATFS.pack(
        st.f_type & _U64,
        st.f_bsize & _U64,
        st.f_blocks & _U64,
        st.f_bfree & _U64,
        st.f_bavail & _U64,
        st.f_files & _U64,
        st.f_ffree & _U64,
        fsid0 & _U32,
        fsid1 & _U32,
        st.f_namelen & _U64,
        st.f_frsize & _U64,
        st.f_flags & _U64,
    )