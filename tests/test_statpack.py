import os
import struct
from types import SimpleNamespace

from mojit.statpack import STAT_SIZE, STATFS_SIZE, StatfsInfo, pack_stat, pack_statfs


def fake_stat(**overrides):
    values = dict(
        st_dev=7,
        st_ino=12345,
        st_mode=0o100644,
        st_nlink=2,
        st_uid=1000,
        st_gid=1001,
        st_rdev=0,
        st_size=4097,
        st_blksize=4096,
        st_blocks=16,
        st_atime_ns=5 * 1_000_000_000 + 6,
        st_mtime_ns=7 * 1_000_000_000 + 8,
        st_ctime_ns=9 * 1_000_000_000 + 10,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


def u64(buf, off):
    return struct.unpack_from("<Q", buf, off)[0]


def u32(buf, off):
    return struct.unpack_from("<I", buf, off)[0]


def test_pack_stat_size():
    assert len(pack_stat(fake_stat())) == STAT_SIZE == 128


def test_pack_stat_field_offsets():
    st = fake_stat()
    buf = pack_stat(st)
    assert u64(buf, 0) == st.st_dev
    assert u64(buf, 8) == st.st_ino
    assert u32(buf, 16) == st.st_mode
    assert u32(buf, 20) == st.st_nlink
    assert u32(buf, 24) == st.st_uid
    assert u32(buf, 28) == st.st_gid
    assert u64(buf, 32) == st.st_rdev
    assert u64(buf, 48) == st.st_size
    assert u32(buf, 56) == st.st_blksize
    assert u64(buf, 64) == st.st_blocks


def test_pack_stat_timestamps_split_into_sec_and_nsec():
    st = fake_stat()
    buf = pack_stat(st)
    assert (u64(buf, 72), u64(buf, 80)) == divmod(st.st_atime_ns, 1_000_000_000)
    assert (u64(buf, 88), u64(buf, 96)) == divmod(st.st_mtime_ns, 1_000_000_000)
    assert (u64(buf, 104), u64(buf, 112)) == divmod(st.st_ctime_ns, 1_000_000_000)


def test_pack_stat_padding_is_zero():
    buf = pack_stat(fake_stat())
    assert buf[40:48] == bytes(8)
    assert buf[60:64] == bytes(4)
    assert buf[120:128] == bytes(8)


def test_pack_stat_negative_size_wraps_like_unsigned():
    buf = pack_stat(fake_stat(st_size=-1))
    assert struct.unpack_from("<q", buf, 48)[0] == -1


def test_pack_stat_real_file(tmp_path):
    path = tmp_path / "f"
    path.write_bytes(b"hello")
    st = os.stat(path)
    buf = pack_stat(st)
    assert len(buf) == STAT_SIZE
    assert u32(buf, 16) == st.st_mode
    assert u64(buf, 48) == st.st_size
    assert u64(buf, 8) == st.st_ino
    assert u64(buf, 80) < 1_000_000_000


def test_pack_statfs_size_and_fields():
    info = StatfsInfo(
        f_type=0x01021994,
        f_bsize=4096,
        f_blocks=100,
        f_bfree=50,
        f_bavail=40,
        f_files=30,
        f_ffree=20,
        f_fsid=(3, 4),
        f_namelen=255,
        f_frsize=4096,
        f_flags=1,
    )
    buf = pack_statfs(info)
    assert len(buf) == STATFS_SIZE == 120
    assert struct.unpack_from("<7Q", buf, 0) == (
        info.f_type,
        info.f_bsize,
        info.f_blocks,
        info.f_bfree,
        info.f_bavail,
        info.f_files,
        info.f_ffree,
    )
    assert struct.unpack_from("<ii", buf, 56) == info.f_fsid
    assert struct.unpack_from("<3Q", buf, 64) == (info.f_namelen, info.f_frsize, info.f_flags)
    assert buf[88:120] == bytes(32)


def test_pack_statfs_negative_fsid_round_trips_as_signed():
    buf = pack_statfs(StatfsInfo(f_fsid=(-1, -2)))
    assert struct.unpack_from("<ii", buf, 56) == (-1, -2)


def test_pack_statfs_default_is_all_zero():
    assert pack_statfs(StatfsInfo()) == bytes(STATFS_SIZE)