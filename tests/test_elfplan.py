import io
import struct

import pytest

from mojit.elfplan import ElfPlanError, Prot, plan_image

ET_EXEC, ET_DYN, ET_CORE = 2, 3, 4
PT_LOAD, PT_INTERP, PT_PHDR = 1, 3, 6
PF_X, PF_W, PF_R = 1, 2, 4
INTERP = b"/lib/ld-linux-aarch64.so.1\x00"
TEXT = b"fake-text-segment-bytes\x00"


def build_minimal_elf(etype, with_interp, with_phdr=True, data_flags=PF_R):
    interp = INTERP if with_interp else b""
    nphdr = 2 + (1 if with_phdr else 0) + (1 if with_interp else 0)
    phdrs_start = 64
    phdrs_end = phdrs_start + nphdr * 56
    interp_off = phdrs_end
    text_off = interp_off + len(interp)
    text_end = text_off + len(TEXT)
    load2_vaddr = 0x200000

    buf = bytearray(text_end)
    buf[0:8] = b"\x7fELF\x02\x01\x01\x00"
    struct.pack_into(
        "<HHIQQQIHHHHHH", buf, 16,
        etype, 183, 1, load2_vaddr + 0x40, phdrs_start, 0, 0, 64, 56, nphdr, 0, 0, 0,
    )
    phdrs = []
    if with_phdr:
        size = nphdr * 56
        phdrs.append((PT_PHDR, PF_R, phdrs_start, phdrs_start, size, size, 8))
    phdrs.append((PT_LOAD, data_flags, 0, 0, phdrs_end, phdrs_end, 0x1000))
    if with_interp:
        phdrs.append((PT_INTERP, PF_R, interp_off, interp_off, len(interp), len(interp), 1))
    phdrs.append((PT_LOAD, PF_R | PF_X, text_off, load2_vaddr, len(TEXT), len(TEXT) + 0x100, 0x1000))
    for i, (typ, flags, off, vaddr, filesz, memsz, align) in enumerate(phdrs):
        struct.pack_into("<IIQQQQQQ", buf, phdrs_start + i * 56,
                         typ, flags, off, vaddr, vaddr, filesz, memsz, align)
    buf[interp_off:interp_off + len(interp)] = interp
    buf[text_off:text_end] = TEXT
    return bytes(buf)


def test_static_et_exec():
    img = plan_image(build_minimal_elf(ET_EXEC, False), 0xDEAD0000)
    assert img.is_pie is False
    assert img.load_bias == 0
    assert img.interp == ""
    assert img.ph_ent == 56
    assert img.ph_num == 3
    assert len(img.segments) == 2
    assert img.segments[1].prot == Prot.READ | Prot.EXEC
    s0 = img.segments[0]
    assert s0.vaddr <= img.phdr_addr < s0.vaddr + s0.mem_sz
    assert img.entry == 0x200040


def test_pie_applies_load_bias():
    bias = 0x5555_0000_0000
    img = plan_image(build_minimal_elf(ET_DYN, False), bias)
    assert img.is_pie is True
    assert img.load_bias == bias
    assert img.entry == 0x200040 + bias
    assert img.segments[1].vaddr == 0x200000 + bias
    assert img.phdr_addr >= bias


def test_interp_strips_nul():
    img = plan_image(build_minimal_elf(ET_DYN, True), 0)
    assert img.interp == "/lib/ld-linux-aarch64.so.1"
    assert "\x00" not in img.interp


def test_rejects_non_aarch64():
    raw = bytearray(build_minimal_elf(ET_EXEC, False))
    struct.pack_into("<H", raw, 18, 62)
    with pytest.raises(ElfPlanError):
        plan_image(bytes(raw), 0)


def test_rejects_core_dump():
    with pytest.raises(ElfPlanError):
        plan_image(build_minimal_elf(ET_CORE, False), 0)


def test_rejects_garbage():
    with pytest.raises(ElfPlanError):
        plan_image(b"not an elf", 0)


def test_rejects_elfclass32():
    raw = bytearray(build_minimal_elf(ET_EXEC, False))
    raw[4] = 1
    with pytest.raises(ElfPlanError, match="ELFCLASS64"):
        plan_image(bytes(raw), 0)


def test_rejects_truncated_program_headers():
    raw = build_minimal_elf(ET_EXEC, False)
    with pytest.raises(ElfPlanError):
        plan_image(raw[:100], 0)


def test_phdr_addr_derived_without_pt_phdr():
    img = plan_image(build_minimal_elf(ET_DYN, False, with_phdr=False), 0x10000)
    assert img.phdr_addr == 0x10000 + 64


def test_segment_fields_and_writable_prot():
    img = plan_image(build_minimal_elf(ET_EXEC, False, data_flags=PF_R | PF_W), 0)
    s0, s1 = img.segments
    assert s0.prot == Prot.READ | Prot.WRITE
    assert s0.file_off == 0
    assert s1.mem_sz == s1.file_sz + 0x100
    assert s1.align == 0x1000


def test_accepts_file_object():
    img = plan_image(io.BytesIO(build_minimal_elf(ET_DYN, True)), 0x1000)
    assert img.interp == "/lib/ld-linux-aarch64.so.1"
    assert img.entry == 0x200040 + 0x1000