import pytest

from vcpuboot.gdt import (
    BOOT_GDT_OFFSET,
    BOOT_IDT_OFFSET,
    MAX_GDT_SIZE,
    Gdt,
    GdtError,
    SegmentDescriptor,
    TooManyEntriesError,
    write_idt_value,
)
from vcpuboot.guestmem import GuestMemory, GuestMemoryError


def test_kvm_segment_parse():
    desc = SegmentDescriptor.from_parts(0xA09B, 0x10_0000, 0xFFFFF)
    gdt = Gdt()
    gdt.try_push(desc)

    seg = gdt.create_kvm_segment_for(0)
    assert seg.g == 0x1
    assert seg.db == 0x0
    assert seg.l == 0x1
    assert seg.avl == 0x0
    assert seg.present == 0x1
    assert seg.dpl == 0x0
    assert seg.s == 0x1
    assert seg.type == 0xB
    assert seg.base == 0x10_0000
    assert seg.limit == 0xFFFFF
    assert seg.unusable == 0x0

    assert gdt.create_kvm_segment_for(1) is None
    assert gdt.create_kvm_segment_for(MAX_GDT_SIZE + 1) is None


def test_write_table_errors_on_small_memory():
    mem = GuestMemory([(0, BOOT_GDT_OFFSET - 100)])
    gdt = Gdt()
    gdt.try_push(SegmentDescriptor.from_parts(0xA09B, 0x10_0000, 0xFFFFF))

    with pytest.raises(GuestMemoryError) as info:
        gdt.write_to_mem(mem)
    assert "InvalidGuestAddress" in str(info.value)

    with pytest.raises(GuestMemoryError) as info:
        write_idt_value(0, mem)
    assert "InvalidGuestAddress" in str(info.value)


def test_write_default_table():
    mem = GuestMemory([(0, 1024 << 20)])
    gdt = Gdt.default()
    assert len(gdt) == 4

    gdt.write_to_mem(mem)
    write_idt_value(0, mem)
    for index, entry in enumerate(gdt):
        assert mem.read_u64(BOOT_GDT_OFFSET + index * 8) == entry.value
    assert mem.read_u64(BOOT_IDT_OFFSET) == 0


def test_too_many_entries():
    gdt = Gdt()
    for i in range(MAX_GDT_SIZE):
        gdt.try_push(SegmentDescriptor(i))
    assert len(gdt) == MAX_GDT_SIZE
    with pytest.raises(TooManyEntriesError):
        gdt.try_push(SegmentDescriptor(0))


def test_too_many_entries_is_gdt_error():
    with pytest.raises(GdtError):
        Gdt(SegmentDescriptor(0) for _ in range(MAX_GDT_SIZE + 1))


def test_descriptor_fits_in_u64():
    # Each descriptor occupies exactly 8 bytes in guest memory.
    mem = GuestMemory([(0, 0x1000)])
    gdt = Gdt([SegmentDescriptor((1 << 64) - 1), SegmentDescriptor(0)])
    gdt.write_to_mem(mem)
    assert mem.read(BOOT_GDT_OFFSET, 16) == b"\xff" * 8 + bytes(8)
    with pytest.raises(ValueError):
        SegmentDescriptor(1 << 64)


def test_default_segments():
    gdt = Gdt.default()
    null = gdt.create_kvm_segment_for(0)
    assert null.present == 0
    assert null.unusable == 1

    code = gdt.create_kvm_segment_for(1)
    assert code.selector == 8
    assert code.l == 1
    assert code.limit == 0xFFFFF

    data = gdt.create_kvm_segment_for(2)
    assert data.selector == 16
    assert data.db == 1
    assert data.type == 0x3

    tss = gdt.create_kvm_segment_for(3)
    assert tss.selector == 24
    assert tss.type == 0xB
    assert tss.s == 0


def test_from_parts_round_trips_base_and_limit():
    desc = SegmentDescriptor.from_parts(0x9A, 0x12345678, 0xABCDE)
    seg = desc.to_kvm_segment(0)
    assert seg.base == 0x12345678
    assert seg.limit == 0xABCDE


def test_from_parts_ignores_upper_limit_bits():
    wide = SegmentDescriptor.from_parts(0x92, 0, 0xFFFFFFFF)
    narrow = SegmentDescriptor.from_parts(0x92, 0, 0xFFFFF)
    assert wide == narrow


@pytest.mark.parametrize(
    "flags, base, limit",
    [(1 << 16, 0, 0), (0, 1 << 32, 0), (0, 0, -1)],
)
def test_from_parts_rejects_out_of_range(flags, base, limit):
    with pytest.raises(ValueError):
        SegmentDescriptor.from_parts(flags, base, limit)