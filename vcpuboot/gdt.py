"""Building a Global Descriptor Table and writing it to guest memory."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from vcpuboot.guestmem import GuestMemory, GuestMemoryError

BOOT_GDT_OFFSET = 0x500
"""Guest address of the GDT."""
BOOT_IDT_OFFSET = 0x520
"""Guest address of the IDT."""
MAX_GDT_SIZE = 1 << 13
"""Maximum number of GDT entries."""

_DESCRIPTOR_SIZE = 8


class GdtError(Exception):
    """Base error for GDT operations."""


class TooManyEntriesError(GdtError):
    """The GDT already holds the maximum number of entries."""

    def __init__(self) -> None:
        super().__init__(f"the GDT cannot hold more than {MAX_GDT_SIZE} entries")


@dataclass(frozen=True)
class KvmSegment:
    """A segment register as the hypervisor expects it."""

    base: int
    limit: int
    selector: int
    type: int
    present: int
    dpl: int
    db: int
    s: int
    l: int  # noqa: E741
    g: int
    avl: int
    unusable: int


def _check_width(name: str, value: int, bits: int) -> None:
    if not 0 <= value < (1 << bits):
        raise ValueError(f"{name} {value} does not fit in {bits} bits")


@dataclass(frozen=True)
class SegmentDescriptor:
    """A 64-bit GDT entry describing a segment's base, limit and flags."""

    value: int

    def __post_init__(self) -> None:
        _check_width("descriptor", self.value, 64)

    @classmethod
    def from_parts(cls, flags: int, base: int, limit: int) -> SegmentDescriptor:
        """Build a descriptor from 16-bit flags, a 32-bit base and a 20-bit limit.

        The upper 12 bits of ``limit`` are ignored.
        """
        _check_width("flags", flags, 16)
        _check_width("base", base, 32)
        _check_width("limit", limit, 32)
        return cls(
            ((base & 0xFF00_0000) << (56 - 24))
            | ((flags & 0x0000_F0FF) << 40)
            | ((limit & 0x000F_0000) << (48 - 16))
            | ((base & 0x00FF_FFFF) << 16)
            | (limit & 0x0000_FFFF)
        )

    def _bits(self, mask: int, shift: int) -> int:
        return (self.value & mask) >> shift

    def to_kvm_segment(self, table_index: int) -> KvmSegment:
        """Return the segment register for this entry at ``table_index`` in the table."""
        v = self.value
        present = self._bits(0x0000_8000_0000_0000, 47)
        return KvmSegment(
            base=((v & 0xFF00_0000_0000_0000) >> 32)
            | ((v & 0x0000_00FF_0000_0000) >> 16)
            | ((v & 0x0000_0000_FFFF_0000) >> 16),
            limit=((v & 0x000F_0000_0000_0000) >> 32) | (v & 0x0000_0000_0000_FFFF),
            selector=(table_index * _DESCRIPTOR_SIZE) & 0xFFFF,
            type=self._bits(0x0000_0F00_0000_0000, 40),
            present=present,
            dpl=self._bits(0x0000_6000_0000_0000, 45),
            db=self._bits(0x0040_0000_0000_0000, 54),
            s=self._bits(0x0000_1000_0000_0000, 44),
            l=self._bits(0x0020_0000_0000_0000, 53),
            g=self._bits(0x0080_0000_0000_0000, 55),
            avl=self._bits(0x0010_0000_0000_0000, 52),
            unusable=1 if present == 0 else 0,
        )


class Gdt:
    """An ordered table of segment descriptors."""

    def __init__(self, entries: Iterable[SegmentDescriptor] | None = None) -> None:
        self._entries: list[SegmentDescriptor] = []
        for entry in entries or ():
            self.try_push(entry)

    @classmethod
    def default(cls) -> Gdt:
        """Return the boot GDT: null, code, data and TSS segments."""
        return cls(
            [
                SegmentDescriptor.from_parts(0, 0, 0),
                SegmentDescriptor.from_parts(0xA09B, 0, 0xFFFFF),
                SegmentDescriptor.from_parts(0xC093, 0, 0xFFFFF),
                SegmentDescriptor.from_parts(0x808B, 0, 0xFFFFF),
            ]
        )

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[SegmentDescriptor]:
        return iter(self._entries)

    def try_push(self, entry: SegmentDescriptor) -> None:
        """Append ``entry``, raising TooManyEntriesError when the table is full."""
        if len(self._entries) >= MAX_GDT_SIZE:
            raise TooManyEntriesError()
        self._entries.append(entry)

    def create_kvm_segment_for(self, index: int) -> KvmSegment | None:
        """Return the segment register for the entry at ``index``, or None if absent."""
        if not 0 <= index < len(self._entries):
            return None
        return self._entries[index].to_kvm_segment(index)

    def write_to_mem(self, mem: GuestMemory) -> None:
        """Write the table into guest memory at BOOT_GDT_OFFSET."""
        for index, entry in enumerate(self._entries):
            addr = mem.checked_offset(BOOT_GDT_OFFSET, index * _DESCRIPTOR_SIZE)
            if addr is None:
                raise GuestMemoryError(BOOT_GDT_OFFSET)
            mem.write_u64(addr, entry.value)


def write_idt_value(val: int, mem: GuestMemory) -> None:
    """Write ``val`` to guest memory at BOOT_IDT_OFFSET."""
    mem.write_u64(BOOT_IDT_OFFSET, val)