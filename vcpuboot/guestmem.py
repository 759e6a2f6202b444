"""A simple model of guest physical memory made of non-overlapping regions."""

from __future__ import annotations

import struct
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

_U64_MAX = (1 << 64) - 1
_U64 = struct.Struct("<Q")


class GuestMemoryError(Exception):
    """An access touched a guest address that is not backed by memory."""

    def __init__(self, addr: int) -> None:
        super().__init__(f"InvalidGuestAddress({addr:#x})")
        self.addr = addr


@dataclass
class _Region:
    start: int
    data: bytearray = field(repr=False)

    @property
    def end(self) -> int:
        return self.start + len(self.data)

    def __contains__(self, addr: int) -> bool:
        return self.start <= addr < self.end


class GuestMemory:
    """Guest memory built from ``(start, size)`` ranges, zero-filled on creation."""

    def __init__(self, ranges: Iterable[tuple[int, int]]) -> None:
        regions: list[_Region] = []
        for start, size in sorted(ranges):
            if start < 0 or size <= 0:
                raise ValueError(f"invalid memory range: start={start:#x} size={size}")
            if start + size - 1 > _U64_MAX:
                raise ValueError(f"memory range at {start:#x} exceeds the address space")
            if regions and start < regions[-1].end:
                raise ValueError(f"memory range at {start:#x} overlaps another range")
            regions.append(_Region(start, bytearray(size)))
        if not regions:
            raise ValueError("guest memory needs at least one range")
        self._regions = regions

    def __len__(self) -> int:
        return len(self._regions)

    def _region_for(self, addr: int) -> _Region | None:
        return next((region for region in self._regions if addr in region), None)

    def address_in_range(self, addr: int) -> bool:
        """Return whether ``addr`` lies inside one of the regions."""
        return self._region_for(addr) is not None

    def checked_offset(self, addr: int, offset: int) -> int | None:
        """Return ``addr + offset`` if that address is backed by memory, else None."""
        if addr < 0 or offset < 0:
            return None
        target = addr + offset
        if target > _U64_MAX or not self.address_in_range(target):
            return None
        return target

    def _chunks(self, addr: int, size: int) -> Iterator[tuple[_Region, int, int]]:
        done = 0
        while done < size:
            current = addr + done
            region = self._region_for(current)
            if region is None:
                raise GuestMemoryError(current)
            offset = current - region.start
            length = min(size - done, region.end - current)
            yield region, offset, length
            done += length

    def write(self, addr: int, data: bytes) -> None:
        """Write ``data`` at ``addr``; nothing is written if any byte is out of range."""
        payload = bytes(data)
        chunks = list(self._chunks(addr, len(payload)))
        pos = 0
        for region, offset, length in chunks:
            region.data[offset : offset + length] = payload[pos : pos + length]
            pos += length

    def read(self, addr: int, size: int) -> bytes:
        """Read ``size`` bytes starting at ``addr``."""
        if size < 0:
            raise ValueError("size must not be negative")
        return b"".join(
            bytes(region.data[offset : offset + length])
            for region, offset, length in self._chunks(addr, size)
        )

    def write_u64(self, addr: int, value: int) -> None:
        """Write ``value`` as a little-endian 64-bit integer."""
        if not 0 <= value <= _U64_MAX:
            raise ValueError(f"value {value} does not fit in 64 bits")
        self.write(addr, _U64.pack(value))

    def read_u64(self, addr: int) -> int:
        """Read a little-endian 64-bit integer."""
        return _U64.unpack(self.read(addr, _U64.size))[0]