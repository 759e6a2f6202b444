"""Binary layouts of the Intel MultiProcessor specification tables."""

from __future__ import annotations

import struct
from dataclasses import dataclass, fields
from typing import Any, ClassVar


def _fixed_bytes(name: str, value: bytes, size: int) -> bytes:
    raw = bytes(value)
    if len(raw) > size:
        raise ValueError(f"{name} must be at most {size} bytes, got {len(raw)}")
    return raw.ljust(size, b"\0")


class _Record:
    """Shared field handling for fixed-layout little-endian records."""

    _STRUCT: ClassVar[struct.Struct]
    SIZE: ClassVar[int]

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        cls.SIZE = cls._STRUCT.size

    def _values(self) -> tuple[Any, ...]:
        return tuple(getattr(self, f.name) for f in fields(self))  # type: ignore[arg-type]

    @classmethod
    def _from_values(cls, values: tuple[Any, ...]) -> Any:
        return cls(*values)

    def _pack(self) -> bytes:
        try:
            return self._STRUCT.pack(*self._values())
        except struct.error as exc:
            raise ValueError(f"cannot pack {type(self).__name__}: {exc}") from exc

    @classmethod
    def _unpack(cls, data: bytes) -> Any:
        raw = bytes(data)
        if len(raw) != cls._STRUCT.size:
            raise ValueError(
                f"{cls.__name__} needs {cls._STRUCT.size} bytes, got {len(raw)}"
            )
        return cls._from_values(cls._STRUCT.unpack(raw))


@dataclass
class MpfIntel(_Record):
    """The MP floating pointer structure."""

    _STRUCT: ClassVar[struct.Struct] = struct.Struct("<4sIBBBBBBBB")

    signature: bytes = b"\0" * 4
    physptr: int = 0
    length: int = 0
    specification: int = 0
    checksum: int = 0
    feature1: int = 0
    feature2: int = 0
    feature3: int = 0
    feature4: int = 0
    feature5: int = 0

    def __post_init__(self) -> None:
        self.signature = _fixed_bytes("signature", self.signature, 4)

    def pack(self) -> bytes:
        """Return the record in its in-memory binary form."""
        return self._pack()

    @classmethod
    def unpack(cls, data: bytes) -> MpfIntel:
        """Build a record from exactly ``SIZE`` bytes."""
        return cls._unpack(data)


@dataclass
class MpcTable(_Record):
    """The MP configuration table header."""

    _STRUCT: ClassVar[struct.Struct] = struct.Struct("<4sHBB8s12sIHHII")

    signature: bytes = b"\0" * 4
    length: int = 0
    spec: int = 0
    checksum: int = 0
    oem: bytes = b"\0" * 8
    productid: bytes = b"\0" * 12
    oemptr: int = 0
    oemsize: int = 0
    oemcount: int = 0
    lapic: int = 0
    reserved: int = 0

    def __post_init__(self) -> None:
        self.signature = _fixed_bytes("signature", self.signature, 4)
        self.oem = _fixed_bytes("oem", self.oem, 8)
        self.productid = _fixed_bytes("productid", self.productid, 12)

    def pack(self) -> bytes:
        """Return the record in its in-memory binary form."""
        return self._pack()

    @classmethod
    def unpack(cls, data: bytes) -> MpcTable:
        """Build a record from exactly ``SIZE`` bytes."""
        return cls._unpack(data)


@dataclass
class MpcCpu(_Record):
    """A processor entry of the MP configuration table."""

    _STRUCT: ClassVar[struct.Struct] = struct.Struct("<BBBBIIII")

    type: int = 0
    apicid: int = 0
    apicver: int = 0
    cpuflag: int = 0
    cpufeature: int = 0
    featureflag: int = 0
    reserved: tuple[int, int] = (0, 0)

    def __post_init__(self) -> None:
        self.reserved = tuple(self.reserved)  # type: ignore[assignment]
        if len(self.reserved) != 2:
            raise ValueError("reserved must hold exactly two values")

    def _values(self) -> tuple[Any, ...]:
        return (
            self.type,
            self.apicid,
            self.apicver,
            self.cpuflag,
            self.cpufeature,
            self.featureflag,
            *self.reserved,
        )

    @classmethod
    def _from_values(cls, values: tuple[Any, ...]) -> MpcCpu:
        *head, res0, res1 = values
        return cls(*head, reserved=(res0, res1))

    def pack(self) -> bytes:
        """Return the record in its in-memory binary form."""
        return self._pack()

    @classmethod
    def unpack(cls, data: bytes) -> MpcCpu:
        """Build a record from exactly ``SIZE`` bytes."""
        return cls._unpack(data)


@dataclass
class MpcBus(_Record):
    """A bus entry of the MP configuration table."""

    _STRUCT: ClassVar[struct.Struct] = struct.Struct("<BB6s")

    type: int = 0
    busid: int = 0
    bustype: bytes = b"\0" * 6

    def __post_init__(self) -> None:
        self.bustype = _fixed_bytes("bustype", self.bustype, 6)

    def pack(self) -> bytes:
        """Return the record in its in-memory binary form."""
        return self._pack()

    @classmethod
    def unpack(cls, data: bytes) -> MpcBus:
        """Build a record from exactly ``SIZE`` bytes."""
        return cls._unpack(data)


@dataclass
class MpcIoapic(_Record):
    """An I/O APIC entry of the MP configuration table."""

    _STRUCT: ClassVar[struct.Struct] = struct.Struct("<BBBBI")

    type: int = 0
    apicid: int = 0
    apicver: int = 0
    flags: int = 0
    apicaddr: int = 0

    def pack(self) -> bytes:
        """Return the record in its in-memory binary form."""
        return self._pack()

    @classmethod
    def unpack(cls, data: bytes) -> MpcIoapic:
        """Build a record from exactly ``SIZE`` bytes."""
        return cls._unpack(data)


@dataclass
class MpcIntsrc(_Record):
    """An I/O interrupt source entry of the MP configuration table."""

    _STRUCT: ClassVar[struct.Struct] = struct.Struct("<BBHBBBB")

    type: int = 0
    irqtype: int = 0
    irqflag: int = 0
    srcbus: int = 0
    srcbusirq: int = 0
    dstapic: int = 0
    dstirq: int = 0

    def pack(self) -> bytes:
        """Return the record in its in-memory binary form."""
        return self._pack()

    @classmethod
    def unpack(cls, data: bytes) -> MpcIntsrc:
        """Build a record from exactly ``SIZE`` bytes."""
        return cls._unpack(data)


@dataclass
class MpcLintsrc(_Record):
    """A local interrupt source entry of the MP configuration table."""

    _STRUCT: ClassVar[struct.Struct] = struct.Struct("<BBHBBBB")

    type: int = 0
    irqtype: int = 0
    irqflag: int = 0
    srcbusid: int = 0
    srcbusirq: int = 0
    destapic: int = 0
    destapiclint: int = 0

    def pack(self) -> bytes:
        """Return the record in its in-memory binary form."""
        return self._pack()

    @classmethod
    def unpack(cls, data: bytes) -> MpcLintsrc:
        """Build a record from exactly ``SIZE`` bytes."""
        return cls._unpack(data)


@dataclass
class MpcOemtable(_Record):
    """The OEM configuration table header."""

    _STRUCT: ClassVar[struct.Struct] = struct.Struct("<4sHBB8s")

    signature: bytes = b"\0" * 4
    length: int = 0
    rev: int = 0
    checksum: int = 0
    mpc: bytes = b"\0" * 8

    def __post_init__(self) -> None:
        self.signature = _fixed_bytes("signature", self.signature, 4)
        self.mpc = _fixed_bytes("mpc", self.mpc, 8)

    def pack(self) -> bytes:
        """Return the record in its in-memory binary form."""
        return self._pack()

    @classmethod
    def unpack(cls, data: bytes) -> MpcOemtable:
        """Build a record from exactly ``SIZE`` bytes."""
        return cls._unpack(data)