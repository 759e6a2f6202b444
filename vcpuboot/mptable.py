"""Building the Intel MultiProcessor table and writing it to guest memory."""

from __future__ import annotations

from vcpuboot.guestmem import GuestMemory, GuestMemoryError
from vcpuboot.mpconst import (
    CPU_BOOTPROCESSOR,
    CPU_ENABLED,
    MP_BUS,
    MP_INTSRC,
    MP_IOAPIC,
    MP_IRQDIR_DEFAULT,
    MP_LINTSRC,
    MP_PROCESSOR,
    MPC_APIC_USABLE,
    MpIrqSourceType,
)
from vcpuboot.mpspec import (
    MpcBus,
    MpcCpu,
    MpcIntsrc,
    MpcIoapic,
    MpcLintsrc,
    MpcTable,
    MpfIntel,
)

MPTABLE_START = 0x9FC00
"""Guest address where the MP table starts."""
IRQ_MAX = 23
"""Last usable IRQ number for device interrupts."""
MAX_SUPPORTED_CPUS = 254
"""Maximum number of CPUs: 255 APIC IDs, one of them taken by the I/O APIC."""

_U64_MAX = (1 << 64) - 1

_SMP_MAGIC_IDENT = b"_MP_"
_MPC_SIGNATURE = b"PCMP"
_MPC_SPEC = 4
_MPC_OEM = b"vcpuboot"
_MPC_PRODUCT_ID = b"0" * 12
_BUS_TYPE_ISA = b"ISA   "
_IO_APIC_DEFAULT_PHYS_BASE = 0xFEC0_0000
_APIC_DEFAULT_PHYS_BASE = 0xFEE0_0000
_APIC_VERSION = 0x14
_CPU_STEPPING = 0x600
_CPU_FEATURE_APIC = 0x200
_CPU_FEATURE_FPU = 0x001


class MpTableError(Exception):
    """Base error for building or writing the MP table."""


class TooManyCpusError(MpTableError):
    """The number of CPUs exceeds MAX_SUPPORTED_CPUS."""

    def __init__(self, cpu_num: int) -> None:
        super().__init__(
            f"{cpu_num} CPUs requested, at most {MAX_SUPPORTED_CPUS} are supported"
        )
        self.cpu_num = cpu_num


class NotEnoughMemoryError(MpTableError):
    """Guest memory is too small to hold the whole MP table."""

    def __init__(self) -> None:
        super().__init__("not enough guest memory to store the MP table")


class AddressOverflowError(MpTableError):
    """The MP table would extend past the end of the address space."""

    def __init__(self) -> None:
        super().__init__("the MP table does not fit in the address space")


def compute_checksum(data: bytes) -> int:
    """Return the wrapping 8-bit sum of ``data``."""
    return sum(data) & 0xFF


def mpf_intel_compute_checksum(mpf: MpfIntel) -> int:
    """Return the checksum byte that makes the floating pointer sum to zero."""
    partial = (compute_checksum(mpf.pack()) - mpf.checksum) & 0xFF
    return (-partial) & 0xFF


def _write_record(mem: GuestMemory, addr: int, data: bytes, what: str) -> None:
    try:
        mem.write(addr, data)
    except GuestMemoryError as exc:
        raise MpTableError(f"failed to write the {what}") from exc


class MpTable:
    """An MP table describing ``cpu_num`` processors with default settings."""

    def __init__(self, cpu_num: int) -> None:
        if cpu_num < 0:
            raise ValueError(f"cpu_num must not be negative, got {cpu_num}")
        if cpu_num > MAX_SUPPORTED_CPUS:
            raise TooManyCpusError(cpu_num)
        self.cpu_num = cpu_num
        self.irq_num = IRQ_MAX + 1

    def __repr__(self) -> str:
        return f"MpTable(cpu_num={self.cpu_num})"

    def size(self) -> int:
        """Return the number of bytes the table occupies in guest memory."""
        return (
            MpfIntel.SIZE
            + MpcTable.SIZE
            + MpcCpu.SIZE * self.cpu_num
            + MpcIoapic.SIZE
            + MpcBus.SIZE
            + MpcIntsrc.SIZE * self.irq_num
            + MpcLintsrc.SIZE * 2
        )

    def _entries(self) -> list[tuple[bytes, str]]:
        max_ioapic_id = self.cpu_num + 1
        entries: list[tuple[bytes, str]] = [
            (
                MpcCpu(
                    type=MP_PROCESSOR,
                    apicid=cpu_id,
                    apicver=_APIC_VERSION,
                    cpuflag=CPU_ENABLED | (CPU_BOOTPROCESSOR if cpu_id == 0 else 0),
                    cpufeature=_CPU_STEPPING,
                    featureflag=_CPU_FEATURE_APIC | _CPU_FEATURE_FPU,
                ).pack(),
                "MP CPU entry",
            )
            for cpu_id in range(self.cpu_num)
        ]
        entries.append(
            (MpcBus(type=MP_BUS, busid=0, bustype=_BUS_TYPE_ISA).pack(), "MP bus entry")
        )
        entries.append(
            (
                MpcIoapic(
                    type=MP_IOAPIC,
                    apicid=max_ioapic_id,
                    apicver=_APIC_VERSION,
                    flags=MPC_APIC_USABLE,
                    apicaddr=_IO_APIC_DEFAULT_PHYS_BASE,
                ).pack(),
                "MP ioapic entry",
            )
        )
        entries.extend(
            (
                MpcIntsrc(
                    type=MP_INTSRC,
                    irqtype=MpIrqSourceType.INT,
                    irqflag=MP_IRQDIR_DEFAULT,
                    srcbus=0,
                    srcbusirq=irq,
                    dstapic=max_ioapic_id,
                    dstirq=irq,
                ).pack(),
                "MP interrupt source entry",
            )
            for irq in range(self.irq_num)
        )
        entries.append(
            (
                MpcLintsrc(
                    type=MP_LINTSRC,
                    irqtype=MpIrqSourceType.EXT_INT,
                    irqflag=MP_IRQDIR_DEFAULT,
                ).pack(),
                "MP local interrupt source entry",
            )
        )
        entries.append(
            (
                MpcLintsrc(
                    type=MP_LINTSRC,
                    irqtype=MpIrqSourceType.NMI,
                    irqflag=MP_IRQDIR_DEFAULT,
                    destapic=0xFF,  # all local APICs
                    destapiclint=1,
                ).pack(),
                "MP local interrupt source entry",
            )
        )
        return entries

    def write(self, mem: GuestMemory) -> None:
        """Write the MP table into guest memory at MPTABLE_START."""
        base = MPTABLE_START
        mp_size = self.size()
        end = base + mp_size - 1
        if end > _U64_MAX:
            raise AddressOverflowError()
        if not mem.address_in_range(end):
            raise NotEnoughMemoryError()

        try:
            mem.write(base, bytes(mp_size))
        except GuestMemoryError as exc:
            raise MpTableError("failed to clear the MP table memory") from exc

        mpf = MpfIntel(
            signature=_SMP_MAGIC_IDENT,
            physptr=base + MpfIntel.SIZE,
            length=1,
            specification=_MPC_SPEC,
        )
        mpf.checksum = mpf_intel_compute_checksum(mpf)
        _write_record(mem, base, mpf.pack(), "MP floating pointer")

        table_base = base + MpfIntel.SIZE
        addr = table_base + MpcTable.SIZE
        checksum = 0
        for data, what in self._entries():
            _write_record(mem, addr, data, what)
            addr += len(data)
            checksum += compute_checksum(data)

        table = MpcTable(
            signature=_MPC_SIGNATURE,
            length=addr - table_base,
            spec=_MPC_SPEC,
            oem=_MPC_OEM,
            productid=_MPC_PRODUCT_ID,
            lapic=_APIC_DEFAULT_PHYS_BASE,
        )
        checksum = (checksum + compute_checksum(table.pack())) & 0xFF
        table.checksum = (-checksum) & 0xFF
        _write_record(mem, table_base, table.pack(), "MP table header")