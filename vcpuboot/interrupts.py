"""Reading and writing Local APIC registers held in a LAPIC state blob."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from enum import IntEnum

APIC_LVT0_REG_OFFSET = 0x350
"""Register offset of the APIC Local Vector Table entry for LINT0."""
APIC_LVT1_REG_OFFSET = 0x360
"""Register offset of the APIC Local Vector Table entry for LINT1."""

LAPIC_REGS_SIZE = 1024
"""Size in bytes of the register area of a LAPIC state."""

_REG = struct.Struct("<i")
_I32_MIN = -(1 << 31)
_I32_MAX = (1 << 31) - 1


class DeliveryMode(IntEnum):
    """The type of interrupt delivered to the processor."""

    FIXED = 0b000
    SMI = 0b010
    NMI = 0b100
    INIT = 0b101
    EXT_INT = 0b111


class InvalidRegisterOffsetError(ValueError):
    """The register offset does not leave room for a 4-byte register."""

    def __init__(self, reg_offset: int) -> None:
        super().__init__(f"invalid LAPIC register offset: {reg_offset:#x}")
        self.reg_offset = reg_offset


@dataclass
class LapicState:
    """The raw register area of a Local APIC."""

    regs: bytearray = field(default_factory=lambda: bytearray(LAPIC_REGS_SIZE))

    def __post_init__(self) -> None:
        self.regs = bytearray(self.regs)
        if len(self.regs) != LAPIC_REGS_SIZE:
            raise ValueError(
                f"LAPIC registers must be {LAPIC_REGS_SIZE} bytes, got {len(self.regs)}"
            )


def _check_offset(klapic: LapicState, reg_offset: int) -> None:
    if reg_offset < 0 or reg_offset + _REG.size > len(klapic.regs):
        raise InvalidRegisterOffsetError(reg_offset)


def get_klapic_reg(klapic: LapicState, reg_offset: int) -> int:
    """Return the signed 32-bit value of the register at ``reg_offset``."""
    _check_offset(klapic, reg_offset)
    return _REG.unpack_from(klapic.regs, reg_offset)[0]


def set_klapic_reg(klapic: LapicState, reg_offset: int, value: int) -> None:
    """Store the signed 32-bit ``value`` in the register at ``reg_offset``."""
    _check_offset(klapic, reg_offset)
    if not _I32_MIN <= value <= _I32_MAX:
        raise ValueError(f"value {value} does not fit in a signed 32-bit register")
    _REG.pack_into(klapic.regs, reg_offset, value)


def _with_delivery_mode(reg: int, mode: int) -> int:
    return (reg & ~0x700) | (mode << 8)


def set_klapic_delivery_mode(
    klapic: LapicState, reg_offset: int, mode: DeliveryMode
) -> None:
    """Set the delivery mode bits of the register at ``reg_offset``."""
    reg_value = get_klapic_reg(klapic, reg_offset)
    set_klapic_reg(klapic, reg_offset, _with_delivery_mode(reg_value, int(mode)))