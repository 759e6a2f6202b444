"""Constants of the Intel MultiProcessor specification tables."""

from __future__ import annotations

from enum import IntEnum

MPC_SIGNATURE = b"PCMP"
MPC_OEM_SIGNATURE = b"_OEM"

# Entry types of the MP configuration table.
MP_PROCESSOR = 0
MP_BUS = 1
MP_IOAPIC = 2
MP_INTSRC = 3
MP_LINTSRC = 4
MP_TRANSLATION = 192

# Processor entry flags and CPU signature masks.
CPU_ENABLED = 1
CPU_BOOTPROCESSOR = 2
CPU_STEPPING_MASK = 0x000F
CPU_MODEL_MASK = 0x00F0
CPU_FAMILY_MASK = 0x0F00

# Bus type identifiers.
BUSTYPE_EISA = b"EISA"
BUSTYPE_ISA = b"ISA"
BUSTYPE_INTERN = b"INTERN"
BUSTYPE_MCA = b"MCA"
BUSTYPE_VL = b"VL"
BUSTYPE_PCI = b"PCI"
BUSTYPE_PCMCIA = b"PCMCIA"
BUSTYPE_CBUS = b"CBUS"
BUSTYPE_CBUSII = b"CBUSII"
BUSTYPE_FUTURE = b"FUTURE"
BUSTYPE_MBI = b"MBI"
BUSTYPE_MBII = b"MBII"
BUSTYPE_MPI = b"MPI"
BUSTYPE_MPSA = b"MPSA"
BUSTYPE_NUBUS = b"NUBUS"
BUSTYPE_TC = b"TC"
BUSTYPE_VME = b"VME"
BUSTYPE_XPRESS = b"XPRESS"

# I/O APIC entry flags.
MPC_APIC_USABLE = 1

# Interrupt polarity / trigger flags.
MP_IRQDIR_DEFAULT = 0
MP_IRQDIR_HIGH = 1
MP_IRQDIR_LOW = 3

MP_APIC_ALL = 0xFF


class MpIrqSourceType(IntEnum):
    """Interrupt types of interrupt source entries."""

    INT = 0
    NMI = 1
    SMI = 2
    EXT_INT = 3


class MpBusType(IntEnum):
    """Bus kinds known to the MP table code."""

    ISA = 1
    EISA = 2
    PCI = 3