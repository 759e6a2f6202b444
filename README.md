# vcpuboot

Helpers for preparing an x86_64 virtual machine's memory and vCPU state
before it boots. The package builds, in plain Python, the data structures a
guest kernel expects to find at startup:

- **`vcpuboot.guestmem`**: `GuestMemory`, guest physical memory made of one
  or more non-overlapping `(start, size)` ranges, zero-filled on creation.
  It offers `read`, `write`, `read_u64`, `write_u64`, `address_in_range` and
  `checked_offset`; an access outside the ranges raises `GuestMemoryError`.
- **`vcpuboot.gdt`**: `SegmentDescriptor` (built with
  `SegmentDescriptor.from_parts(flags, base, limit)`) and `Gdt` for building
  a Global Descriptor Table. `Gdt.default()` gives the null, code, data and
  TSS entries; `create_kvm_segment_for(index)` returns a `KvmSegment` or
  `None`; `write_to_mem(mem)` writes the table at `BOOT_GDT_OFFSET`, and
  `write_idt_value(val, mem)` writes the IDT value at `BOOT_IDT_OFFSET`.
- **`vcpuboot.interrupts`**: `LapicState` (a 1024-byte register area) with
  `get_klapic_reg`, `set_klapic_reg` and `set_klapic_delivery_mode` for
  setting Local APIC LVT entries such as `APIC_LVT0_REG_OFFSET` and
  `APIC_LVT1_REG_OFFSET` to a `DeliveryMode`.
- **`vcpuboot.mpconst`**: constants of the Intel MP Specification (entry
  types, CPU flags, bus type names, `MpIrqSourceType`, `MpBusType`).
- **`vcpuboot.mpspec`**: the packed little-endian records of the MP
  Specification (`MpfIntel`, `MpcTable`, `MpcCpu`, `MpcBus`, `MpcIoapic`,
  `MpcIntsrc`, `MpcLintsrc`, `MpcOemtable`), each with `pack()`,
  `unpack(data)` and a `SIZE`.
- **`vcpuboot.mptable`**: `MpTable`, which writes a complete, checksummed MP
  table describing the vCPUs into guest memory at `MPTABLE_START`, plus
  `compute_checksum` and `mpf_intel_compute_checksum`.
- **`vcpuboot.cpuid`**: `filter_cpuid(entries, vcpu_id, cpu_count,
  tsc_deadline_timer)` returns a new list of `CpuidEntry` values adjusted for
  one vCPU.
- **`vcpuboot.msrs`**: `create_boot_msr_entries()` returns the `MsrEntry`
  list needed to boot a 64-bit Linux guest.

## Installation

```
pip install .
```

## Example

```python
from vcpuboot.guestmem import GuestMemory
from vcpuboot.gdt import Gdt, write_idt_value
from vcpuboot.interrupts import (
    APIC_LVT0_REG_OFFSET,
    DeliveryMode,
    LapicState,
    set_klapic_delivery_mode,
)
from vcpuboot.mptable import MpTable

mem = GuestMemory([(0, 1024 << 20)])

gdt = Gdt.default()
gdt.write_to_mem(mem)
write_idt_value(0, mem)
code_segment = gdt.create_kvm_segment_for(1)

MpTable(4).write(mem)

lapic = LapicState()
set_klapic_delivery_mode(lapic, APIC_LVT0_REG_OFFSET, DeliveryMode.EXT_INT)
```

Errors are raised as exceptions: `TooManyCpusError` when an `MpTable` is
asked for more than `MAX_SUPPORTED_CPUS` CPUs, `NotEnoughMemoryError` when the
table does not fit in guest memory, `TooManyEntriesError` when a GDT already
holds `MAX_GDT_SIZE` entries, `InvalidRegisterOffsetError` for a LAPIC
register offset out of range, and `GuestMemoryError` for memory accesses
outside the configured ranges.

## What it does not do

The package only builds and writes data. It does not talk to a hypervisor:
it does not create virtual machines or vCPUs, load registers, MSRs or CPUID
into a running vCPU, query the host for supported CPUID leaves, or run a
guest. The caller passes host facts in (for example whether the TSC deadline
timer is supported) and applies the results itself.

## Running the tests

```
pip install .[test]
pytest
```