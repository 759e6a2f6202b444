"""Adjusting CPUID entries so they describe a virtual CPU."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace

_U32_MASK = 0xFFFF_FFFF

_EBX_CLFLUSH_CACHELINE = 8  # Cache line size flushed by CLFLUSH, in 8-byte units.
_EBX_CLFLUSH_SIZE_SHIFT = 8
_EBX_CPU_COUNT_SHIFT = 16
_EBX_CPUID_SHIFT = 24
_ECX_EPB_SHIFT = 3  # Energy Performance Bias.
_ECX_TSC_DEADLINE_TIMER_SHIFT = 24
_ECX_HYPERVISOR_SHIFT = 31
_EDX_HTT_SHIFT = 28  # Hyper-threading.


@dataclass(frozen=True)
class CpuidEntry:
    """One CPUID leaf as reported to a guest."""

    function: int
    index: int = 0
    flags: int = 0
    eax: int = 0
    ebx: int = 0
    ecx: int = 0
    edx: int = 0


def _filter_entry(
    entry: CpuidEntry, vcpu_id: int, cpu_count: int, tsc_deadline_timer: bool
) -> CpuidEntry:
    if entry.function == 0x01:
        ecx = entry.ecx
        if entry.index == 0:
            ecx |= 1 << _ECX_HYPERVISOR_SHIFT
        if tsc_deadline_timer:
            ecx |= 1 << _ECX_TSC_DEADLINE_TIMER_SHIFT
        ebx = (vcpu_id << _EBX_CPUID_SHIFT) | (
            _EBX_CLFLUSH_CACHELINE << _EBX_CLFLUSH_SIZE_SHIFT
        )
        edx = entry.edx
        if cpu_count > 1:
            ebx |= cpu_count << _EBX_CPU_COUNT_SHIFT
            edx |= 1 << _EDX_HTT_SHIFT
        return replace(entry, ebx=ebx & _U32_MASK, ecx=ecx & _U32_MASK, edx=edx & _U32_MASK)
    if entry.function == 0x06:
        return replace(entry, ecx=entry.ecx & ~(1 << _ECX_EPB_SHIFT) & _U32_MASK)
    if entry.function == 0x0B:
        return replace(entry, edx=vcpu_id)
    return entry


def filter_cpuid(
    entries: Iterable[CpuidEntry],
    vcpu_id: int,
    cpu_count: int,
    tsc_deadline_timer: bool,
) -> list[CpuidEntry]:
    """Return ``entries`` adjusted for the vCPU ``vcpu_id`` out of ``cpu_count``.

    ``tsc_deadline_timer`` tells whether the host supports the TSC deadline timer.
    """
    for name, value in (("vcpu_id", vcpu_id), ("cpu_count", cpu_count)):
        if not 0 <= value <= 0xFF:
            raise ValueError(f"{name} {value} does not fit in 8 bits")
    return [
        _filter_entry(entry, vcpu_id, cpu_count, tsc_deadline_timer)
        for entry in entries
    ]