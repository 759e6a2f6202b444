"""Model specific registers needed to boot a 64-bit guest."""

from __future__ import annotations

from dataclasses import dataclass

MSR_IA32_TSC = 0x0000_0010
MSR_IA32_SYSENTER_CS = 0x0000_0174
MSR_IA32_SYSENTER_ESP = 0x0000_0175
MSR_IA32_SYSENTER_EIP = 0x0000_0176
MSR_IA32_MISC_ENABLE = 0x0000_01A0
MSR_IA32_MISC_ENABLE_FAST_STRING = 0x0000_0001
MSR_STAR = 0xC000_0081
MSR_LSTAR = 0xC000_0082
MSR_CSTAR = 0xC000_0083
MSR_SYSCALL_MASK = 0xC000_0084
MSR_KERNEL_GS_BASE = 0xC000_0102


@dataclass(frozen=True)
class MsrEntry:
    """A model specific register index and the value to load into it."""

    index: int
    data: int = 0


def create_boot_msr_entries() -> list[MsrEntry]:
    """Return the MSR entries required for booting Linux on x86_64."""
    return [
        MsrEntry(MSR_IA32_SYSENTER_CS),
        MsrEntry(MSR_IA32_SYSENTER_ESP),
        MsrEntry(MSR_IA32_SYSENTER_EIP),
        MsrEntry(MSR_STAR),
        MsrEntry(MSR_CSTAR),
        MsrEntry(MSR_KERNEL_GS_BASE),
        MsrEntry(MSR_SYSCALL_MASK),
        MsrEntry(MSR_LSTAR),
        MsrEntry(MSR_IA32_TSC),
        MsrEntry(MSR_IA32_MISC_ENABLE, MSR_IA32_MISC_ENABLE_FAST_STRING),
    ]