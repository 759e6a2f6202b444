"""Boot-time structures for x86_64 virtual CPUs: guest memory, GDT, MP table, LAPIC, CPUID and MSRs."""

__version__ = "0.1.0"

__all__ = ["cpuid", "gdt", "guestmem", "interrupts", "mpconst", "mpspec", "mptable", "msrs"]