import pytest

from vcpuboot.cpuid import CpuidEntry, filter_cpuid


def _sample_entries():
    return [
        CpuidEntry(function=0x00, eax=0x0D, ebx=0x756E6547),
        CpuidEntry(function=0x01, index=0, ebx=0xFFFFFFFF, ecx=0x0, edx=0x0),
        CpuidEntry(function=0x06, ecx=0xFF),
        CpuidEntry(function=0x0B, index=0, edx=0x1234),
        CpuidEntry(function=0x0B, index=1, edx=0x5678),
    ]


def test_no_entries_are_added():
    entries = _sample_entries()
    filtered = filter_cpuid(entries, 0, 1, True)
    assert len(filtered) == len(entries)


def test_unrelated_leaf_is_untouched():
    entries = _sample_entries()
    assert filter_cpuid(entries, 3, 4, True)[0] == entries[0]


def test_leaf_one_single_cpu():
    leaf = filter_cpuid([CpuidEntry(function=0x01, ebx=0xFFFFFFFF)], 0, 1, False)[0]
    assert leaf.ebx == 0x0800
    assert leaf.ecx == 1 << 31
    assert leaf.edx == 0


def test_leaf_one_multiple_cpus_and_tsc_deadline():
    leaf = filter_cpuid([CpuidEntry(function=0x01)], 2, 4, True)[0]
    assert leaf.ebx == (2 << 24) | (4 << 16) | 0x0800
    assert leaf.ecx == (1 << 31) | (1 << 24)
    assert leaf.edx == 1 << 28


def test_leaf_one_nonzero_index_has_no_hypervisor_bit():
    leaf = filter_cpuid([CpuidEntry(function=0x01, index=1)], 0, 1, False)[0]
    assert leaf.ecx == 0


def test_leaf_six_clears_epb():
    leaf = filter_cpuid([CpuidEntry(function=0x06, ecx=0xFF)], 0, 1, False)[0]
    assert leaf.ecx == 0xF7


def test_leaf_eleven_sets_x2apic_id():
    filtered = filter_cpuid(_sample_entries(), 7, 8, False)
    assert [e.edx for e in filtered if e.function == 0x0B] == [7, 7]


def test_input_is_not_modified():
    entries = _sample_entries()
    filter_cpuid(entries, 5, 6, True)
    assert entries == _sample_entries()


@pytest.mark.parametrize("vcpu_id, cpu_count", [(256, 1), (0, 256), (-1, 1)])
def test_out_of_range_ids_are_rejected(vcpu_id, cpu_count):
    with pytest.raises(ValueError):
        filter_cpuid(_sample_entries(), vcpu_id, cpu_count, False)