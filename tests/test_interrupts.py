import pytest

from vcpuboot.interrupts import (
    APIC_LVT0_REG_OFFSET,
    APIC_LVT1_REG_OFFSET,
    DeliveryMode,
    InvalidRegisterOffsetError,
    LapicState,
    get_klapic_reg,
    set_klapic_delivery_mode,
    set_klapic_reg,
)


def test_reg_offset_last_fitting_register():
    klapic = LapicState()
    set_klapic_delivery_mode(klapic, 1020, DeliveryMode.EXT_INT)
    assert get_klapic_reg(klapic, 1020) == 0x700


def test_reg_offset_past_end_is_rejected():
    klapic = LapicState()
    with pytest.raises(InvalidRegisterOffsetError):
        set_klapic_delivery_mode(klapic, 1021, DeliveryMode.EXT_INT)
    with pytest.raises(InvalidRegisterOffsetError):
        get_klapic_reg(klapic, 1021)
    assert bytes(klapic.regs) == bytes(1024)


def test_negative_offset_is_rejected():
    klapic = LapicState()
    with pytest.raises(InvalidRegisterOffsetError):
        get_klapic_reg(klapic, -1)
    with pytest.raises(InvalidRegisterOffsetError):
        set_klapic_reg(klapic, -4, 1)


@pytest.mark.parametrize(
    ("mode", "value"),
    [
        (DeliveryMode.FIXED, 0),
        (DeliveryMode.SMI, 0x2),
        (DeliveryMode.NMI, 0x4),
        (DeliveryMode.INIT, 0x5),
        (DeliveryMode.EXT_INT, 0x7),
    ],
)
def test_delivery_mode_values(mode, value):
    klapic = LapicState()
    set_klapic_delivery_mode(klapic, APIC_LVT0_REG_OFFSET, mode)
    assert get_klapic_reg(klapic, APIC_LVT0_REG_OFFSET) == value << 8
    assert mode == value


@pytest.mark.parametrize("value", [0, 1, -1, 0x12345678, -(1 << 31), (1 << 31) - 1])
def test_set_get_round_trip(value):
    klapic = LapicState()
    set_klapic_reg(klapic, APIC_LVT0_REG_OFFSET, value)
    assert get_klapic_reg(klapic, APIC_LVT0_REG_OFFSET) == value


def test_register_is_little_endian():
    klapic = LapicState()
    set_klapic_reg(klapic, 0x10, 0x12345678)
    assert bytes(klapic.regs[0x10:0x14]) == b"\x78\x56\x34\x12"


def test_value_out_of_range_is_rejected():
    klapic = LapicState()
    with pytest.raises(ValueError):
        set_klapic_reg(klapic, 0, 1 << 31)


def test_delivery_mode_keeps_other_bits():
    klapic = LapicState()
    set_klapic_reg(klapic, APIC_LVT1_REG_OFFSET, -1)
    set_klapic_delivery_mode(klapic, APIC_LVT1_REG_OFFSET, DeliveryMode.NMI)
    start = APIC_LVT1_REG_OFFSET
    assert bytes(klapic.regs[start : start + 4]) == b"\xff\xfc\xff\xff"


def test_delivery_mode_replaces_previous_mode():
    klapic = LapicState()
    set_klapic_delivery_mode(klapic, APIC_LVT0_REG_OFFSET, DeliveryMode.EXT_INT)
    set_klapic_delivery_mode(klapic, APIC_LVT0_REG_OFFSET, DeliveryMode.SMI)
    assert get_klapic_reg(klapic, APIC_LVT0_REG_OFFSET) == 0x200


def test_lint_registers_are_independent():
    klapic = LapicState()
    set_klapic_delivery_mode(klapic, APIC_LVT0_REG_OFFSET, DeliveryMode.EXT_INT)
    set_klapic_delivery_mode(klapic, APIC_LVT1_REG_OFFSET, DeliveryMode.NMI)
    assert get_klapic_reg(klapic, APIC_LVT0_REG_OFFSET) == 0x700
    assert get_klapic_reg(klapic, APIC_LVT1_REG_OFFSET) == 0x400


def test_lapic_state_requires_full_register_area():
    with pytest.raises(ValueError):
        LapicState(bytearray(16))