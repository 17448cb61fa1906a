"""Tests for proctop data models."""

from proctop.models import CpuJiffies, ProcessRecord


def make_record(**overrides) -> ProcessRecord:
    values = {
        "pid": 123,
        "user": "alice",
        "command": "/usr/bin/test",
        "ram_mib": "12.50",
        "cpu_fraction": 0.25,
        "uptime_seconds": 3600,
    }
    values.update(overrides)
    return ProcessRecord(**values)


def test_process_record_creation():
    """Test ProcessRecord dataclass creation."""
    record = make_record()

    assert record.pid == 123
    assert record.user == "alice"
    assert record.command == "/usr/bin/test"
    assert record.ram_mib == "12.50"
    assert record.cpu_fraction == 0.25
    assert record.uptime_seconds == 3600


def test_process_record_is_frozen():
    """Test that ProcessRecord is immutable (frozen)."""
    record = make_record()

    try:
        record.pid = 999
        raise AssertionError("Should have raised FrozenInstanceError")
    except AttributeError:
        pass  # Expected behavior for frozen dataclass


def test_process_record_uses_slots():
    """Test that ProcessRecord uses __slots__ for memory efficiency."""
    record = make_record()
    assert not hasattr(record, "__dict__")


def test_ram_mib_value_is_numeric():
    assert make_record(ram_mib="50.25").ram_mib_value == 50.25
    assert make_record(ram_mib="").ram_mib_value == 0.0


def test_ram_mib_value_orders_numerically():
    """'9.00' < '10.10' numerically even though it sorts after it as text."""
    small = make_record(ram_mib="9.00")
    large = make_record(ram_mib="10.10")
    assert small.ram_mib_value < large.ram_mib_value
    assert small.ram_mib > large.ram_mib


class TestCpuJiffies:
    """Tests for the CpuJiffies counters."""

    def test_defaults_are_zero(self):
        jiffies = CpuJiffies()
        assert jiffies.as_list() == [0] * 10
        assert jiffies.total == 0
        assert jiffies.idle_time == 0
        assert jiffies.active_time == 0

    def test_from_values_field_order(self):
        jiffies = CpuJiffies.from_values([1, 2, 3, 4, 5, 6, 7, 8, 9, 10])
        assert jiffies.user == 1
        assert jiffies.nice == 2
        assert jiffies.system == 3
        assert jiffies.idle == 4
        assert jiffies.iowait == 5
        assert jiffies.irq == 6
        assert jiffies.softirq == 7
        assert jiffies.steal == 8
        assert jiffies.guest == 9
        assert jiffies.guest_nice == 10

    def test_from_values_ignores_extra_fields(self):
        jiffies = CpuJiffies.from_values(list(range(1, 13)))
        assert jiffies.as_list() == list(range(1, 11))

    def test_idle_and_active(self):
        jiffies = CpuJiffies(user=200, idle=80, iowait=20)
        assert jiffies.idle_time == 100
        assert jiffies.active_time == 200
        assert jiffies.total == 300
