import pytest

from hierbus.core.config import BusConfig


def test_defaults():
    cfg = BusConfig()
    assert cfg.name == "hierbus.bus"
    assert cfg.strict_thread is True
    assert cfg.error_policy == "raise"
    assert cfg.metrics is True


def test_from_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)  # keep a developer .env out of the way
    monkeypatch.setenv("HIERBUS_NAME", "orders.bus")
    monkeypatch.setenv("HIERBUS_STRICT_THREAD", "off")
    monkeypatch.setenv("HIERBUS_ERROR_POLICY", "LOG")
    monkeypatch.setenv("HIERBUS_METRICS", "0")
    cfg = BusConfig.from_env()
    assert cfg == BusConfig(name="orders.bus", strict_thread=False, error_policy="log", metrics=False)


def test_from_yaml(tmp_path):
    p = tmp_path / "bus.yaml"
    p.write_text("bus:\n  name: y.bus\n  error_policy: log\n", encoding="utf-8")
    cfg = BusConfig.from_yaml(p)
    assert cfg.name == "y.bus"
    assert cfg.error_policy == "log"
    assert cfg.strict_thread is True


def test_from_yaml_without_bus_section(tmp_path):
    p = tmp_path / "empty.yaml"
    p.write_text("", encoding="utf-8")
    assert BusConfig.from_yaml(p) == BusConfig()


@pytest.mark.parametrize("kwargs", [
    {"error_policy": "retry"},
    {"strict_thread": "maybe"},
    {"name": ""},
])
def test_invalid_values(kwargs):
    with pytest.raises(ValueError):
        BusConfig(**kwargs)


def test_unknown_keys_rejected():
    with pytest.raises(ValueError):
        BusConfig.from_mapping({"name": "x", "priority": 3})
