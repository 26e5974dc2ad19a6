import pytest

from eventmesh.naming import (
    Instance,
    NoopRegistry,
    Registry,
    RegistryNotImplementedError,
    Selector,
    get_default_registry,
    get_registry,
    get_selector,
    register_registry,
    register_selector,
    set_default_registry,
    unregister_selector,
)


class _RecordingRegistry(Registry):
    def __init__(self):
        self.events = []

    def register(self, service):
        self.events.append(("register", service))

    def deregister(self, service):
        self.events.append(("deregister", service))


class _FixedSelector(Selector):
    def __init__(self, instance):
        self.instance = instance

    def select(self, service_name):
        return Instance(service_name=service_name, address=self.instance.address)


def test_instance_str():
    inst = Instance(service_name="svc", address="127.0.0.1:80", weight=3)
    assert str(inst) == "service:svc, addr:127.0.0.1:80"


def test_instance_metadata_not_shared():
    first = Instance()
    second = Instance()
    first.metadata["k"] = "v"
    assert second.metadata == {}


def test_noop_registry_raises():
    registry = NoopRegistry()
    with pytest.raises(RegistryNotImplementedError, match="not implement"):
        registry.register("svc")
    with pytest.raises(RegistryNotImplementedError):
        registry.deregister("svc")


def test_registry_error_is_not_implemented_error():
    with pytest.raises(NotImplementedError):
        NoopRegistry().register("svc")


def test_default_registry_is_noop_and_replaceable():
    original = get_default_registry()
    try:
        assert isinstance(original, NoopRegistry)
        replacement = _RecordingRegistry()
        set_default_registry(replacement)
        assert get_default_registry() is replacement
        get_default_registry().register("svc")
        assert replacement.events == [("register", "svc")]
    finally:
        set_default_registry(original)


def test_named_registry_round_trip():
    registry = _RecordingRegistry()
    register_registry("recording-test", registry)
    assert get_registry("recording-test") is registry
    get_registry("recording-test").deregister("svc")
    assert registry.events == [("deregister", "svc")]


def test_missing_registry_is_none():
    assert get_registry("no-such-registry") is None


def test_abstract_registry_cannot_be_built():
    with pytest.raises(TypeError):
        Registry()


def test_selector_register_get_unregister():
    selector = _FixedSelector(Instance(address="10.0.0.1:9000"))
    register_selector("fixed-test", selector)
    try:
        assert get_selector("fixed-test") is selector
        chosen = get_selector("fixed-test").select("orders")
        assert chosen.service_name == "orders"
        assert chosen.address == "10.0.0.1:9000"
    finally:
        unregister_selector("fixed-test")
    assert get_selector("fixed-test") is None


def test_unregister_missing_selector_is_harmless():
    unregister_selector("never-registered")
    assert get_selector("never-registered") is None