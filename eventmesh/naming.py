"""Service instances, named registries and named selectors."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field


class RegistryNotImplementedError(NotImplementedError):
    """Raised by a registry that does not support an operation."""

    def __init__(
        self, message: str = "not implement", *, operation: str = "", service: str = ""
    ) -> None:
        super().__init__(message)
        self.operation = operation
        self.service = service


@dataclass
class Instance:
    """A backend instance of a service."""

    service_name: str = ""
    address: str = ""
    weight: int = 0
    clusters: str = ""
    metadata: dict[str, str] = field(default_factory=dict)

    def __str__(self) -> str:
        return f"service:{self.service_name}, addr:{self.address}"


class Registry(ABC):
    """Registers and deregisters services."""

    @abstractmethod
    def register(self, service: str) -> None:
        """Register the service."""

    @abstractmethod
    def deregister(self, service: str) -> None:
        """Deregister the service."""


class NoopRegistry(Registry):
    """A registry that supports nothing."""

    def register(self, service: str) -> None:
        error = RegistryNotImplementedError(operation="register", service=service)
        raise error

    def deregister(self, service: str) -> None:
        error = RegistryNotImplementedError(operation="deregister", service=service)
        raise error


class Selector(ABC):
    """Picks a backend instance for a service."""

    @abstractmethod
    def select(self, service_name: str) -> Instance:
        """Return a backend instance of the named service."""


_DEFAULT_KEY = "default"
_default: dict[str, Registry] = {_DEFAULT_KEY: NoopRegistry()}
_default_lock = threading.Lock()
_registries: dict[str, Registry] = {}
_registries_lock = threading.RLock()
_selectors: dict[str, Selector] = {}


def set_default_registry(registry: Registry) -> None:
    """Replace the default registry."""
    with _default_lock:
        _default[_DEFAULT_KEY] = registry


def get_default_registry() -> Registry:
    """Return the default registry."""
    with _default_lock:
        return _default[_DEFAULT_KEY]


def register_registry(name: str, registry: Registry) -> None:
    """Register a named registry, replacing any earlier one of that name."""
    with _registries_lock:
        _registries[name] = registry


def get_registry(name: str) -> Registry | None:
    """Return the named registry, or None if there is none."""
    with _registries_lock:
        return _registries.get(name)


def register_selector(name: str, selector: Selector) -> None:
    """Register a named selector, replacing any earlier one of that name."""
    _selectors[name] = selector


def get_selector(name: str) -> Selector | None:
    """Return the named selector, or None if there is none."""
    return _selectors.get(name)


def unregister_selector(name: str) -> None:
    """Remove the named selector if it is registered."""
    _selectors.pop(name, None)