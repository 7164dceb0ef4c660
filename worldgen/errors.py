from __future__ import annotations


class FixtureError(Exception):
    """Base class for every error raised while producing fixtures."""


class ConfigurationError(FixtureError):
    """Bad or unsupported input data; fails one test case, never the batch."""


class UnknownRegistryKeyError(ConfigurationError, KeyError):
    def __init__(self, registry: str, key: str):
        self.registry = str(registry)
        self.key = str(key)
        super().__init__(f"unknown {self.registry} entry: {self.key}")

    def __str__(self) -> str:
        return f"unknown {self.registry} entry: {self.key}"


class MalformedDescriptorError(ConfigurationError, ValueError):
    pass


class UnsupportedFeatureError(ConfigurationError):
    pass


class ContractViolationError(FixtureError, RuntimeError):
    """An internal invariant broke; the current sampling run must stop."""
