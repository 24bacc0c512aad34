"""Error taxonomy shared by the parser, store, resolver and outer layers."""
from __future__ import annotations

from typing import Optional


class RandomMacError(Exception):
    """Base class for every error raised by randommac."""


class FormatError(RandomMacError):
    """A single registry entry could not be decoded."""

    def __init__(self, message: str, line: Optional[int] = None) -> None:
        self.line = line
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)


class EmptyRegistryError(RandomMacError):
    def __init__(self, rejected: int = 0) -> None:
        self.rejected = rejected
        super().__init__(f"registry contained no valid records ({rejected} rejected)")


class PersistenceError(RandomMacError):
    pass


class NotFoundError(RandomMacError):
    pass


class CorruptError(RandomMacError):
    pass


class NoMatchError(RandomMacError):
    def __init__(self, query: str) -> None:
        self.query = query
        super().__init__(f"no vendor found matching {query!r}")


class DatasourceError(RandomMacError):
    pass


class InterfaceError(RandomMacError):
    def __init__(self, interface: str, message: str) -> None:
        self.interface = interface
        super().__init__(f"{interface}: {message}")
