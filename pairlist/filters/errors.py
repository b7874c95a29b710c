from __future__ import annotations


class FilterConfigError(ValueError):
    """Raised when a filter declaration or option value cannot be used."""

    def __init__(self, method: str, reason: str) -> None:
        super().__init__(f"{method}: {reason}")
        self.method = method
        self.reason = reason


class UnknownFilterError(FilterConfigError):
    def __init__(self, method: str) -> None:
        super().__init__(method, "unknown filter method")
