"""User-visible diagnostics attached to individual operation results."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from pydantic import ValidationError

from bitrise_provider.exceptions import APIError, ProviderError


class Severity(str, Enum):
    """Diagnostic severity."""

    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """A single error or warning."""

    severity: Severity
    summary: str
    detail: str = ""
    attribute: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "severity": self.severity.value,
            "summary": self.summary,
            "detail": self.detail,
            "attribute": self.attribute,
        }


@dataclass
class Diagnostics:
    """Ordered collection of diagnostics for one operation."""

    items: list[Diagnostic] = field(default_factory=list)

    def __iter__(self):
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def add_error(
        self, summary: str, detail: str = "", attribute: Optional[str] = None
    ) -> None:
        self.items.append(Diagnostic(Severity.ERROR, summary, detail, attribute))

    def add_warning(
        self, summary: str, detail: str = "", attribute: Optional[str] = None
    ) -> None:
        self.items.append(Diagnostic(Severity.WARNING, summary, detail, attribute))

    def add_exception(self, exc: Exception) -> None:
        """Record an exception raised by an adapter as an error diagnostic."""
        if isinstance(exc, APIError):
            self.add_error(exc.summary, str(exc))
        elif isinstance(exc, ProviderError):
            self.add_error(exc.summary, exc.message, exc.attribute)
        elif isinstance(exc, ValidationError):
            for error in exc.errors():
                location = ".".join(str(part) for part in error.get("loc", ()))
                self.add_error("Invalid Attribute Value", error["msg"], location or None)
        else:
            self.add_error("Unexpected Error", f"{type(exc).__name__}: {exc}")

    @property
    def has_error(self) -> bool:
        return any(d.severity is Severity.ERROR for d in self.items)

    def to_list(self) -> list[dict[str, Any]]:
        return [d.to_dict() for d in self.items]
