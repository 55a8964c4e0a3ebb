from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class RuleResult:
    """Uniform outcome of a business rule: ``{valid, error?, code?, details?}``."""
    valid: bool
    error: str | None = None
    code: str | None = None
    details: Any = field(default=None)

    def __bool__(self) -> bool:
        return self.valid

    def to_dict(self) -> dict:
        out: dict[str, Any] = {"valid": self.valid}
        if self.error is not None:
            out["error"] = self.error
        if self.code is not None:
            out["code"] = self.code
        if self.details is not None:
            out["details"] = self.details
        return out


PASS = RuleResult(True)


def fail(error: str, code: str, details: Any = None) -> RuleResult:
    return RuleResult(False, error, code, details)
