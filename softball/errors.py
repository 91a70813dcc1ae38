# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Domain error raised when a softball business rule is violated."""

from __future__ import annotations

from pydantic import ValidationError


class DomainError(ValueError):
    """A command or event violated a softball business rule.

    The message names the rule, e.g. "Cannot add runs when game is not in
    progress (current status: NOT_STARTED)".
    """

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def describe_validation_error(exc: ValidationError) -> str:
    """Flatten a pydantic ValidationError into a single rule message.

    Validator-raised ValueErrors keep their own message; built-in type and
    range failures are prefixed with the offending field name.
    """
    parts = []
    for err in exc.errors():
        ctx = err.get("ctx") or {}
        if "error" in ctx:
            parts.append(str(ctx["error"]))
            continue
        field = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{field}: {err['msg']}" if field else err["msg"])
    return "; ".join(parts)
