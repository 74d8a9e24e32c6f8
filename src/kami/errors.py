"""Structured errors with stable codes.

Every error that reaches a caller (CLI, API) carries an ErrorCode so the
caller can render a precise remedy instead of a bare message. Ambiguous
lookups also carry the candidate list for "did you mean" output.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    ARTICLE_NOT_FOUND = "ARTICLE_NOT_FOUND"
    AMBIGUOUS_SLUG = "AMBIGUOUS_SLUG"
    INVALID_FRONTMATTER = "INVALID_FRONTMATTER"
    SCOPE_NOT_FOUND = "SCOPE_NOT_FOUND"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    TEMPLATE_NOT_FOUND = "TEMPLATE_NOT_FOUND"
    VAULT_NOT_FOUND = "VAULT_NOT_FOUND"
    IO_ERROR = "IO_ERROR"


class ExitCode:
    SUCCESS = 0
    GENERAL_ERROR = 1
    NOT_FOUND = 2
    AMBIGUOUS = 3


_EXIT_CODES: dict[ErrorCode, int] = {
    ErrorCode.ARTICLE_NOT_FOUND: ExitCode.NOT_FOUND,
    ErrorCode.VAULT_NOT_FOUND: ExitCode.NOT_FOUND,
    ErrorCode.TEMPLATE_NOT_FOUND: ExitCode.NOT_FOUND,
    ErrorCode.AMBIGUOUS_SLUG: ExitCode.AMBIGUOUS,
}


class KamiError(Exception):
    """Application error with a stable code and optional details."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    @property
    def candidates(self) -> list[str]:
        return list(self.details.get("candidates", []))

    @property
    def exit_code(self) -> int:
        return _EXIT_CODES.get(self.code, ExitCode.GENERAL_ERROR)

    def to_dict(self) -> dict[str, Any]:
        error: dict[str, Any] = {"code": self.code.value, "message": self.message}
        if self.candidates:
            error["candidates"] = self.candidates
        extra = {k: v for k, v in self.details.items() if k != "candidates"}
        if extra:
            error["details"] = extra
        return error

    def to_json(self) -> str:
        return json.dumps({"ok": False, "data": None, "error": self.to_dict()})

    # ─────────────────────────────────────────────────────────────────────
    # Constructors
    # ─────────────────────────────────────────────────────────────────────

    @classmethod
    def article_not_found(cls, identifier: str) -> KamiError:
        return cls(ErrorCode.ARTICLE_NOT_FOUND, f"Article '{identifier}' not found")

    @classmethod
    def ambiguous_slug(cls, identifier: str, candidates: list[str]) -> KamiError:
        return cls(
            ErrorCode.AMBIGUOUS_SLUG,
            f"Slug '{identifier}' is ambiguous",
            {"candidates": candidates},
        )

    @classmethod
    def invalid_frontmatter(cls, reason: str) -> KamiError:
        return cls(ErrorCode.INVALID_FRONTMATTER, f"Failed to parse frontmatter: {reason}")

    @classmethod
    def scope_not_found(cls) -> KamiError:
        return cls(
            ErrorCode.SCOPE_NOT_FOUND,
            "Local scope not found. Run 'kami init' to initialize.",
        )

    @classmethod
    def validation_error(cls, message: str) -> KamiError:
        return cls(ErrorCode.VALIDATION_ERROR, message)

    @classmethod
    def template_not_found(cls, name: str) -> KamiError:
        return cls(ErrorCode.TEMPLATE_NOT_FOUND, f"Template '{name}' not found")

    @classmethod
    def vault_not_found(cls, name: str, hint: str | None = None) -> KamiError:
        message = f"Vault '{name}' not found"
        if hint:
            message = f"{message}. {hint}"
        return cls(ErrorCode.VAULT_NOT_FOUND, message)


def format_error_json(code: ErrorCode | str, message: str) -> str:
    """Format a non-KamiError failure in the same JSON envelope."""
    code_value = code.value if isinstance(code, ErrorCode) else code
    return json.dumps(
        {"ok": False, "data": None, "error": {"code": code_value, "message": message}}
    )
