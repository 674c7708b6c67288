# File: crudgen/exceptions.py
"""
CrudGen - Error Hierarchy
==========================
Every failure the scaffolding pipeline can surface derives from
``CrudGenError``.  Each subclass also inherits the closest built-in
exception so callers that only know ``ValueError`` / ``LookupError`` keep
working.

Errors carry enough context (offending token, position, template name,
path) for the CLI to point the user at the malformed input.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence


class CrudGenError(Exception):
    """Base class for all CrudGen errors."""

    code: str = "E_CRUDGEN"

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message: str = message
        self.context: Dict[str, Any] = {k: v for k, v in context.items() if v is not None}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }

    def __str__(self) -> str:
        return self.message


class InvalidName(CrudGenError, ValueError):
    """Entity name is empty, whitespace-only or not a usable identifier."""

    code = "E_INVALID_NAME"

    def __init__(self, message: str, *, name: Optional[str] = None) -> None:
        super().__init__(message, name=name)
        self.name: Optional[str] = name


class MalformedFieldSpec(CrudGenError, ValueError):
    """A ``name:type`` field token could not be parsed."""

    code = "E_FIELD_SPEC"

    def __init__(
        self,
        message: str,
        *,
        token: Optional[str] = None,
        position: Optional[int] = None,
    ) -> None:
        super().__init__(message, token=token, position=position)
        self.token: Optional[str] = token
        self.position: Optional[int] = position


class MalformedRelationSpec(CrudGenError, ValueError):
    """A ``kind:related:foreignKey:localKey`` relation token could not be parsed."""

    code = "E_RELATION_SPEC"

    def __init__(
        self,
        message: str,
        *,
        token: Optional[str] = None,
        position: Optional[int] = None,
    ) -> None:
        super().__init__(message, token=token, position=position)
        self.token: Optional[str] = token
        self.position: Optional[int] = position


class TemplateNotFound(CrudGenError, LookupError):
    """The template store has no template under the requested name."""

    code = "E_TEMPLATE_NOT_FOUND"

    def __init__(
        self,
        template_name: str,
        *,
        searched: Optional[Sequence[str]] = None,
    ) -> None:
        where: str = ""
        if searched:
            where = f" (searched: {', '.join(searched)})"
        super().__init__(
            f"Template '{template_name}' not found{where}.",
            template_name=template_name,
            searched=list(searched) if searched else None,
        )
        self.template_name: str = template_name
        self.searched: List[str] = list(searched or [])


class TemplateContextError(CrudGenError, ValueError):
    """The render context does not cover the placeholders a template needs."""

    code = "E_TEMPLATE_CONTEXT"

    def __init__(self, template_name: str, missing: Sequence[str]) -> None:
        missing_sorted: List[str] = sorted(missing)
        super().__init__(
            f"Template '{template_name}' is missing context for placeholder(s): "
            f"{', '.join(missing_sorted)}.",
            template_name=template_name,
            missing=missing_sorted,
        )
        self.template_name: str = template_name
        self.missing: List[str] = missing_sorted


class ScaffoldBackendError(CrudGenError, RuntimeError):
    """Wrapped failure from the file-creating / command-running collaborator."""

    code = "E_BACKEND"

    def __init__(
        self,
        message: str,
        *,
        path: Optional[Path] = None,
        artifact: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            path=str(path) if path is not None else None,
            artifact=artifact,
        )
        self.path: Optional[Path] = path
        self.artifact: Optional[str] = artifact


class ConfigError(CrudGenError, ValueError):
    """Configuration file missing, unreadable or invalid."""

    code = "E_CONFIG"

    def __init__(self, message: str, *, path: Optional[Path] = None) -> None:
        super().__init__(message, path=str(path) if path is not None else None)
        self.path: Optional[Path] = path


__all__: List[str] = [
    "CrudGenError",
    "InvalidName",
    "MalformedFieldSpec",
    "MalformedRelationSpec",
    "TemplateNotFound",
    "TemplateContextError",
    "ScaffoldBackendError",
    "ConfigError",
]
