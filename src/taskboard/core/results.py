# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Result types returned by the action layer.

Field errors are keyed by a closed set of form fields, each holding one or
more messages. CRUD outcomes are tagged, so "not logged in", "no such row" and
"the store failed" never collapse into the same empty value.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class FormField(str, Enum):
    FIRST_NAME = "first_name"
    LAST_NAME = "last_name"
    EMAIL = "email"
    PASSWORD = "password"
    TEXT = "text"
    NAME = "name"
    COLOR = "color"
    CATEGORY_ID = "category_id"
    COMPLETED = "completed"


FieldErrors = Dict[FormField, List[str]]


def add_error(errors: FieldErrors, f: FormField, message: str) -> None:
    errors.setdefault(f, []).append(message)


def errors_to_dict(errors: FieldErrors) -> Dict[str, List[str]]:
    return {f.value: list(msgs) for f, msgs in errors.items()}


@dataclass(frozen=True)
class FormResult:
    """Outcome of the login/register forms."""

    success: bool
    errors: FieldErrors = field(default_factory=dict)

    @classmethod
    def ok(cls) -> "FormResult":
        return cls(success=True)

    @classmethod
    def fail(cls, errors: FieldErrors) -> "FormResult":
        return cls(success=False, errors=errors)

    @classmethod
    def single(cls, f: FormField, message: str) -> "FormResult":
        return cls(success=False, errors={f: [message]})

    def to_dict(self) -> Dict[str, Any]:
        if self.success:
            return {"success": True}
        return {"errors": errors_to_dict(self.errors)}


class ActionStatus(str, Enum):
    OK = "ok"
    INVALID = "invalid"
    NOT_FOUND = "not_found"
    UNAUTHENTICATED = "unauthenticated"
    ERROR = "error"


@dataclass(frozen=True)
class ActionResult:
    status: ActionStatus
    value: Optional[Any] = None
    errors: FieldErrors = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status is ActionStatus.OK

    @classmethod
    def success(cls, value: Any = None) -> "ActionResult":
        return cls(ActionStatus.OK, value=value)

    @classmethod
    def invalid(cls, errors: FieldErrors) -> "ActionResult":
        return cls(ActionStatus.INVALID, errors=errors)

    @classmethod
    def not_found(cls) -> "ActionResult":
        return cls(ActionStatus.NOT_FOUND)

    @classmethod
    def unauthenticated(cls) -> "ActionResult":
        return cls(ActionStatus.UNAUTHENTICATED)

    @classmethod
    def error(cls) -> "ActionResult":
        return cls(ActionStatus.ERROR)
