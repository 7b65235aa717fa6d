# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import re
from typing import Any, Dict, Mapping, Optional, Tuple

from taskboard.core.results import FieldErrors, FormField, add_error

MIN_PASSWORD_LENGTH = 8
MAX_TEXT_LENGTH = 500
MAX_NAME_LENGTH = 100
DEFAULT_CATEGORY_COLOR = "#4f46e5"
# Largest id SQLite can store (signed 64-bit INTEGER).
MAX_ROW_ID = 2**63 - 1

_HEX_COLOR = re.compile(r"^#[0-9a-fA-F]{6}$")


def clean(value: Any) -> str:
    return str(value or "").strip()


def validate_login(email: str, password: str) -> FieldErrors:
    errors: FieldErrors = {}
    if not clean(email):
        add_error(errors, FormField.EMAIL, "Email is required")
    if not password:
        add_error(errors, FormField.PASSWORD, "Password is required")
    return errors


def validate_registration(first_name: str, last_name: str, email: str, password: str) -> FieldErrors:
    """Missing fields first, then format/length rules on what was supplied."""
    errors: FieldErrors = {}
    if not clean(first_name):
        add_error(errors, FormField.FIRST_NAME, "First name is required")
    if not clean(last_name):
        add_error(errors, FormField.LAST_NAME, "Last name is required")
    if not clean(email):
        add_error(errors, FormField.EMAIL, "Email is required")
    if not password:
        add_error(errors, FormField.PASSWORD, "Password is required")

    if clean(email) and "@" not in clean(email):
        add_error(errors, FormField.EMAIL, "Enter a valid email address")
    if password and len(password) < MIN_PASSWORD_LENGTH:
        add_error(errors, FormField.PASSWORD, f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    return errors


def _check_text(errors: FieldErrors, value: Any) -> str:
    text = clean(value)
    if not text:
        add_error(errors, FormField.TEXT, "Task text is required")
    elif len(text) > MAX_TEXT_LENGTH:
        add_error(errors, FormField.TEXT, f"Task text must be at most {MAX_TEXT_LENGTH} characters")
    return text


def _check_name(errors: FieldErrors, value: Any) -> str:
    name = clean(value)
    if not name:
        add_error(errors, FormField.NAME, "Name is required")
    elif len(name) > MAX_NAME_LENGTH:
        add_error(errors, FormField.NAME, f"Name must be at most {MAX_NAME_LENGTH} characters")
    return name


def _check_color(errors: FieldErrors, value: Any) -> str:
    color = clean(value)
    if not _HEX_COLOR.match(color):
        add_error(errors, FormField.COLOR, "Color must be a hex value like #4f46e5")
    return color.lower()


def _check_category_id(errors: FieldErrors, value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        add_error(errors, FormField.CATEGORY_ID, "Invalid category")
        return None
    try:
        cid = int(value)
    except (TypeError, ValueError):
        add_error(errors, FormField.CATEGORY_ID, "Invalid category")
        return None
    if not 1 <= cid <= MAX_ROW_ID:
        add_error(errors, FormField.CATEGORY_ID, "Invalid category")
        return None
    return cid


def validate_new_task(text: Any, category_id: Any = None) -> Tuple[str, Optional[int], FieldErrors]:
    errors: FieldErrors = {}
    t = _check_text(errors, text)
    cid = _check_category_id(errors, category_id)
    return t, cid, errors


def validate_task_update(raw: Mapping[str, Any]) -> Tuple[Dict[str, Any], FieldErrors]:
    """Keep only the recognised task fields present in ``raw``, validated."""
    errors: FieldErrors = {}
    fields: Dict[str, Any] = {}
    if "text" in raw:
        fields["text"] = _check_text(errors, raw["text"])
    if "completed" in raw:
        if isinstance(raw["completed"], bool):
            fields["completed"] = raw["completed"]
        else:
            add_error(errors, FormField.COMPLETED, "Completed must be true or false")
    if "category_id" in raw:
        fields["category_id"] = _check_category_id(errors, raw["category_id"])
    return fields, errors


def validate_new_category(name: Any, color: Any = None) -> Tuple[str, str, FieldErrors]:
    errors: FieldErrors = {}
    n = _check_name(errors, name)
    c = _check_color(errors, color if clean(color) else DEFAULT_CATEGORY_COLOR)
    return n, c, errors


def validate_category_update(raw: Mapping[str, Any]) -> Tuple[Dict[str, Any], FieldErrors]:
    errors: FieldErrors = {}
    fields: Dict[str, Any] = {}
    if "name" in raw:
        fields["name"] = _check_name(errors, raw["name"])
    if "color" in raw:
        fields["color"] = _check_color(errors, raw["color"])
    return fields, errors
