# Overview: Payload validation and the shared error types mapped to HTTP statuses.

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta


# 9,999,999.99 in cents
MAX_PRICE_CENTS = 999_999_999


class ValidationError(ValueError):
    """400-level input problem."""


class NotFoundError(ValueError):
    """404-level missing entity."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate discount code)."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """Which columns clients may write, and which a create must supply."""
    writable_fields: set[str]
    required_on_create: frozenset[str] = frozenset()


def require_int(value: Any, name: str) -> int:
    """Coerce a JSON/query value to int or raise ValidationError.

    Floats, booleans, decimals and scientific notation are rejected so that
    cents and stock counts never silently truncate.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.lstrip("-").isdigit():
            return int(text)
    raise ValidationError(f"{name} must be an integer")


def _require_bool(value: Any, name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise ValidationError(f"{name} must be true or false")


def _coerce(col, value: Any):
    if isinstance(col.type, Boolean):
        return _require_bool(value, col.key)
    if isinstance(col.type, Integer):
        return require_int(value, col.key)
    if isinstance(col.type, (String, Text)):
        if not isinstance(value, (str, int, float)) or isinstance(value, bool):
            raise ValidationError(f"{col.key} must be text")
        text = str(value).strip()
        if not text and not col.nullable:
            raise ValidationError(f"{col.key} cannot be blank")
        if isinstance(col.type, String) and col.type.length and len(text) > col.type.length:
            raise ValidationError(f"{col.key} exceeds max length {col.type.length}")
        return text
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Clean an incoming JSON body into a column patch for `model`.

    Keys outside the policy are refused rather than ignored. With
    partial=False the policy's required fields must be present; with
    partial=True only the supplied keys are checked.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(policy.required_on_create - payload.keys())
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    columns = {c.key: c for c in model.__mapper__.columns}
    patch: dict = {}
    for key, raw in payload.items():
        if key not in policy.writable_fields or key not in columns:
            raise ValidationError(f"Field not allowed: {key}")
        col = columns[key]
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{key} cannot be null")
            patch[key] = None
        else:
            patch[key] = _coerce(col, raw)
    return patch


def enforce_rules_money(patch: dict, *keys: str) -> None:
    """Cents fields must be non-negative and below MAX_PRICE_CENTS."""
    for key in keys:
        value = patch.get(key)
        if value is None:
            continue
        if value < 0:
            raise ValidationError(f"{key} must be >= 0")
        if value > MAX_PRICE_CENTS:
            raise ValidationError(f"{key} cannot exceed {MAX_PRICE_CENTS}")


def enforce_rules_item(patch: dict) -> None:
    enforce_rules_money(patch, "price_cents", "cost_cents")
    if patch.get("stock") is not None and patch["stock"] < 0:
        raise ValidationError("stock must be >= 0")


def enforce_rules_bundle(patch: dict) -> None:
    enforce_rules_money(patch, "price_cents")
    if patch.get("is_custom"):
        max_pieces = patch.get("max_pieces")
        if max_pieces is None or max_pieces <= 0:
            raise ValidationError("max_pieces must be > 0 for custom bundles")
