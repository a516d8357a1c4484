from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Mapping

from sqlalchemy import Boolean, Date, DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import DeclarativeMeta

from fenceflow.money import AmountTooLargeError, to_decimal
from fenceflow.time_utils import parse_iso_date, parse_iso_datetime

# Loose RFC-5322 shape check; deliverability is not our concern
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# INTEGER columns are 32-bit on PostgreSQL
MAX_INT = 2_147_483_647
MIN_INT = -MAX_INT - 1


class ValidationError(ValueError):
    """
    400-level input problem.

    Carries one {"field", "message"} entry per offending field so clients
    can highlight every bad input at once.
    """

    def __init__(self, errors: list[dict] | str, field_name: str | None = None):
        if isinstance(errors, str):
            errors = [{"field": field_name, "message": errors}]
        self.errors = errors
        super().__init__("; ".join(e["message"] for e in errors))

    def to_dict(self) -> dict:
        return {"errors": self.errors}


class BusinessRuleError(ValueError):
    """400-level business rule violation (e.g., insufficient stock, duplicate SKU)."""


class NotFoundError(LookupError):
    """404-level missing row."""

    def __init__(self, entity: str):
        self.entity = entity
        super().__init__(f"{entity} not found")


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - choices: enumerated string columns
    - min_values: inclusive lower bounds for numeric columns
    - email_fields: string columns that must look like an email address
    - min_lengths: minimum string length after stripping
    """
    writable_fields: frozenset[str]
    required_on_create: frozenset[str] = frozenset()
    choices: Mapping[str, tuple] = field(default_factory=dict)
    min_values: Mapping[str, Any] = field(default_factory=dict)
    email_fields: frozenset[str] = frozenset()
    min_lengths: Mapping[str, int] = field(default_factory=dict)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def coerce_int(key: str, value: Any) -> int:
    value = _parse_int(key, value)
    if not MIN_INT <= value <= MAX_INT:
        raise ValueError(f"{key} must be between {MIN_INT} and {MAX_INT}")
    return value


def _parse_int(key: str, value: Any) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValueError(f"{key} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValueError(f"{key} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValueError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValueError(f"{key} must be an integer")
    if isinstance(value, float):
        raise ValueError(f"{key} must be an integer, not a decimal")
    raise ValueError(f"{key} must be an integer")


def max_amount(coltype: Numeric) -> Decimal:
    """Largest magnitude a Numeric(precision, scale) column holds, e.g. 99,999,999.99 for (10, 2)."""
    precision = coltype.precision or 12
    scale = coltype.scale if coltype.scale is not None else 2
    return Decimal(10) ** (precision - scale) - Decimal(1).scaleb(-scale)


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return coerce_int(col.key, value)

    if isinstance(coltype, Numeric):
        limit = max_amount(coltype)
        try:
            amount = to_decimal(value)
        except AmountTooLargeError:
            raise ValueError(f"{col.key} cannot exceed {limit:,}")
        except ValueError:
            raise ValueError(f"{col.key} must be a number")
        if abs(amount) > limit:
            raise ValueError(f"{col.key} cannot exceed {limit:,}")
        return amount

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValueError(f"{col.key} must be a boolean")

    # Dates accept "YYYY-MM-DD" or a full ISO-8601 datetime
    if isinstance(coltype, Date):
        if isinstance(value, date):
            return value
        if isinstance(value, str):
            try:
                d = parse_iso_date(value)
            except ValueError:
                raise ValueError(f"{col.key} must be an ISO-8601 date")
            return d
        raise ValueError(f"{col.key} must be an ISO-8601 date")

    if isinstance(coltype, DateTime):
        if isinstance(value, str):
            try:
                return parse_iso_datetime(value)
            except ValueError:
                raise ValueError(f"{col.key} must be an ISO-8601 datetime")
        raise ValueError(f"{col.key} must be an ISO-8601 datetime")

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        if isinstance(value, (dict, list)):
            raise ValueError(f"{col.key} must be a string")
        return str(value).strip()

    # Default: leave as-is
    return value


def _check_rules(key: str, val: Any, policy: ModelValidationPolicy) -> str | None:
    if key in policy.choices and val not in policy.choices[key]:
        return f"{key} must be one of: {', '.join(policy.choices[key])}"
    if key in policy.min_values and val < policy.min_values[key]:
        return f"{key} must be >= {policy.min_values[key]}"
    if key in policy.email_fields and not EMAIL_RE.match(val):
        return "Valid email is required"
    if key in policy.min_lengths and len(val) < policy.min_lengths[key]:
        return f"{key} must be at least {policy.min_lengths[key]} characters"
    return None


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: Any,
    policy: ModelValidationPolicy,
    partial: bool,
    extra_fields: frozenset[str] = frozenset(),
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields) and per-field rules
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)

    extra_fields are accepted but skipped here; the caller validates them
    (e.g., a plaintext password that is not a model column).

    Every problem is collected and raised together as one ValidationError.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    errors: list[dict] = []

    if not partial:
        for f in sorted(policy.required_on_create):
            if f not in payload or payload[f] is None or payload[f] == "":
                errors.append({"field": f, "message": f"{f} is required"})

    cols = _columns_by_key(model)
    patch: dict = {}

    for k, raw in payload.items():
        if k in extra_fields:
            continue
        # Reject unknown / non-writable fields
        if k not in policy.writable_fields or k not in cols:
            errors.append({"field": k, "message": f"Field not allowed: {k}"})
            continue
        if any(e["field"] == k for e in errors):
            continue

        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable:
                errors.append({"field": k, "message": f"{k} cannot be null"})
                continue
            patch[k] = None
            continue

        try:
            val = _coerce_value(col, raw)
        except ValueError as e:
            errors.append({"field": k, "message": str(e)})
            continue

        # Blank string check: non-nullable text must have content, nullable text becomes NULL
        if isinstance(col.type, (String, Text)) and isinstance(val, str) and val == "":
            if not col.nullable:
                errors.append({"field": k, "message": f"{k} cannot be blank"})
                continue
            patch[k] = None
            continue

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                errors.append({"field": k, "message": f"{k} exceeds max length {col.type.length}"})
                continue

        message = _check_rules(k, val, policy)
        if message:
            errors.append({"field": k, "message": message})
            continue

        patch[k] = val

    if errors:
        raise ValidationError(errors)

    return patch


def parse_int_arg(args: Mapping[str, str], name: str, *, minimum: int | None = None,
                  maximum: int | None = None) -> int | None:
    """Parse an optional integer query-string argument."""
    raw = args.get(name)
    if raw is None or raw == "":
        return None
    try:
        value = coerce_int(name, raw)
    except ValueError as e:
        raise ValidationError(str(e), name)
    if minimum is not None and value < minimum:
        raise ValidationError(f"{name} must be >= {minimum}", name)
    if maximum is not None and value > maximum:
        raise ValidationError(f"{name} must be <= {maximum}", name)
    return value


def parse_choice_arg(args: Mapping[str, str], name: str, choices: tuple) -> str | None:
    raw = args.get(name)
    if raw is None or raw == "":
        return None
    if raw not in choices:
        raise ValidationError(f"{name} must be one of: {', '.join(choices)}", name)
    return raw


def collect_query_errors(*parsers) -> list:
    """
    Run zero-arg parser callables, returning their values in order and
    raising a single ValidationError with every failure.
    """
    values = []
    errors: list[dict] = []
    for parse in parsers:
        try:
            values.append(parse())
        except ValidationError as e:
            errors.extend(e.errors)
            values.append(None)
    if errors:
        raise ValidationError(errors)
    return values
