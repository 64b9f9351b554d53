"""
Shared helpers for PolicyCraft data models.

PolicyCraft models are plain dataclasses. Reference data (templates,
clauses, controls, extraction rules) is frozen; documents that evolve over
time (policies, approval records) are mutable but only ever appended to.
The helpers here give both kinds the same identifiers, timestamps and
JSON-compatible serialization.
"""

import uuid
from dataclasses import asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any


def generate_uuid() -> str:
    """Generate a new UUID4 string."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    """Return the current UTC datetime."""
    return datetime.now(timezone.utc)


def parse_datetime(value: Any) -> datetime | None:
    """
    Parse an ISO-8601 timestamp, passing datetimes and None through.

    Naive timestamps are assumed to be UTC.

    Raises:
        ValueError: If the value is a string that is not ISO-8601.
    """
    if value is None or isinstance(value, datetime):
        return value
    parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def serialize_value(value: Any, exclude_none: bool = False) -> Any:
    """
    Serialize a single value to a JSON-compatible type.

    Args:
        value: Value to serialize.
        exclude_none: If True, exclude None values in nested dicts/lists.

    Returns:
        JSON-compatible representation of the value.
    """
    if isinstance(value, datetime):
        return value.isoformat()
    elif isinstance(value, Enum):
        return value.value
    elif isinstance(value, dict):
        result = {}
        for k, v in value.items():
            if exclude_none and v is None:
                continue
            result[serialize_value(k)] = serialize_value(v, exclude_none)
        return result
    elif isinstance(value, (set, frozenset)):
        return sorted(serialize_value(item, exclude_none) for item in value)
    elif isinstance(value, (list, tuple)):
        return [serialize_value(item, exclude_none) for item in value]
    elif hasattr(value, "to_dict"):
        return value.to_dict(exclude_none)
    return value


def model_to_dict(instance: Any, exclude_none: bool = False) -> dict[str, Any]:
    """
    Convert a dataclass instance to a dictionary.

    Args:
        instance: A dataclass instance to convert.
        exclude_none: If True, exclude keys with None values from the output.

    Returns:
        A dictionary representation of the instance with all fields serialized
        to JSON-compatible types.
    """
    result = asdict(instance)
    return {
        k: serialize_value(v, exclude_none)
        for k, v in result.items()
        if not (exclude_none and v is None)
    }

