"""Parsing of JSON answers returned by the reasoning engine."""
from __future__ import annotations

import json
import re
from typing import Any, Iterable, TypeVar

from pydantic import BaseModel, ValidationError

from shipit.errors import StructuredOutputError
from shipit.services.logger import logger

_FENCE_RE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)

ModelT = TypeVar("ModelT", bound=BaseModel)


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text or "").strip()


def parse_json_object(text: str, label: str) -> dict[str, Any]:
    """Parse ``text`` as a single JSON object, tolerating markdown fences."""
    cleaned = strip_code_fences(text)
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError:
        # Some models add a sentence before or after the object.
        start, end = cleaned.find("{"), cleaned.rfind("}")
        if start == -1 or end <= start:
            raise StructuredOutputError(label, "no JSON object found") from None
        try:
            parsed = json.loads(cleaned[start : end + 1])
        except json.JSONDecodeError as exc:
            raise StructuredOutputError(label, exc.msg) from exc
    if not isinstance(parsed, dict):
        raise StructuredOutputError(label, f"expected an object, got {type(parsed).__name__}")
    return parsed


def unwrap_if_needed(
    payload: dict[str, Any], expected_keys: Iterable[str], label: str
) -> dict[str, Any]:
    """Return the object that carries ``expected_keys``.

    When none of the expected keys is present and the answer is a single key
    wrapping an object (``{"vision": {...}}``), the inner object is returned.
    """
    keys = tuple(expected_keys)
    if not keys or any(k in payload for k in keys):
        return payload
    if len(payload) == 1:
        (wrapper, inner), = payload.items()
        if isinstance(inner, dict):
            logger.warning(f"[{label}] Unwrapping nested response from key '{wrapper}'")
            return inner
    return payload


def parse_model(
    text: str,
    model: type[ModelT],
    label: str,
    expected_keys: Iterable[str] = (),
) -> ModelT:
    """Parse, unwrap and validate an engine answer into ``model``."""
    payload = unwrap_if_needed(parse_json_object(text, label), expected_keys, label)
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise StructuredOutputError(label, f"{exc.error_count()} schema error(s)") from exc
