"""Turn free-form model text into typed workout payloads."""

from __future__ import annotations

import json
import logging

from pydantic import ValidationError

from wod_gateway.schemas import GENERATE_STRATEGY, PARSE_WOD, ParsedWorkout, WireModel, WodStrategy
from wod_gateway.services.errors import MalformedModelOutput

logger = logging.getLogger(__name__)

_OUTPUT_MODELS: dict[str, type[WireModel]] = {
    PARSE_WOD: ParsedWorkout,
    GENERATE_STRATEGY: WodStrategy,
}

_LOG_SNIPPET = 500


def extract_json_object(text: str) -> str | None:
    """Return the first balanced top-level ``{...}`` span in ``text``.

    Braces inside JSON string literals are ignored. ``None`` when no opening
    brace is found or the first object is never closed.
    """
    start = text.find("{")
    if start < 0:
        return None
    depth = 0
    in_string = False
    escaped = False
    for pos in range(start, len(text)):
        char = text[pos]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start : pos + 1]
    return None


def parse_model_output(action: str, text: str) -> WireModel:
    """Extract and validate the payload for ``action`` from model text."""
    model_cls = _OUTPUT_MODELS[action]
    span = extract_json_object(text or "")
    if span is None:
        logger.warning("No JSON object in model output: %s", (text or "")[:_LOG_SNIPPET])
        raise MalformedModelOutput("No JSON found in model response")
    try:
        data = json.loads(span)
    except json.JSONDecodeError as exc:
        logger.warning("Invalid JSON in model output: %s", span[:_LOG_SNIPPET])
        raise MalformedModelOutput("Model response is not valid JSON") from exc
    if not isinstance(data, dict):
        raise MalformedModelOutput("Model response is not a JSON object")
    try:
        return model_cls.model_validate(data)
    except ValidationError as exc:
        logger.warning("Model output failed %s validation: %s", model_cls.__name__, exc)
        raise MalformedModelOutput(
            f"Model response does not match {model_cls.__name__}"
        ) from exc


__all__ = ["extract_json_object", "parse_model_output"]
