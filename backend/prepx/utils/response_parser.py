"""
Model response parsing helpers

LLM replies often wrap JSON in prose or ```json fences. These helpers pull
out the first object/array so services can work with plain dicts.
"""

from typing import Any, Dict, List, Union
import json
import re

from prepx.core.exceptions import AIResponseParseError

_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)
_ARRAY_RE = re.compile(r"\[[\s\S]*\]")
_OBJECT_RE = re.compile(r"\{[\s\S]*\}")


def strip_code_fences(text: str) -> str:
    """Return the body of the first fenced block, or the text unchanged"""
    match = _FENCE_RE.search(text or "")
    return match.group(1).strip() if match else (text or "").strip()


def extract_json(text: str, expect: str = "object") -> Union[Dict[str, Any], List[Any]]:
    """
    Extract a JSON value from model text.

    Args:
        text: Raw model reply
        expect: "object" or "array"

    Raises:
        AIResponseParseError if nothing parseable of the expected shape is found
    """
    body = strip_code_fences(text)
    pattern = _ARRAY_RE if expect == "array" else _OBJECT_RE
    match = pattern.search(body)
    if not match:
        raise AIResponseParseError(f"No JSON {expect} found in AI response")

    try:
        value = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise AIResponseParseError(f"Invalid JSON in AI response: {e.msg}") from e

    expected_type = list if expect == "array" else dict
    if not isinstance(value, expected_type):
        raise AIResponseParseError(f"Expected JSON {expect} in AI response")
    return value
