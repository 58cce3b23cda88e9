"""
Structured Extractor
Splits raw model text into the user-facing message and the machine-readable
payload the model was asked to append (``STRUCTURED_DATA: {...}``).

Models are sloppy about this: the marker shows up bolded or bracketed, the
JSON gets wrapped in code fences, trailing commas appear, and long answers
get truncated mid-object. Everything here is best effort and never raises.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

from core.models import StructuredPayload, payload_from_dict

logger = logging.getLogger(__name__)

# STRUCTURED_DATA:, **STRUCTURED_DATA:**, [STRUCTURED_DATA]:, structured_data :
MARKER_RE = re.compile(r"(?:\*\*|\[)?[ \t]*STRUCTURED_DATA[ \t]*(?:\]|\*\*)?[ \t]*:(?:\*\*)?", re.IGNORECASE)
FENCED_JSON_RE = re.compile(r"```(?:json)?\s*(\{[\s\S]*?\})\s*```", re.IGNORECASE)
FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)
TRAILING_COMMA_RE = re.compile(r",\s*([}\]])")
# separators models like to leave right before the marker
DANGLING_TAIL_RE = re.compile(r"(?:\s*(?:```(?:json)?|---+|\*\*\*+))+\s*$", re.IGNORECASE)

_decoder = json.JSONDecoder()


@dataclass
class Extraction:
    message: str
    structured_data: Optional[StructuredPayload] = None


# ============================================================================
# JSON-IN-PROSE HELPERS
# ============================================================================

def _clean_json_text(text: str) -> str:
    text = FENCE_RE.sub("", text)
    return TRAILING_COMMA_RE.sub(r"\1", text)


def _close_truncated(text: str) -> str:
    """Close strings/brackets left open by a truncated completion"""
    stack = []
    in_string = False
    escaped = False
    for ch in text:
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
        elif ch == '"':
            in_string = True
        elif ch in "{[":
            stack.append("}" if ch == "{" else "]")
        elif ch in "}]" and stack:
            stack.pop()

    repaired = text + ('"' if in_string else "")
    # a dangling key or comma cannot be closed meaningfully; drop it
    if stack and stack[-1] == "}":
        repaired = re.sub(r',\s*"[^"]*"\s*:?\s*$', "", repaired)
    repaired = re.sub(r"[,:]\s*$", "", repaired)
    return repaired + "".join(reversed(stack))


def _decode_first(text: str, opener: str) -> Optional[Any]:
    """First value starting at any ``opener`` that decodes cleanly"""
    start = text.find(opener)
    while start != -1:
        try:
            value, _ = _decoder.raw_decode(text, start)
            return value
        except json.JSONDecodeError:
            start = text.find(opener, start + 1)
    return None


def load_json_object(text: str) -> Optional[dict]:
    """Parse a JSON object out of ``text``, repairing what can be repaired"""
    cleaned = _clean_json_text(text or "")
    start = cleaned.find("{")
    if start == -1:
        return None

    try:
        value, _ = _decoder.raw_decode(cleaned, start)
    except json.JSONDecodeError:
        value = None
    if isinstance(value, dict):
        return value

    # repair the outermost object before settling for a nested one
    try:
        value = json.loads(_close_truncated(cleaned[start:].strip()))
    except json.JSONDecodeError:
        value = _decode_first(cleaned[start + 1:], "{")
    return value if isinstance(value, dict) else None


def find_json_object(text: str) -> Optional[dict]:
    """First decodable JSON object embedded in prose"""
    value = _decode_first(_clean_json_text(text or ""), "{")
    return value if isinstance(value, dict) else None


def find_json_array(text: str) -> Optional[list]:
    """First decodable JSON array embedded in prose"""
    value = _decode_first(_clean_json_text(text or ""), "[")
    return value if isinstance(value, list) else None


# ============================================================================
# EXTRACTION
# ============================================================================

def _strip_tail(message: str) -> str:
    return DANGLING_TAIL_RE.sub("", message).strip()


def _extract(raw_text: str) -> Extraction:
    marker = MARKER_RE.search(raw_text)
    if marker:
        # everything from the marker on is payload, even if it fails to parse
        message = _strip_tail(raw_text[:marker.start()])
        data = load_json_object(raw_text[marker.end():])
        if data is None:
            logger.warning("STRUCTURED_DATA payload could not be parsed; dropping it")
            return Extraction(message=message)
        return Extraction(message=message, structured_data=payload_from_dict(data))

    # No marker: accept a fenced JSON block that is clearly our payload
    for fenced in FENCED_JSON_RE.finditer(raw_text):
        data = load_json_object(fenced.group(1))
        if data is not None and "responseType" in data:
            message = (raw_text[:fenced.start()] + raw_text[fenced.end():]).strip()
            return Extraction(message=message, structured_data=payload_from_dict(data))

    return Extraction(message=raw_text.strip())


def extract(raw_text: str) -> Extraction:
    """
    Split raw model text into (message, structured payload).

    Never raises: any failure degrades to the raw text with no payload, and
    the marker itself is never left in the message.
    """
    if not isinstance(raw_text, str):
        return Extraction(message="")
    try:
        return _extract(raw_text)
    except Exception:
        logger.warning("Structured extraction failed, returning plain text", exc_info=True)
        return Extraction(message=MARKER_RE.split(raw_text, maxsplit=1)[0].strip())
