"""
Recover one JSON object or array from free-form model output.

Model text may be fenced, wrapped in prose, or cut off mid-token when the
output-token limit is hit. Strategies, in order:
  1. strip fences, parse directly
  2. parse the first balanced {...} / [...] span
  3. close a truncated span (open string, trailing comma, open brackets)
Returns None when nothing usable comes out; callers must not guess.
"""
import json
import re
import logging
from typing import Any, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

OBJECT = "object"
ARRAY = "array"

ARRAY_KEYS: Tuple[str, ...] = ("alternatives", "products", "suggestions", "items", "results", "data")
OBJECT_KEYS: Tuple[str, ...] = ("product", "result", "item", "data")

_FENCE_RE = re.compile(r"```(?:json|JSON)?")
_CLOSERS = {"{": "}", "[": "]"}
# How many earlier cut points the repair tries after the plain close fails
_MAX_CUT_ATTEMPTS = 5


class _Scanner:
    """
    Single forward pass over JSON text.
    State: open-bracket stack, in-string flag, escape flag. Brackets inside
    string literals are ignored; a backslash escapes exactly one character.
    """

    def __init__(self) -> None:
        self.stack: List[str] = []
        self.in_string = False
        self.escape = False

    def feed(self, ch: str) -> bool:
        """Consume one character. True when it closes the outermost bracket."""
        if self.in_string:
            if self.escape:
                self.escape = False
            elif ch == "\\":
                self.escape = True
            elif ch == '"':
                self.in_string = False
            return False
        if ch == '"':
            self.in_string = True
        elif ch in _CLOSERS:
            self.stack.append(ch)
        elif ch in ("}", "]"):
            if self.stack:
                self.stack.pop()
                return not self.stack
        return False

    @property
    def at_value_boundary(self) -> bool:
        return not self.in_string and bool(self.stack)


def strip_fences(text: str) -> str:
    return _FENCE_RE.sub("", text or "").strip()


def _try_parse(text: str) -> Tuple[bool, Any]:
    try:
        return True, json.loads(text)
    except (ValueError, TypeError):
        return False, None


def _match_shape(value: Any, container: str, keys: Sequence[str]) -> Optional[Any]:
    """Return the expected container from a parsed value, or None."""
    if container == ARRAY:
        if isinstance(value, list):
            return value
        if isinstance(value, dict):
            for k in keys:
                if isinstance(value.get(k), list):
                    return value[k]
            for v in value.values():
                if isinstance(v, list):
                    return v
        return None
    if isinstance(value, dict):
        if len(value) == 1:
            (only_key, inner), = value.items()
            if only_key in keys and isinstance(inner, dict):
                return inner
        return value
    if isinstance(value, list) and value and isinstance(value[0], dict):
        return value[0]
    return None


def _balanced_span(text: str, start: int) -> Optional[str]:
    scanner = _Scanner()
    for i in range(start, len(text)):
        if scanner.feed(text[i]):
            return text[start:i + 1]
    return None


def _drop_commas_before_closers(text: str) -> str:
    """Remove a comma followed only by whitespace and a closer. String contents are untouched."""
    scanner = _Scanner()
    out: List[str] = []
    comma_at: Optional[int] = None
    for ch in text:
        outside = not scanner.in_string
        if outside and ch in ("}", "]") and comma_at is not None:
            del out[comma_at]
        scanner.feed(ch)
        out.append(ch)
        if outside and ch == ",":
            comma_at = len(out) - 1
        elif not (outside and ch.isspace()):
            comma_at = None
    return "".join(out)


def _close(fragment: str, stack: Sequence[str], in_string: bool, escape: bool) -> str:
    repaired = fragment
    if in_string:
        if escape:
            repaired = repaired[:-1]
        repaired += '"'
    else:
        repaired = repaired.rstrip()
    return _drop_commas_before_closers(repaired + "".join(_CLOSERS[o] for o in reversed(stack)))


def repair_truncated(text: str, start: int) -> Optional[Any]:
    """
    Close a span cut off by an output limit. First try closing it as-is;
    if the tail is a half-written key or number, cut back to earlier commas
    (outside strings) and close from there.
    """
    scanner = _Scanner()
    cuts: List[Tuple[int, Tuple[str, ...]]] = []
    end = len(text)
    for i in range(start, len(text)):
        ch = text[i]
        if ch == "," and scanner.at_value_boundary:
            cuts.append((i, tuple(scanner.stack)))
        if scanner.feed(ch):
            end = i + 1
            break
    fragment = text[start:end]

    ok, value = _try_parse(_close(fragment, scanner.stack, scanner.in_string, scanner.escape))
    if ok:
        return value

    for pos, stack in reversed(cuts[-_MAX_CUT_ATTEMPTS:]):
        ok, value = _try_parse(_close(text[start:pos], stack, False, False))
        if ok:
            return value
    return None


def extract_json(
    raw: str,
    container: str = OBJECT,
    keys: Sequence[str] = OBJECT_KEYS,
) -> Optional[Any]:
    """
    Extract a dict (container=OBJECT) or list (container=ARRAY) from model text.
    keys are wrapper keys the container may be nested under.
    """
    if not raw or not raw.strip():
        return None
    cleaned = strip_fences(raw)

    ok, value = _try_parse(cleaned)
    if ok:
        shaped = _match_shape(value, container, keys)
        if shaped is not None:
            return shaped

    opener = "[" if container == ARRAY else "{"
    start = cleaned.find(opener)
    if start == -1:
        logger.info("JSON_EXTRACT no %s opener in response len=%d", container, len(cleaned))
        return None

    span = _balanced_span(cleaned, start)
    if span is not None:
        ok, value = _try_parse(span)
        if ok:
            shaped = _match_shape(value, container, keys)
            if shaped is not None:
                return shaped

    value = repair_truncated(cleaned, start)
    if value is not None:
        shaped = _match_shape(value, container, keys)
        if shaped is not None:
            logger.info("JSON_EXTRACT repaired truncated %s len=%d", container, len(cleaned))
            return shaped

    logger.warning("JSON_EXTRACT failed container=%s head=%r", container, cleaned[:120])
    return None


def extract_json_object(raw: str, keys: Sequence[str] = OBJECT_KEYS) -> Optional[dict]:
    return extract_json(raw, OBJECT, keys)


def extract_json_array(raw: str, keys: Sequence[str] = ARRAY_KEYS) -> Optional[list]:
    return extract_json(raw, ARRAY, keys)
