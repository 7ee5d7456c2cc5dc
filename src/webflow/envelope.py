"""Response envelope decoding.

Every API response is read in the same order:

1. the `x-ratelimit-limit` / `x-ratelimit-remaining` headers (required)
2. the JSON body, shaped `{data, errors, limit, remaining}`
3. on a 2xx status, `data` (or the whole body when there is no `data`) is
   converted into the caller's requested type; otherwise the first entry of
   `errors` is raised as `APIError`

Result conversion understands dataclasses (keys matched case-insensitively,
or through `field(metadata={"json": "_id"})`), `list[...]`, `dict[str, ...]`,
`Optional[...]`, plain scalars, and falls back to calling `into(value)`.
"""

from __future__ import annotations

import dataclasses
import json
import re
import types
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union, get_args, get_origin, get_type_hints

from .errors import APIError, DEFAULT_CODE, DecodeError, RateLimitHeaderError

RATE_LIMIT_HEADER = "x-ratelimit-limit"
REMAINING_HEADER = "x-ratelimit-remaining"

UNKNOWN_REMOTE_ERROR = "unknown remote error"

_INTEGER = re.compile(r"[+-]?[0-9]+")


@dataclass(frozen=True)
class RateLimit:
    limit: int
    remaining: int


@dataclass
class ErrorEntry:
    message: str
    code: int


@dataclass
class Envelope:
    data: Any = None
    errors: List[ErrorEntry] = field(default_factory=list)
    limit: Optional[int] = None
    remaining: Optional[int] = None
    raw: Any = None

    @property
    def has_data(self) -> bool:
        return self.data is not None


@dataclass
class APIResult:
    """Decoded value plus what the server reported alongside it."""

    data: Any
    rate_limit: RateLimit
    status_code: int


def _header_values(headers: Mapping[str, Any], name: str) -> List[str]:
    get_list = getattr(headers, "get_list", None)
    if callable(get_list):
        return [str(v) for v in get_list(name)]
    for key, value in headers.items():
        if key.lower() == name:
            if isinstance(value, (list, tuple)):
                return [str(v) for v in value]
            return [str(value)]
    return []


def _parse_int_header(headers: Mapping[str, Any], name: str) -> int:
    values = _header_values(headers, name)
    if not values:
        raise RateLimitHeaderError(f"Failed to parse {name}: header missing")
    if len(values) > 1 or "," in values[0]:
        raise RateLimitHeaderError(f"Failed to parse {name}: expected a single value, got {values!r}")
    raw = values[0].strip()
    # ASCII digits only: int() would also take "1_000" and non-Latin numerals
    if not _INTEGER.fullmatch(raw):
        raise RateLimitHeaderError(f"Failed to parse {name}: invalid integer {raw!r}")
    return int(raw)


def parse_rate_limit(headers: Mapping[str, Any]) -> RateLimit:
    return RateLimit(
        limit=_parse_int_header(headers, RATE_LIMIT_HEADER),
        remaining=_parse_int_header(headers, REMAINING_HEADER),
    )


def _parse_errors(raw: Any) -> List[ErrorEntry]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise DecodeError(f"Could not parse response: errors must be a list, got {type(raw).__name__}")
    entries: List[ErrorEntry] = []
    for item in raw:
        if not isinstance(item, dict):
            raise DecodeError(f"Could not parse response: error entry must be an object, got {item!r}")
        code = item.get("code", DEFAULT_CODE)
        if not isinstance(code, int) or isinstance(code, bool):
            raise DecodeError(f"Could not parse response: error code must be an integer, got {code!r}")
        entries.append(ErrorEntry(message=str(item.get("message", "")), code=code))
    return entries


def parse_envelope(body: bytes | str) -> Envelope:
    try:
        raw = json.loads(body)
    except (ValueError, RecursionError) as exc:
        raise DecodeError(f"Could not parse response: {exc}") from exc
    if not isinstance(raw, dict):
        return Envelope(raw=raw)
    return Envelope(
        data=raw.get("data"),
        errors=_parse_errors(raw.get("errors")),
        limit=raw.get("limit"),
        remaining=raw.get("remaining"),
        raw=raw,
    )


def _type_name(tp: Any) -> str:
    return getattr(tp, "__name__", None) or repr(tp)


def _field_hints(tp: type) -> Dict[str, Any]:
    try:
        return get_type_hints(tp)
    except NameError:
        # unresolvable forward references (local or TYPE_CHECKING-only classes)
        return {f.name: Any if isinstance(f.type, str) else f.type for f in dataclasses.fields(tp)}


def _convert_dataclass(value: Any, tp: type) -> Any:
    if not isinstance(value, dict):
        raise TypeError(f"expected an object for {tp.__name__}, got {type(value).__name__}")
    hints = _field_hints(tp)
    folded = {str(k).lower(): v for k, v in value.items()}
    kwargs: Dict[str, Any] = {}
    for f in dataclasses.fields(tp):
        if not f.init:
            continue
        key = f.metadata.get("json", f.name)
        if key in value:
            item = value[key]
        elif key.lower() in folded:
            item = folded[key.lower()]
        else:
            continue
        kwargs[f.name] = _convert(item, hints.get(f.name, Any))
    return tp(**kwargs)


def _convert(value: Any, tp: Any) -> Any:
    if tp is Any or tp is None or value is None:
        return value
    origin = get_origin(tp)
    if origin is Union or origin is types.UnionType:
        options = [arg for arg in get_args(tp) if arg is not type(None)]
        if len(options) == 1:
            return _convert(value, options[0])
        return value
    if origin in (list, List):
        if not isinstance(value, list):
            raise TypeError(f"expected a list, got {type(value).__name__}")
        args = get_args(tp)
        return [_convert(item, args[0]) for item in value] if args else list(value)
    if origin in (dict, Dict):
        if not isinstance(value, dict):
            raise TypeError(f"expected an object, got {type(value).__name__}")
        args = get_args(tp)
        return {k: _convert(v, args[1]) for k, v in value.items()} if args else dict(value)
    if dataclasses.is_dataclass(tp) and isinstance(tp, type):
        return _convert_dataclass(value, tp)
    if tp is float and isinstance(value, int) and not isinstance(value, bool):
        return float(value)
    if tp in (str, int, float, bool):
        if isinstance(value, bool) and tp is not bool:
            raise TypeError(f"expected {tp.__name__}, got bool")
        if not isinstance(value, tp):
            raise TypeError(f"expected {tp.__name__}, got {type(value).__name__}")
        return value
    if tp in (list, dict):
        if not isinstance(value, tp):
            raise TypeError(f"expected {tp.__name__}, got {type(value).__name__}")
        return value
    return tp(value)


def convert(value: Any, into: Any = None) -> Any:
    """Convert a decoded JSON value into `into`; `None` returns it untouched."""
    if into is None:
        return value
    try:
        return _convert(value, into)
    except (TypeError, ValueError, KeyError, NameError, RecursionError) as exc:
        raise DecodeError(f"Could not decode response into {_type_name(into)}: {exc}") from exc


def decode(status_code: int, headers: Mapping[str, Any], body: bytes | str, into: Any = None) -> APIResult:
    rate_limit = parse_rate_limit(headers)
    env = parse_envelope(body)
    if 200 <= status_code < 300:
        value = env.data if env.has_data else env.raw
        return APIResult(data=convert(value, into), rate_limit=rate_limit, status_code=status_code)
    if not env.errors:
        raise APIError(UNKNOWN_REMOTE_ERROR, code=status_code, status_code=status_code)
    first = env.errors[0]
    raise APIError(first.message, code=first.code, status_code=status_code)
