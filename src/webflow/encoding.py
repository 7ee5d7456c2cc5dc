"""Request body encoders.

Two strategies share one signature, `(request, fs) -> (body, content_type)`:

- `encode_json`: the payload serialized as `application/json`
- `encode_multipart`: payload fields plus one attached file as
  `multipart/form-data`, used whenever the request carries a `FileUpload`

`encode` picks the strategy for a request. Every failure is raised as
`EncodeError` with the sentinel code, before any network traffic happens.
"""

from __future__ import annotations

import json
from typing import Any, Callable, List, Tuple

from urllib3.fields import RequestField
from urllib3.filepost import encode_multipart_formdata

from .errors import EncodeError
from .files import FileOpener
from .request import ClientRequest

JSON_CONTENT_TYPE = "application/json"

Encoder = Callable[[ClientRequest, FileOpener], Tuple[bytes, str]]


def escape_quotes(s: str) -> str:
    """Escape backslashes and double quotes for a quoted header parameter."""
    return s.replace("\\", "\\\\").replace('"', '\\"')


def unescape_quotes(s: str) -> str:
    out: List[str] = []
    chars = iter(s)
    for ch in chars:
        if ch == "\\":
            ch = next(chars, "\\")
        out.append(ch)
    return "".join(out)


def encode_json(request: ClientRequest, fs: FileOpener | None = None) -> Tuple[bytes, str]:
    try:
        body = json.dumps(request.payload, allow_nan=False).encode("utf-8")
    except (TypeError, ValueError, RecursionError) as exc:
        raise EncodeError(f"Could not marshal JSON: {exc}") from exc
    return body, JSON_CONTENT_TYPE


def _form_value(value: Any) -> str | bytes:
    if isinstance(value, (str, bytes)):
        return value
    return json.dumps(value, allow_nan=False)


def _form_field(name: str, value: Any) -> RequestField:
    try:
        data = _form_value(value)
    except (TypeError, ValueError, RecursionError) as exc:
        raise EncodeError(f"Could not write field {name!r}: {exc}") from exc
    disposition = f'form-data; name="{escape_quotes(name)}"'
    return RequestField(name=name, data=data, headers={"Content-Disposition": disposition})


def encode_multipart(request: ClientRequest, fs: FileOpener) -> Tuple[bytes, str]:
    upload = request.file
    if upload is None:
        raise EncodeError("multipart encoding requires an attached file")
    payload = request.payload or {}
    if not isinstance(payload, dict):
        raise EncodeError(f"multipart payload must be a mapping, got {type(payload).__name__}")

    fields = [_form_field(str(name), value) for name, value in payload.items()]

    try:
        handle = fs.open(upload.path)
    except OSError as exc:
        raise EncodeError(f"Could not open file {upload.path!r}: {exc}") from exc
    try:
        content = handle.read()
    except OSError as exc:
        raise EncodeError(f"Could not read file {upload.path!r}: {exc}") from exc
    finally:
        handle.close()

    disposition = f'form-data; name="{escape_quotes(upload.field)}"; filename="{escape_quotes(upload.name)}"'
    fields.append(
        RequestField(
            name=upload.field,
            data=content,
            filename=upload.name,
            headers={"Content-Disposition": disposition, "Content-Type": upload.content_type},
        )
    )
    try:
        body, content_type = encode_multipart_formdata(fields)
    except (TypeError, ValueError) as exc:
        raise EncodeError(f"Could not write multipart body: {exc}") from exc
    return body, content_type


def select_encoder(request: ClientRequest) -> Encoder:
    if request.file is not None:
        return encode_multipart
    return encode_json


def encode(request: ClientRequest, fs: FileOpener) -> Tuple[bytes, str]:
    return select_encoder(request)(request, fs)
