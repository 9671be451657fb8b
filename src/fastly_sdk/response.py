"""Response classification and error body parsing."""

from __future__ import annotations

from typing import List, Optional

import httpx

from .encoding import JSONAPI_MIME_TYPE, PROBLEM_JSON_MIME_TYPE, decode_json
from .errors import DecodeError, HTTPError
from .models import Entity, ErrorObject

SUCCESS_CODES = frozenset({200, 201, 202, 204, 205, 206})


class _JSONAPIErrors(Entity):
    errors: List[ErrorObject] = []


class _ProblemDetail(Entity):
    detail: Optional[str] = None
    status: Optional[int] = None
    title: Optional[str] = None


class _LegacyError(Entity):
    detail: Optional[str] = None
    msg: Optional[str] = None


def _media_type(response: httpx.Response) -> str:
    return response.headers.get("Content-Type", "").split(";")[0].strip().lower()


def new_http_error(response: httpx.Response) -> HTTPError:
    """Build the HTTPError for a failed response.

    The body is parsed according to its media type. When it cannot be decoded
    the raw body is kept as the detail of a single "Undefined error" entry.
    """
    body = response.content
    errors: List[ErrorObject] = []
    media_type = _media_type(response)
    try:
        if media_type == JSONAPI_MIME_TYPE:
            errors.extend(decode_json(body, _JSONAPIErrors).errors)
        elif media_type == PROBLEM_JSON_MIME_TYPE:
            problem = decode_json(body, _ProblemDetail)
            errors.append(
                ErrorObject(
                    title=problem.title,
                    detail=problem.detail,
                    status=str(problem.status) if problem.status is not None else None,
                )
            )
        else:
            legacy = decode_json(body, Optional[_LegacyError])
            if legacy is not None:
                errors.append(ErrorObject(title=legacy.msg, detail=legacy.detail))
    except DecodeError:
        errors = [ErrorObject(title="Undefined error", detail=response.text)]
    return HTTPError(response.status_code, errors, body)


def check_response(response: httpx.Response) -> httpx.Response:
    """Return ``response`` unchanged on success, raise HTTPError otherwise."""
    if response.status_code in SUCCESS_CODES:
        return response
    raise new_http_error(response)


__all__ = ["SUCCESS_CODES", "check_response", "new_http_error"]
