"""Turn Shipping API error bodies into one-line Locust failure messages.

The API answers errors in three shapes:

    422 from request validation   {"detail": [{"loc": [...], "msg": "..."}]}
    dispatch errors               {"error": "not_found", "detail": {"task_id": ["..."]}}
    HTTPException                 {"detail": "..."}
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from requests import Response

_MAX_LEN = 300


def _field_errors(detail: dict) -> str:
    parts = []
    for name, messages in detail.items():
        text = "; ".join(map(str, messages)) if isinstance(messages, list) else str(messages)
        parts.append(f"{name}: {text}")
    return " | ".join(parts)


def _pydantic_errors(errors: list) -> str:
    parts = []
    for err in errors:
        if not isinstance(err, dict):
            parts.append(str(err))
            continue
        where = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{where}: {err.get('msg')}" if where else str(err.get("msg")))
    return " | ".join(parts)


def extract_error_detail(response: Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return (response.text or "(empty body)")[:_MAX_LEN]

    if not isinstance(body, dict):
        return str(body)[:_MAX_LEN]

    detail = body.get("detail", "")
    if isinstance(detail, list):
        message = _pydantic_errors(detail)
    elif isinstance(detail, dict):
        message = _field_errors(detail)
    else:
        message = str(detail)

    if "error" in body:
        message = f"{body['error']}: {message}"
    return message[:_MAX_LEN] or str(body)[:_MAX_LEN]
