# shipping/carrier/http.py

"""
Minimal JSON-over-HTTP transport for carrier adapters (urllib).

Contract: transport(method, url, *, body, headers, timeout) -> (status, json_dict)
- Any HTTP response (2xx..5xx) is RETURNED with its status code; the adapter
  decides how to classify it.
- Network-level failures (DNS, refused, timeout) raise CarrierNetworkError.
"""

from __future__ import annotations

import json
import socket
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen


class CarrierNetworkError(Exception):
    pass


def _parse(raw: str) -> dict[str, Any]:
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except ValueError:
        return {"raw": raw[:800]}
    if isinstance(parsed, dict):
        return parsed
    return {"data": parsed}


def urllib_transport(
    method: str,
    url: str,
    *,
    body: dict | None = None,
    headers: dict | None = None,
    timeout: float = 15,
) -> tuple[int, dict[str, Any]]:
    data = None
    if body is not None:
        data = json.dumps(body, ensure_ascii=False, default=str).encode("utf-8")

    req = Request(
        url,
        data=data,
        headers={
            "Content-Type": "application/json",
            "Accept": "application/json",
            **(headers or {}),
        },
        method=method,
    )

    try:
        with urlopen(req, timeout=timeout) as resp:
            raw = resp.read().decode("utf-8", errors="replace")
            return int(resp.status), _parse(raw)
    except HTTPError as e:
        raw = e.read().decode("utf-8", errors="replace") if e.fp else ""
        return int(e.code), _parse(raw)
    except (URLError, socket.timeout, TimeoutError, ConnectionError) as e:
        raise CarrierNetworkError(f"Carrier unreachable: {e}") from e
