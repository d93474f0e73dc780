"""
Shared async HTTP helpers for quant-optik.

Every helper returns ``(value, error)`` with exactly one of the two set, so
callers can turn transport problems into plain text without try/except.
Requests are sent once; there is no retry or backoff.
"""

import httpx


def _format_http_error(response) -> str:
    status = getattr(response, "status_code", "unknown")
    body = (getattr(response, "text", "") or "").strip().replace("\n", " ")
    body = body[:300]
    return f"HTTP {status}" + (f": {body}" if body else "")


def _describe(exc: Exception) -> str:
    return str(exc) or type(exc).__name__


async def request(
    method: str,
    url: str,
    *,
    params: dict | None = None,
    json: dict | None = None,
    headers: dict | None = None,
    timeout: float | None = None,
    raise_for_status: bool = True,
    client: httpx.AsyncClient | None = None,
) -> tuple[httpx.Response | None, str | None]:
    """Perform a single HTTP request.

    ``timeout=None`` waits indefinitely. Pass ``client`` to reuse a
    connection pool (or a mock transport in tests).

    Returns `(response, error)`. Exactly one is non-None.
    """
    method = method.upper()
    kwargs = {k: v for k, v in {"params": params, "json": json, "headers": headers}.items() if v is not None}
    if method == "GET":
        kwargs.pop("json", None)

    try:
        if client is not None:
            resp = await client.request(method, url, **kwargs)
        else:
            async with httpx.AsyncClient(timeout=timeout) as own_client:
                resp = await own_client.request(method, url, **kwargs)
    except httpx.RequestError as exc:
        return None, _describe(exc)
    except Exception as exc:
        return None, _describe(exc)

    if raise_for_status:
        try:
            resp.raise_for_status()
        except httpx.HTTPStatusError:
            return None, _format_http_error(resp)

    return resp, None


async def request_json(
    method: str,
    url: str,
    *,
    params: dict | None = None,
    json: dict | None = None,
    headers: dict | None = None,
    timeout: float | None = None,
    client: httpx.AsyncClient | None = None,
) -> tuple[dict | list | None, str | None]:
    """Perform HTTP request and parse JSON body."""
    resp, error = await request(
        method,
        url,
        params=params,
        json=json,
        headers=headers,
        timeout=timeout,
        client=client,
    )
    if error:
        return None, error

    # Some gateways answer 200 with an HTML error page
    content_type = (resp.headers.get("content-type", "") or "").lower()
    if content_type and "json" not in content_type:
        return None, f"Expected JSON but got {content_type} (HTTP {resp.status_code})"

    try:
        return resp.json(), None
    except ValueError:
        return None, f"Invalid JSON response (HTTP {resp.status_code})"


async def request_text(
    url: str,
    *,
    params: dict | None = None,
    headers: dict | None = None,
    timeout: float | None = None,
    client: httpx.AsyncClient | None = None,
) -> tuple[str | None, str | None]:
    """GET ``url`` and return the decoded body."""
    resp, error = await request(
        "GET",
        url,
        params=params,
        headers=headers,
        timeout=timeout,
        client=client,
    )
    if error:
        return None, error
    return resp.text, None
