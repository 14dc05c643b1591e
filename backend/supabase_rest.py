"""
supabase_rest.py — HTTP-based database client using Supabase's PostgREST API.
Plain httpx calls against /rest/v1; no database driver needed.
"""
import httpx
from urllib.parse import quote

from config import SUPABASE_URL, SUPABASE_SERVICE_ROLE_KEY

TIMEOUT = 10


def _headers(prefer: str = "return=representation"):
    return {
        "apikey": SUPABASE_SERVICE_ROLE_KEY,
        "Authorization": f"Bearer {SUPABASE_SERVICE_ROLE_KEY}",
        "Content-Type": "application/json",
        "Prefer": prefer,
    }


def _eq_filters(filters: dict | None) -> str:
    """`?col=eq.val` pairs; a None value becomes `is.null`."""
    parts = []
    for key, value in (filters or {}).items():
        if value is None:
            parts.append(f"{key}=is.null")
        else:
            parts.append(f"{key}=eq.{quote(str(value))}")
    return "&".join(parts)


def sb_select(table: str, filters: dict = None, columns: str = "*", order: str = None,
              limit: int = None) -> list:
    """Select rows with optional equality filters, `order` like "date.desc", and a row limit."""
    url = f"{SUPABASE_URL}/rest/v1/{table}?select={columns}"
    if filters:
        url += "&" + _eq_filters(filters)
    if order:
        url += f"&order={order}"
    if limit:
        url += f"&limit={limit}"

    with httpx.Client(timeout=TIMEOUT) as client:
        resp = client.get(url, headers=_headers())
        resp.raise_for_status()
        return resp.json()


def sb_insert(table: str, data: dict) -> dict:
    """Insert a row and return the created record."""
    url = f"{SUPABASE_URL}/rest/v1/{table}"
    with httpx.Client(timeout=TIMEOUT) as client:
        resp = client.post(url, json=data, headers=_headers())
        resp.raise_for_status()
        result = resp.json()
        return result[0] if isinstance(result, list) and result else {}


def sb_upsert(table: str, data: dict) -> dict:
    """Insert or merge on primary key; safe to retry with the same id."""
    url = f"{SUPABASE_URL}/rest/v1/{table}"
    prefer = "resolution=merge-duplicates,return=representation"
    with httpx.Client(timeout=TIMEOUT) as client:
        resp = client.post(url, json=data, headers=_headers(prefer))
        resp.raise_for_status()
        result = resp.json()
        return result[0] if isinstance(result, list) and result else {}


def sb_update(table: str, filter_col: str, filter_val, data: dict) -> dict:
    """Update rows where filter_col = filter_val."""
    url = f"{SUPABASE_URL}/rest/v1/{table}?{_eq_filters({filter_col: filter_val})}"
    with httpx.Client(timeout=TIMEOUT) as client:
        resp = client.patch(url, json=data, headers=_headers())
        resp.raise_for_status()
        result = resp.json()
        return result[0] if isinstance(result, list) and result else {}


def sb_delete(table: str, filter_col: str, filter_val) -> None:
    """Delete rows where filter_col = filter_val. Deleting nothing is not an error."""
    url = f"{SUPABASE_URL}/rest/v1/{table}?{_eq_filters({filter_col: filter_val})}"
    with httpx.Client(timeout=TIMEOUT) as client:
        resp = client.delete(url, headers=_headers())
        resp.raise_for_status()


def sb_count(table: str, filters: dict = None) -> int:
    """Count rows in a table with optional filters."""
    url = f"{SUPABASE_URL}/rest/v1/{table}?select=id"
    if filters:
        url += "&" + _eq_filters(filters)

    headers = {**_headers(), "Prefer": "count=exact"}
    with httpx.Client(timeout=TIMEOUT) as client:
        # HEAD request returns just the count via headers
        resp = client.head(url, headers=headers)
        resp.raise_for_status()
        content_range = resp.headers.get("content-range", "0-0/0")
        try:
            return int(content_range.split("/")[-1])
        except ValueError:
            return 0
