import os
import httpx
from typing import Any, Dict, List, Optional, Union
from coffee_discovery.utils.logger import get_logger

logger = get_logger("utils.supabase_client")

POSTGREST_OPERATORS = ("eq", "neq", "gt", "lt", "gte", "lte", "like", "ilike", "in", "is", "not")


class SupabaseError(RuntimeError):
    """Raised when a Supabase request fails or Supabase is not configured."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def error_detail(response: httpx.Response) -> str:
    """Pull the human-readable message out of a PostgREST/GoTrue error body."""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        for key in ("message", "msg", "error_description", "error"):
            if body.get(key):
                return str(body[key])
    return str(body)


class SupabaseClient:
    """
    Lightweight client for interacting with the Supabase REST (PostgREST) API.

    Every method raises SupabaseError on failure; deciding whether a failure
    is fatal belongs to the caller.
    """
    def __init__(
        self,
        url: Optional[str] = None,
        key: Optional[str] = None,
        access_token: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.url = url if url is not None else os.environ.get("SUPABASE_URL")
        self.key = key if key is not None else (
            os.environ.get("SUPABASE_KEY") or os.environ.get("SUPABASE_ANON_KEY")
        )
        self.access_token = access_token
        self.timeout = timeout
        self._transport = transport

        if not self.url or not self.key:
            logger.warning("SUPABASE_URL or SUPABASE_KEY not set in environment.")

        self.headers = {
            "apikey": self.key or "",
            "Authorization": f"Bearer {access_token or self.key or ''}",
            "Content-Type": "application/json",
            "Prefer": "return=representation"
        }
        self.client = httpx.Client(
            base_url=self.url or "",
            headers=self.headers,
            timeout=timeout,
            transport=transport,
        )

    @property
    def configured(self) -> bool:
        return bool(self.url and self.key)

    def with_access_token(self, access_token: str) -> "SupabaseClient":
        """Return a client that acts as the signed-in user (row level security applies)."""
        return SupabaseClient(
            url=self.url,
            key=self.key,
            access_token=access_token,
            timeout=self.timeout,
            transport=self._transport,
        )

    def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        select: str = "*",
        limit: Optional[int] = None,
        order: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        Query a Supabase table.

        Filter values already carrying a PostgREST operator (e.g. "ilike.%x%")
        are passed through; anything else becomes an equality test.
        """
        params = {"select": select}
        params.update(self._filter_params(filters))

        if limit:
            params["limit"] = str(limit)

        if order:
            params["order"] = order

        try:
            return self._request("GET", table, params=params)
        except SupabaseError as e:
            logger.error(f"Supabase select failed on {table}: {e}")
            raise

    def insert(self, table: str, rows: Union[Dict[str, Any], List[Dict[str, Any]]]) -> List[Dict[str, Any]]:
        """Insert one or more rows and return them as stored."""
        try:
            return self._request("POST", table, json=rows)
        except SupabaseError as e:
            logger.error(f"Supabase insert failed on {table}: {e}")
            raise

    def update(self, table: str, values: Dict[str, Any], filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Update the rows matching filters and return them."""
        if not filters:
            raise SupabaseError(f"Refusing unfiltered update on {table}")
        try:
            return self._request("PATCH", table, params=self._filter_params(filters), json=values)
        except SupabaseError as e:
            logger.error(f"Supabase update failed on {table}: {e}")
            raise

    def delete(self, table: str, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Delete the rows matching filters and return them."""
        if not filters:
            raise SupabaseError(f"Refusing unfiltered delete on {table}")
        try:
            return self._request("DELETE", table, params=self._filter_params(filters))
        except SupabaseError as e:
            logger.error(f"Supabase delete failed on {table}: {e}")
            raise

    def close(self) -> None:
        self.client.close()

    @staticmethod
    def _filter_params(filters: Optional[Dict[str, Any]]) -> Dict[str, str]:
        params = {}
        for key, val in (filters or {}).items():
            if isinstance(val, str) and "." in val and val.split(".")[0] in POSTGREST_OPERATORS:
                params[key] = val
            else:
                params[key] = f"eq.{val}"
        return params

    def _request(self, method: str, table: str, **kwargs) -> List[Dict[str, Any]]:
        if not self.configured:
            raise SupabaseError("Supabase is not configured (set SUPABASE_URL and SUPABASE_KEY)")
        try:
            response = self.client.request(method, f"/rest/v1/{table}", **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise SupabaseError(error_detail(e.response), e.response.status_code) from e
        except httpx.HTTPError as e:
            raise SupabaseError(f"{type(e).__name__}: {e}") from e

        if not response.content:
            return []
        data = response.json()
        return data if isinstance(data, list) else [data]
