"""Thin blocking wrapper over the Redash REST API for one configured host."""

from __future__ import annotations
import logging
import re
from typing import Any, Dict, Tuple, Union

import requests
from pydantic import ValidationError

from redashbot.config import HostConfig
from redashbot.errors import FetchError
from redashbot.models import Dashboard, InviteResult, Query, QueryResult

logger = logging.getLogger(__name__)
API_KEY_RE = re.compile(r"(api_key=)[^&\s]+")
DEFAULT_TIMEOUT: Tuple[float, float] = (10.0, 60.0)


def redact(url: str) -> str:
    """Hide api_key values before a URL goes to the log."""
    return API_KEY_RE.sub(r"\1***", url)


class RedashClient:
    """Redash API calls for a single host, authenticated with that host's API key."""

    def __init__(
        self,
        host: HostConfig,
        *,
        timeout: Tuple[float, float] = DEFAULT_TIMEOUT,
    ) -> None:
        self.host = host
        self.timeout = timeout

    # -- URL helpers ---------------------------------------------------------

    def embed_url(self, query_id: Union[int, str], visualization_id: Union[int, str]) -> str:
        return (
            f"{self.host.alias_url}/embed/query/{query_id}/visualization/{visualization_id}"
            f"?api_key={self.host.api_key}"
        )

    def query_url(self, query_id: Union[int, str], visualization_id: Union[int, str]) -> str:
        return f"{self.host.base_url}/queries/{query_id}/#{visualization_id}"

    # -- transport -----------------------------------------------------------

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self.host.base_url}{path}"
        try:
            resp = requests.request(method, url, timeout=self.timeout, **kwargs)
        except requests.exceptions.Timeout as exc:
            raise FetchError(f"{method} {path} timed out after {self.timeout[1]} seconds") from exc
        except requests.exceptions.RequestException as exc:
            raise FetchError(f"{method} {path} failed: {exc}") from exc

        logger.info("[Redash] %s %s -> %s", method, redact(url), resp.status_code)
        if not resp.ok:
            detail = _error_detail(resp)
            raise FetchError(f"{method} {path} returned HTTP {resp.status_code}: {detail}", status=resp.status_code)
        try:
            return resp.json()
        except ValueError as exc:
            raise FetchError(f"{method} {path} returned malformed JSON") from exc

    def _get(self, path: str) -> Any:
        return self._request("GET", path, params={"api_key": self.host.api_key})

    # -- API -----------------------------------------------------------------

    def get_query(self, query_id: Union[int, str]) -> Query:
        data = self._get(f"/api/queries/{query_id}")
        return _parse(Query, data, f"query {query_id}")

    def get_dashboard(self, dashboard_id: Union[int, str]) -> Dashboard:
        data = self._get(f"/api/dashboards/{dashboard_id}")
        return _parse(Dashboard, data, f"dashboard {dashboard_id}")

    def get_query_results(self, query_id: Union[int, str]) -> QueryResult:
        """Fetch the full cached result set; callers apply any row limit."""
        data = self._get(f"/api/queries/{query_id}/results.json")
        try:
            result_data = data["query_result"]["data"]
        except (KeyError, TypeError) as exc:
            raise FetchError(f"Results for query {query_id} have no query_result.data") from exc
        return _parse(QueryResult, result_data, f"results of query {query_id}")

    def create_user(self, name: str, email: str) -> InviteResult:
        data = self._request(
            "POST",
            "/api/users",
            headers={
                "Authorization": f"Key {self.host.api_key}",
                "Accept": "application/json",
            },
            json={"name": name, "email": email},
        )
        logger.debug("[Redash] created user %s: %s", email, data)
        return _parse(InviteResult, data or {}, f"user {email}")


def _error_detail(resp: requests.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return (resp.text or resp.reason or "").strip()[:300]
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return str(body)[:300]


def _parse(model: Any, data: Dict[str, Any], what: str) -> Any:
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise FetchError(f"Unexpected payload for {what}: {exc.error_count()} validation error(s)") from exc


__all__ = ["RedashClient", "redact"]
