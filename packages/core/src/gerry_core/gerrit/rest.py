"""Gerrit REST transport.

Every call goes to ``<base>/a/<resource>`` with HTTP Basic credentials.
Gerrit prefixes JSON bodies with the anti-XSSI marker ``)]}'`` which is
stripped before decoding.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import requests

from gerry_core.config import ConnectionProfile
from gerry_core.errors import (
    AuthenticationError,
    EndpointNotFoundError,
    PermissionDeniedError,
    SchemaError,
    TransportError,
)
from gerry_core.models import Change, Comment
from gerry_core.normalize import change_from_rest, comments_from_rest

logger = logging.getLogger(__name__)

XSSI_PREFIX = ")]}'"

LIST_OPTIONS = ("LABELS", "CURRENT_REVISION", "DETAILED_ACCOUNTS")
CHANGE_OPTIONS = LIST_OPTIONS + ("CURRENT_COMMIT",)

_STATUS_ERRORS = {
    401: (AuthenticationError, "authentication failed (401) - check your username and HTTP password"),
    403: (PermissionDeniedError, "access forbidden (403) - check your permissions on this server"),
    404: (EndpointNotFoundError, "endpoint not found (404) - check the server URL and HTTP port"),
}


def strip_xssi_prefix(body: str) -> str:
    if body.startswith(XSSI_PREFIX):
        return body[len(XSSI_PREFIX) :]
    return body


class RestClient:
    def __init__(
        self,
        profile: ConnectionProfile,
        timeout: float | None = None,
        session: requests.Session | None = None,
    ) -> None:
        self._profile = profile
        self._base_url = profile.rest_base_url()
        self._timeout = timeout if timeout is not None else profile.timeout
        self._session = session or requests.Session()
        if profile.http_password:
            self._session.auth = (profile.user, profile.http_password)

    @property
    def base_url(self) -> str:
        return self._base_url

    def get(self, resource: str, params: list[tuple[str, Any]] | None = None) -> Any:
        """GET ``/a/<resource>`` and return the decoded JSON body."""
        url = f"{self._base_url}/a/{resource.lstrip('/')}"
        logger.debug("GET %s params=%s", url, params)
        try:
            response = self._session.get(url, params=params, timeout=self._timeout)
        except requests.RequestException as e:
            raise TransportError(f"request to {url} failed: {e}", backend="rest") from e

        self._raise_for_status(response)

        body = strip_xssi_prefix(response.text)
        try:
            return json.loads(body)
        except json.JSONDecodeError as e:
            raise SchemaError(f"could not decode response from {url}: {e}", backend="rest") from e

    def _raise_for_status(self, response: requests.Response) -> None:
        status = response.status_code
        if 200 <= status < 300:
            return
        if status in _STATUS_ERRORS:
            error_cls, message = _STATUS_ERRORS[status]
            raise error_cls(message, backend="rest")
        raise TransportError(f"request failed with status {status}: {response.text[:200]}", backend="rest")

    # ------------------------------------------------------------------ #
    # Raw resources                                                        #
    # ------------------------------------------------------------------ #

    def query_changes(
        self,
        query: str,
        limit: int,
        start: int = 0,
        options: tuple[str, ...] = LIST_OPTIONS,
    ) -> list[dict]:
        """Return one page of raw ChangeInfo records for ``query``."""
        params: list[tuple[str, Any]] = [("q", query), ("n", limit)]
        if start:
            params.append(("start", start))
        params.extend(("o", option) for option in options)
        data = self.get("changes/", params=params)
        if not isinstance(data, list):
            raise SchemaError("expected a list of changes from /changes/", backend="rest")
        return [record for record in data if isinstance(record, dict)]

    def server_version(self) -> str:
        data = self.get("config/server/version")
        if not isinstance(data, str) or not data:
            raise SchemaError("empty response from Gerrit server", backend="rest")
        return data

    # ------------------------------------------------------------------ #
    # Normalized operations                                                #
    # ------------------------------------------------------------------ #

    def list_changes(self, query: str, limit: int) -> list[Change]:
        return [change_from_rest(record) for record in self.query_changes(query, limit)]

    def get_change(self, change_id: str) -> Change:
        params = [("o", option) for option in CHANGE_OPTIONS]
        data = self.get(f"changes/{change_id}", params=params)
        if not isinstance(data, dict):
            raise SchemaError(f"expected a change object for {change_id}", backend="rest")
        return change_from_rest(data)

    def get_comments(self, change_id: str) -> list[Comment]:
        data = self.get(f"changes/{change_id}/comments")
        if not isinstance(data, dict):
            raise SchemaError(f"expected a comment map for {change_id}", backend="rest")
        return comments_from_rest(data)
