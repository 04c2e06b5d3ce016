"""Azure DevOps REST client for work items and pull request links.

Implements the TrackerAdapter protocol over the Azure DevOps REST API
(api-version 7.1) using an aiohttp ClientSession. Authentication is HTTP
Basic with an empty user name and a personal access token (PAT).
"""

from __future__ import annotations

import base64
import json
import logging
from typing import Any
from urllib.parse import quote

import aiohttp

from prsync_core.config import TrackerConfig
from prsync_core.types import (
    TransportError,
    WorkItem,
    WorkItemNotFoundError,
    WorkItemUpdateError,
)

logger = logging.getLogger(__name__)

JSON_PATCH_CONTENT_TYPE = "application/json-patch+json"

# Longest error body kept in logs and exception messages.
MAX_ERROR_BODY = 500


def _truncate(text: str) -> str:
    if len(text) <= MAX_ERROR_BODY:
        return text
    return text[:MAX_ERROR_BODY] + "..."


def basic_auth_header(token: str) -> str:
    """Authorization header value for a PAT: Basic auth with an empty user."""
    credentials = base64.b64encode(f":{token}".encode()).decode("ascii")
    return f"Basic {credentials}"


def _object_body(data: Any, url: str) -> dict[str, Any]:
    """Return ``data`` if it is a JSON object, else raise TransportError."""
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise TransportError(f"Azure DevOps returned an unexpected body from {url}")
    return data


def _ref_id(ref: Any) -> int | None:
    """Work item id from a resource reference, or None if it has no usable id."""
    if not isinstance(ref, dict):
        return None
    try:
        ref_id = int(ref.get("id"))
    except (TypeError, ValueError):
        return None
    return ref_id if ref_id > 0 else None


class AzureDevOpsClient:
    """Async Azure DevOps tracker adapter.

    Attributes:
        config: Organization, project, token and API version to use.
    """

    def __init__(
        self,
        config: TrackerConfig,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        """Create a client.

        Args:
            config: Tracker settings.
            session: Optional session to reuse. When omitted the client opens
                its own on first use and closes it in ``close()``.
        """
        self.config = config
        self._session = session
        self._owns_session = session is None
        self._authorization = basic_auth_header(config.token)

    @property
    def org_url(self) -> str:
        return f"{self.config.base_url.rstrip('/')}/{quote(self.config.organization)}"

    @property
    def project_url(self) -> str:
        return f"{self.org_url}/{quote(self.config.project)}"

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.config.timeout_seconds)
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the underlying session if this client opened it."""
        if self._owns_session and self._session is not None:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> AzureDevOpsClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def _request(
        self,
        method: str,
        url: str,
        *,
        body: Any = None,
        content_type: str | None = None,
        not_found: type[TransportError] = TransportError,
    ) -> Any:
        """Send a request and return the decoded JSON body.

        Raises:
            TransportError: On network failure or a non-2xx response. A 404 is
                raised as ``not_found`` so callers can tell it apart.
        """
        headers = {
            "Accept": "application/json",
            "Authorization": self._authorization,
        }
        if content_type:
            headers["Content-Type"] = content_type
        params = {"api-version": self.config.api_version}

        try:
            async with self._get_session().request(
                method,
                url,
                params=params,
                data=json.dumps(body) if body is not None else None,
                headers=headers,
            ) as resp:
                if resp.status >= 400:
                    detail = _truncate(await resp.text())
                    logger.warning(
                        "Azure DevOps %s %s failed: %s %s",
                        method,
                        url,
                        resp.status,
                        detail,
                    )
                    error_cls = not_found if resp.status == 404 else TransportError
                    raise error_cls(
                        f"Azure DevOps HTTP error {resp.status}: {detail}",
                        status=resp.status,
                    )
                try:
                    return await resp.json(content_type=None)
                except ValueError as e:
                    raise TransportError(
                        f"Azure DevOps returned invalid JSON from {url}",
                        status=resp.status,
                    ) from e
        except aiohttp.ClientError as e:
            raise TransportError(f"Azure DevOps network error: {e}") from e
        except TimeoutError as e:
            raise TransportError(f"Azure DevOps request timed out: {url}") from e

    async def get_work_item(self, work_item_id: int) -> WorkItem:
        """Fetch a work item's type and state.

        Raises:
            WorkItemNotFoundError: If the tracker answers 404.
            TransportError: If the call fails.
        """
        url = f"{self.project_url}/_apis/wit/workitems/{int(work_item_id)}"
        data = _object_body(
            await self._request("GET", url, not_found=WorkItemNotFoundError), url
        )
        fields = data.get("fields")
        if not isinstance(fields, dict):
            fields = {}
        return WorkItem(
            id=int(work_item_id),
            type=fields.get("System.WorkItemType") or "",
            state=fields.get("System.State"),
        )

    async def get_allowed_states(self, work_item_type: str) -> set[str]:
        """Fetch state names defined for a work item type.

        Returns:
            Set of state names, empty if the type is unknown.
        """
        if not work_item_type:
            return set()
        url = (
            f"{self.project_url}/_apis/wit/workitemtypes/"
            f"{quote(work_item_type, safe='')}/states"
        )
        try:
            data = await self._request("GET", url)
        except TransportError as e:
            if e.status == 404:
                return set()
            raise
        return {
            s["name"]
            for s in _object_body(data, url).get("value") or []
            if isinstance(s, dict) and s.get("name")
        }

    async def set_work_item_state(self, work_item_id: int, state: str) -> None:
        """Patch ``System.State`` on a work item.

        Raises:
            WorkItemUpdateError: If the tracker rejects the update.
        """
        url = f"{self.project_url}/_apis/wit/workitems/{int(work_item_id)}"
        patch = [{"op": "add", "path": "/fields/System.State", "value": state}]
        try:
            await self._request(
                "PATCH", url, body=patch, content_type=JSON_PATCH_CONTENT_TYPE
            )
        except TransportError as e:
            raise WorkItemUpdateError(
                f"Update of work item {work_item_id} failed ({e.status}): {e}",
                status=e.status,
            ) from e

    async def get_linked_work_item_ids(
        self, repository_id: str | None, pull_request_id: int | None
    ) -> list[int]:
        """Fetch work item ids linked to a pull request.

        Tries the project-scoped endpoint first, then the organization-scoped
        one. Returns an empty list without calling out when either id is
        missing.

        Raises:
            TransportError: If both endpoints fail.
        """
        if not repository_id or not pull_request_id:
            return []

        path = (
            f"/_apis/git/repositories/{quote(str(repository_id), safe='')}"
            f"/pullrequests/{int(pull_request_id)}/workitems"
        )
        last_error: TransportError | None = None
        for base in (self.project_url, self.org_url):
            try:
                url = base + path
                data = _object_body(await self._request("GET", url), url)
                refs = data.get("value") or []
                if not isinstance(refs, list):
                    raise TransportError(
                        f"Azure DevOps returned an unexpected body from {url}"
                    )
            except TransportError as e:
                logger.warning("Linked work item lookup attempt failed: %s", e)
                last_error = e
                continue

            ids: list[int] = []
            for ref in refs:
                ref_id = _ref_id(ref)
                if ref_id is None:
                    logger.warning("Ignoring malformed work item reference: %r", ref)
                    continue
                ids.append(ref_id)
            return ids

        raise TransportError(
            f"Could not fetch work items for pull request {pull_request_id}: "
            f"{last_error}",
            status=last_error.status if last_error else None,
        )
