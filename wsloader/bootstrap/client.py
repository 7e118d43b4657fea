"""REST client for workspace resources on the master.

Two calls are needed by the loader:

- ``GET  /api/workspace/{id}``          -- current workspace state
- ``POST /api/workspace/{id}/runtime``  -- request a start

Every request carries a freshly refreshed bearer token when the credential
provider holds one.  HTTP failures are translated to the loader's error
taxonomy; nothing is retried here.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
from loguru import logger
from pydantic import ValidationError

from wsloader.bootstrap.errors import (
    AuthRefreshFailedError,
    ResourceTransportError,
    UnauthorizedError,
    WorkspaceNotFoundError,
)
from wsloader.bootstrap.models.workspace import WorkspaceResource

if TYPE_CHECKING:
    from types import TracebackType

    from wsloader.bootstrap.auth import CredentialProvider

WORKSPACE_PATH = "/api/workspace"


class ResourceClient:
    """Async client for the workspace REST endpoints.

    Owns its ``httpx.AsyncClient`` unless one is injected (tests pass one
    backed by ``httpx.MockTransport``).
    """

    def __init__(
        self,
        base_url: str,
        *,
        credentials: CredentialProvider | None = None,
        token_min_validity: int = 5,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._credentials = credentials
        self._token_min_validity = token_min_validity
        self._own_client = http_client is None
        self._http = http_client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def __aenter__(self) -> ResourceClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._own_client:
            await self._http.aclose()

    # -- Operations ------------------------------------------------------------

    async def fetch(self, workspace_id: str) -> WorkspaceResource:
        """Get a workspace by id."""
        return await self._request("GET", f"{WORKSPACE_PATH}/{workspace_id}", action="get")

    async def start(self, workspace_id: str) -> WorkspaceResource:
        """Ask the master to start a workspace.

        The returned resource reflects the state right after the request was
        accepted, usually STARTING rather than RUNNING.
        """
        logger.info("Starting workspace {}", workspace_id)
        return await self._request("POST", f"{WORKSPACE_PATH}/{workspace_id}/runtime", action="start")

    # -- Internals -------------------------------------------------------------

    async def _auth_headers(self) -> dict[str, str]:
        if self._credentials is None or not self._credentials.get_token():
            return {}
        msg = "Failed to refresh the authorization token"
        try:
            refreshed = await self._credentials.refresh_token(self._token_min_validity)
        except Exception as exc:
            logger.warning("Token refresh raised: {!r}", exc)
            raise AuthRefreshFailedError(msg) from exc
        if not refreshed:
            logger.warning("Failed to refresh token")
            raise AuthRefreshFailedError(msg)
        return {"Authorization": f"Bearer {self._credentials.get_token()}"}

    async def _request(self, method: str, path: str, *, action: str) -> WorkspaceResource:
        headers = await self._auth_headers()
        try:
            response = await self._http.request(method, path, headers=headers)
        except httpx.HTTPError as exc:
            raise ResourceTransportError(_failure(action, str(exc))) from exc

        if response.status_code == httpx.codes.NOT_FOUND:
            raise WorkspaceNotFoundError(_failure(action, _error_text(response)))
        if response.status_code in (httpx.codes.UNAUTHORIZED, httpx.codes.FORBIDDEN):
            raise UnauthorizedError(_failure(action, _error_text(response)))
        if not response.is_success:
            raise ResourceTransportError(_failure(action, _error_text(response)))

        try:
            return WorkspaceResource.model_validate_json(response.content)
        except ValidationError as exc:
            logger.debug("Malformed workspace payload: {}", response.text)
            raise ResourceTransportError(_failure(action, "Malformed workspace payload")) from exc


def _error_text(response: httpx.Response) -> str:
    """Pick the most useful description of a failed response.

    The master's JSON error body wins, then the HTTP reason phrase.
    """
    try:
        body = response.json()
    except ValueError:
        body = None

    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    if body:
        return str(body)
    if response.reason_phrase:
        return response.reason_phrase
    return "Unknown error"


def _failure(action: str, detail: str) -> str:
    prefix = f"Failed to {action} the workspace"
    return f'{prefix}: "{detail}"' if detail else f"{prefix}."
