"""Scaleway Functions API (v1beta1) adapter over httpx."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
import structlog
from pydantic import BaseModel, ValidationError

from funcdeploy import USER_AGENT
from funcdeploy.core.config import Settings
from funcdeploy.core.exceptions import ConfigurationError, RemoteAPIError, ResourceNotFoundError
from funcdeploy.core.models import (
    CreateFunctionRequest,
    CreateNamespaceRequest,
    Function,
    Namespace,
    Runtime,
    UpdateFunctionRequest,
)

logger = structlog.get_logger()

PAGE_SIZE = 100

M = TypeVar("M", bound=BaseModel)


class ScalewayFunctionsAPI:
    """Production ResourceAPI talking to the Scaleway Functions REST API."""

    def __init__(
        self,
        secret_key: str,
        project_id: Optional[str] = None,
        *,
        region: str = "fr-par",
        api_url: str = "https://api.scaleway.com",
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        if not secret_key:
            raise ConfigurationError("A Scaleway secret key is required (SCW_SECRET_KEY)")

        self.project_id = project_id
        self.region = region
        self.base_url = f"{api_url.rstrip('/')}/functions/v1beta1/regions/{region}"
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self._headers = {"X-Auth-Token": secret_key, "User-Agent": USER_AGENT}

    @classmethod
    def from_settings(cls, settings: Settings) -> "ScalewayFunctionsAPI":
        if not settings.secret_key:
            raise ConfigurationError("SCW_SECRET_KEY is not set")
        if not settings.project_id:
            raise ConfigurationError("SCW_DEFAULT_PROJECT_ID is not set")
        return cls(
            settings.secret_key,
            settings.project_id,
            region=settings.region,
            api_url=settings.api_url,
            timeout=settings.request_timeout_seconds,
        )

    async def close(self) -> None:
        await self.client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            resp = await self.client.request(method, url, params=params, json=json, headers=self._headers)
        except httpx.HTTPError as e:
            logger.warning("Functions API request failed", method=method, path=path, error=str(e))
            raise RemoteAPIError(f"{method} {path} failed: {e}") from e

        if resp.status_code == 404:
            raise ResourceNotFoundError(f"{method} {path}: resource not found", code="not_found")
        if resp.status_code >= 400:
            raise RemoteAPIError(
                f"{method} {path} returned {resp.status_code}: {_error_message(resp)}",
                status_code=resp.status_code,
            )
        if not resp.content:
            return {}
        try:
            data = resp.json()
        except ValueError as e:
            raise RemoteAPIError(f"{method} {path} returned a non-JSON body", status_code=resp.status_code) from e
        if not isinstance(data, dict):
            raise RemoteAPIError(f"{method} {path} returned an unexpected body", status_code=resp.status_code)
        return data

    async def _list_all(self, path: str, key: str, params: Dict[str, Any]) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        page = 1
        while True:
            data = await self._request("GET", path, params={**params, "page": page, "page_size": PAGE_SIZE})
            batch = data.get(key) or []
            items.extend(batch)
            total = data.get("total_count", len(items))
            if not batch or len(items) >= total:
                return items
            page += 1

    # Namespaces

    async def get_namespace(self, namespace_id: str) -> Namespace:
        return _parse(Namespace, await self._request("GET", f"/namespaces/{namespace_id}"))

    async def create_namespace(self, request: CreateNamespaceRequest) -> Namespace:
        body = request.model_dump(exclude_none=True)
        if "project_id" not in body and self.project_id:
            body["project_id"] = self.project_id
        return _parse(Namespace, await self._request("POST", "/namespaces", json=body))

    async def list_namespaces(self, name: Optional[str] = None) -> List[Namespace]:
        params: Dict[str, Any] = {}
        if name:
            params["name"] = name
        if self.project_id:
            params["project_id"] = self.project_id
        return [_parse(Namespace, ns) for ns in await self._list_all("/namespaces", "namespaces", params)]

    async def delete_namespace(self, namespace_id: str) -> Namespace:
        return _parse(Namespace, await self._request("DELETE", f"/namespaces/{namespace_id}"))

    # Functions

    async def create_function(self, request: CreateFunctionRequest) -> Function:
        body = request.model_dump(exclude_none=True)
        return _parse(Function, await self._request("POST", "/functions", json=body))

    async def deploy_function(self, function_id: str) -> Function:
        return _parse(Function, await self._request("POST", f"/functions/{function_id}/deploy", json={}))

    async def get_function(self, function_id: str) -> Function:
        return _parse(Function, await self._request("GET", f"/functions/{function_id}"))

    async def list_functions(
        self, name: Optional[str] = None, namespace_id: Optional[str] = None
    ) -> List[Function]:
        params: Dict[str, Any] = {}
        if name:
            params["name"] = name
        if namespace_id:
            params["namespace_id"] = namespace_id
        if self.project_id:
            params["project_id"] = self.project_id
        return [_parse(Function, fn) for fn in await self._list_all("/functions", "functions", params)]

    async def update_function(self, request: UpdateFunctionRequest) -> Function:
        data = await self._request("PATCH", f"/functions/{request.function_id}", json=request.to_body())
        return _parse(Function, data)

    async def delete_function(self, function_id: str) -> Function:
        return _parse(Function, await self._request("DELETE", f"/functions/{function_id}"))

    async def list_function_runtimes(self) -> List[Runtime]:
        data = await self._request("GET", "/runtimes")
        return [_parse(Runtime, rt) for rt in data.get("runtimes") or []]

    async def get_function_upload_url(self, function_id: str, content_length: int) -> str:
        data = await self._request(
            "GET", f"/functions/{function_id}/upload-url", params={"content_length": content_length}
        )
        return _presigned_url(data)

    async def get_function_download_url(self, function_id: str) -> str:
        data = await self._request("GET", f"/functions/{function_id}/download-url")
        return _presigned_url(data)


def _error_message(resp: httpx.Response) -> str:
    try:
        data = resp.json()
    except ValueError:
        return resp.text[:200]
    if isinstance(data, dict):
        return str(data.get("message") or data)
    return str(data)


def _parse(model: Type[M], data: Any) -> M:
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise RemoteAPIError(f"Unexpected {model.__name__} payload from Functions API: {e}") from e


def _presigned_url(data: Dict[str, Any]) -> str:
    url = data.get("url")
    if not isinstance(url, str) or not url:
        raise RemoteAPIError("Functions API response is missing the presigned URL")
    return url
