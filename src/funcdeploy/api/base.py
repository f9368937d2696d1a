"""Functions API surface used by the deployer."""

from __future__ import annotations

from typing import List, Optional, Protocol, runtime_checkable

from funcdeploy.core.exceptions import ResourceNotFoundError
from funcdeploy.core.models import (
    CreateFunctionRequest,
    CreateNamespaceRequest,
    Function,
    Namespace,
    Runtime,
    UpdateFunctionRequest,
)


@runtime_checkable
class ResourceAPI(Protocol):
    """Operations the deployer needs from the Functions API.

    Implemented by ScalewayFunctionsAPI in production and by in-memory fakes
    in tests.
    """

    async def get_namespace(self, namespace_id: str) -> Namespace: ...

    async def create_namespace(self, request: CreateNamespaceRequest) -> Namespace: ...

    async def list_namespaces(self, name: Optional[str] = None) -> List[Namespace]: ...

    async def delete_namespace(self, namespace_id: str) -> Namespace: ...

    async def create_function(self, request: CreateFunctionRequest) -> Function: ...

    async def deploy_function(self, function_id: str) -> Function: ...

    async def get_function(self, function_id: str) -> Function: ...

    async def list_functions(
        self, name: Optional[str] = None, namespace_id: Optional[str] = None
    ) -> List[Function]: ...

    async def update_function(self, request: UpdateFunctionRequest) -> Function: ...

    async def delete_function(self, function_id: str) -> Function: ...

    async def list_function_runtimes(self) -> List[Runtime]: ...

    async def get_function_upload_url(self, function_id: str, content_length: int) -> str: ...

    async def get_function_download_url(self, function_id: str) -> str: ...


async def get_namespace_by_name(api: ResourceAPI, name: str) -> Namespace:
    # The API name filter is not an exact match.
    namespaces = [ns for ns in await api.list_namespaces(name=name) if ns.name == name]
    if not namespaces:
        raise ResourceNotFoundError(f"Namespace {name!r} not found")
    return namespaces[0]


async def get_function_by_name(api: ResourceAPI, name: str) -> Function:
    functions = [fn for fn in await api.list_functions(name=name) if fn.name == name]
    if not functions:
        raise ResourceNotFoundError(f"Function {name!r} not found")
    return functions[0]
