"""Tool facade over the deployment orchestrator.

The production Functions API client is built on first use from ``Settings``.
A failed build (missing credentials, for instance) is cached and reported on
every call instead of being retried.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, List, Optional

import structlog

from funcdeploy.api.base import ResourceAPI
from funcdeploy.api.scaleway import ScalewayFunctionsAPI
from funcdeploy.core.config import Settings
from funcdeploy.core.exceptions import RuntimeUnsupportedError
from funcdeploy.core.models import Function, Namespace, Runtime
from funcdeploy.deploy.models import (
    CreateAndDeployFunctionInput,
    CreateNamespaceInput,
    UpdateFunctionInput,
)
from funcdeploy.deploy.orchestrator import DeploymentOrchestrator
from funcdeploy.deploy.progress import ProgressSink
from funcdeploy.utils.lazy import Lazy
from funcdeploy.utils.logging import setup_logging

logger = structlog.get_logger()

OrchestratorFactory = Callable[[ResourceAPI], DeploymentOrchestrator]


class FunctionTools:
    """Operations exposed to tool callers."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        api: Optional[ResourceAPI] = None,
        orchestrator_factory: Optional[OrchestratorFactory] = None,
        configure_logging: bool = True,
    ):
        self.settings = settings or Settings()
        if configure_logging:
            setup_logging(self.settings.log_level, self.settings.log_format)
        if api is not None:
            self._api: Lazy[ResourceAPI] = Lazy(lambda: api)
        else:
            self._api = Lazy(lambda: ScalewayFunctionsAPI.from_settings(self.settings))
        self._orchestrator_factory = orchestrator_factory or self._default_orchestrator
        self._orchestrator: Lazy[DeploymentOrchestrator] = Lazy(
            lambda: self._orchestrator_factory(self.api)
        )

    @property
    def api(self) -> ResourceAPI:
        return self._api.get()

    @property
    def orchestrator(self) -> DeploymentOrchestrator:
        return self._orchestrator.get()

    def _default_orchestrator(self, api: ResourceAPI) -> DeploymentOrchestrator:
        return DeploymentOrchestrator(
            api,
            poll_interval=self.settings.poll_interval_seconds,
            max_extract_size=self.settings.max_extract_size_bytes,
            transfer_timeout=self.settings.transfer_timeout_seconds,
        )

    # Namespaces

    async def create_and_deploy_function_namespace(
        self, request: CreateNamespaceInput, *, cancel_event: Optional[asyncio.Event] = None
    ) -> Namespace:
        return await self.orchestrator.create_and_deploy_namespace(request, cancel_event=cancel_event)

    async def list_function_namespaces(self) -> List[Namespace]:
        return await self.api.list_namespaces()

    async def delete_function_namespace(
        self, namespace_name: str, *, cancel_event: Optional[asyncio.Event] = None
    ) -> Namespace:
        return await self.orchestrator.delete_namespace(namespace_name, cancel_event=cancel_event)

    # Functions

    async def list_functions(self, namespace_id: Optional[str] = None) -> List[Function]:
        return await self.api.list_functions(namespace_id=namespace_id)

    async def list_function_runtimes(self) -> List[Runtime]:
        return await self.api.list_function_runtimes()

    async def get_function_runtime(self, name: str) -> Runtime:
        for runtime in await self.api.list_function_runtimes():
            if runtime.name == name:
                return runtime
        logger.warning("Runtime not supported", runtime=name)
        raise RuntimeUnsupportedError(f"Runtime {name!r} is not supported", code="runtime_unsupported")

    async def create_and_deploy_function(
        self,
        request: CreateAndDeployFunctionInput,
        *,
        sink: Optional[ProgressSink] = None,
        token: Any = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Function:
        return await self.orchestrator.create_and_deploy_function(
            request, sink=sink, token=token, cancel_event=cancel_event
        )

    async def update_function(
        self,
        request: UpdateFunctionInput,
        *,
        sink: Optional[ProgressSink] = None,
        token: Any = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Function:
        return await self.orchestrator.update_function(request, sink=sink, token=token, cancel_event=cancel_event)

    async def delete_function(
        self, function_name: str, *, cancel_event: Optional[asyncio.Event] = None
    ) -> Function:
        return await self.orchestrator.delete_function(function_name, cancel_event=cancel_event)

    async def download_function(
        self, function_name: str, to_directory: str, *, cancel_event: Optional[asyncio.Event] = None
    ) -> Function:
        return await self.orchestrator.download_function(function_name, to_directory, cancel_event=cancel_event)
