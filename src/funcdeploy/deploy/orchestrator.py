"""Deployment orchestrator: create, update, build and tear down functions."""

from __future__ import annotations

import asyncio
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional

import httpx
import structlog

from funcdeploy.api.base import ResourceAPI, get_function_by_name, get_namespace_by_name
from funcdeploy.core.exceptions import (
    DirectoryNotFoundError,
    FunctionDeployError,
    OperationCancelledError,
)
from funcdeploy.core.models import Function, Namespace, UpdateFunctionRequest
from funcdeploy.deploy.archive import MAX_EXTRACT_SIZE_BYTES, CodeArchive, extract_archive
from funcdeploy.deploy.models import (
    CreateAndDeployFunctionInput,
    CreateNamespaceInput,
    UpdateFunctionInput,
)
from funcdeploy.deploy.progress import FunctionDeploymentProgress, ProgressSink
from funcdeploy.deploy.tags import (
    check_resource_ownership,
    get_code_archive_digest,
    set_code_archive_digest_tag,
)
from funcdeploy.deploy.transfer import download_code_archive, make_download_path, upload_code_archive
from funcdeploy.deploy.waiter import DEFAULT_POLL_INTERVAL, wait_for_function, wait_for_namespace
from funcdeploy.utils.cancellation import run_cancellable
from funcdeploy.utils.logging import bind_deployment_context
from funcdeploy.utils.metrics import BUILD_WAIT_DURATION, CODE_UPLOAD_COUNT, DEPLOYMENT_COUNT

logger = structlog.get_logger()


@contextmanager
def _operation(name: str) -> Iterator[None]:
    """Tag any deployment error raised inside the block with the failing step."""
    try:
        yield
    except FunctionDeployError as e:
        if e.operation is None:
            e.operation = name
        raise


@contextmanager
def _track(operation: str) -> Iterator[None]:
    try:
        yield
    except OperationCancelledError:
        DEPLOYMENT_COUNT.labels(operation=operation, outcome="cancelled").inc()
        raise
    except Exception:
        DEPLOYMENT_COUNT.labels(operation=operation, outcome="error").inc()
        raise
    DEPLOYMENT_COUNT.labels(operation=operation, outcome="success").inc()


class DeploymentOrchestrator:
    """Drives function resources through create/update/build.

    Stateless across calls: each operation works on its own archive and its
    own resource, so independent deployments can run concurrently.
    """

    def __init__(
        self,
        api: ResourceAPI,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        max_extract_size: int = MAX_EXTRACT_SIZE_BYTES,
        transfer_client: Optional[httpx.AsyncClient] = None,
        transfer_timeout: float = 300.0,
        build_deadline: Optional[float] = None,
    ):
        self.api = api
        self.poll_interval = poll_interval
        self.max_extract_size = max_extract_size
        self.transfer_client = transfer_client
        self.transfer_timeout = transfer_timeout
        self.build_deadline = build_deadline

    async def create_and_deploy_function(
        self,
        request: CreateAndDeployFunctionInput,
        *,
        sink: Optional[ProgressSink] = None,
        token: Any = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Function:
        bind_deployment_context(function_name=request.function_name, namespace_name=request.namespace_name)
        progress = FunctionDeploymentProgress(request.function_name, sink, token)

        with _track("create_and_deploy_function"):
            with _operation("getting namespace by name"):
                namespace = await run_cancellable(
                    get_namespace_by_name(self.api, request.namespace_name), cancel_event, "getting namespace"
                )

            # Created before packaging so configuration errors surface immediately.
            with _operation("creating function"):
                function = await run_cancellable(
                    self.api.create_function(request.to_request(namespace.id)), cancel_event, "creating function"
                )
            logger.info("Function created", function_id=function.id)

            await progress.notify_code_archive_creation()
            archive = await self._create_archive(request.directory, cancel_event)

            with archive:
                with _operation("updating function with code archive digest tag"):
                    function = await run_cancellable(
                        self.api.update_function(
                            UpdateFunctionRequest(
                                function_id=function.id,
                                redeploy=False,
                                tags=set_code_archive_digest_tag(function.tags, archive.digest),
                            )
                        ),
                        cancel_event,
                        "updating function tags",
                    )
                await self._upload(function.id, archive, progress, cancel_event)

            with _operation("deploying function"):
                await run_cancellable(self.api.deploy_function(function.id), cancel_event, "deploying function")

            await progress.notify_build_started()
            function = await self._wait_for_build(function.id, progress, cancel_event)

        logger.info("Function deployed", function_id=function.id, status=function.status.value)
        return function

    async def update_function(
        self,
        request: UpdateFunctionInput,
        *,
        sink: Optional[ProgressSink] = None,
        token: Any = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Function:
        bind_deployment_context(function_name=request.function_name)
        progress = FunctionDeploymentProgress(request.function_name, sink, token)

        with _track("update_function"):
            with _operation("getting function by name"):
                function = await run_cancellable(
                    get_function_by_name(self.api, request.function_name), cancel_event, "getting function"
                )
            with _operation("checking resource ownership"):
                check_resource_ownership(function.tags)

            await progress.notify_code_archive_creation()
            archive = await self._create_archive(request.directory, cancel_event)

            with archive:
                current_digest, found = get_code_archive_digest(function.tags)
                should_upload = not (found and archive.compare_digest(current_digest))

                if should_upload:
                    await self._upload(function.id, archive, progress, cancel_event)
                else:
                    logger.info("Code archive digest matches existing one, skipping upload", digest=current_digest)
                    CODE_UPLOAD_COUNT.labels(result="skipped").inc()

                update_request = request.to_request(function, archive.digest)

            if should_upload:
                update_request = update_request.model_copy(update={"redeploy": True})

            with _operation("updating function"):
                function = await run_cancellable(
                    self.api.update_function(update_request), cancel_event, "updating function"
                )

            if not should_upload:
                # Nothing was uploaded, so no redeploy was requested.
                return function

            await progress.notify_build_started()
            function = await self._wait_for_build(function.id, progress, cancel_event)

        logger.info("Function updated", function_id=function.id, status=function.status.value)
        return function

    async def delete_function(self, function_name: str, *, cancel_event: Optional[asyncio.Event] = None) -> Function:
        with _track("delete_function"):
            with _operation("getting function by name"):
                function = await run_cancellable(
                    get_function_by_name(self.api, function_name), cancel_event, "getting function"
                )
            with _operation("checking resource ownership"):
                check_resource_ownership(function.tags)

            with _operation("deleting function"):
                deleted = await run_cancellable(
                    self.api.delete_function(function.id), cancel_event, "deleting function"
                )
        logger.info("Function deleted", function_name=function_name, function_id=function.id)
        return deleted

    async def create_and_deploy_namespace(
        self, request: CreateNamespaceInput, *, cancel_event: Optional[asyncio.Event] = None
    ) -> Namespace:
        with _track("create_and_deploy_namespace"):
            with _operation("creating namespace"):
                namespace = await run_cancellable(
                    self.api.create_namespace(request.to_request()), cancel_event, "creating namespace"
                )
            with _operation("waiting for namespace to be ready"):
                namespace = await wait_for_namespace(
                    self.api,
                    namespace.id,
                    interval=self.poll_interval,
                    cancel_event=cancel_event,
                    deadline=self.build_deadline,
                )
        logger.info("Namespace deployed", namespace_name=namespace.name, status=namespace.status.value)
        return namespace

    async def delete_namespace(
        self, namespace_name: str, *, cancel_event: Optional[asyncio.Event] = None
    ) -> Namespace:
        with _track("delete_namespace"):
            with _operation("getting namespace by name"):
                namespace = await run_cancellable(
                    get_namespace_by_name(self.api, namespace_name), cancel_event, "getting namespace"
                )
            with _operation("checking resource ownership"):
                check_resource_ownership(namespace.tags)

            with _operation("deleting namespace"):
                deleted = await run_cancellable(
                    self.api.delete_namespace(namespace.id), cancel_event, "deleting namespace"
                )
        logger.info("Namespace deleted", namespace_name=namespace_name, namespace_id=namespace.id)
        return deleted

    async def download_function(
        self,
        function_name: str,
        to_directory: str,
        *,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> Function:
        """Download a function's code and extract it into an existing directory."""
        bind_deployment_context(function_name=function_name)
        with _track("download_function"):
            if not Path(to_directory).is_dir():
                raise DirectoryNotFoundError(f"Destination directory not found: {to_directory}")

            with _operation("getting function by name"):
                function = await run_cancellable(
                    get_function_by_name(self.api, function_name), cancel_event, "getting function"
                )

            with _operation("getting function download URL"):
                url = await run_cancellable(
                    self.api.get_function_download_url(function.id), cancel_event, "getting download URL"
                )

            download_path = make_download_path()
            try:
                with _operation("downloading code archive"):
                    await run_cancellable(
                        download_code_archive(
                            url,
                            download_path,
                            client=self.transfer_client,
                            timeout=self.transfer_timeout,
                            max_size_bytes=self.max_extract_size,
                        ),
                        cancel_event,
                        "downloading code archive",
                    )
                with _operation("extracting code archive"):
                    await asyncio.to_thread(
                        extract_archive, download_path, to_directory, max_total_size=self.max_extract_size
                    )
            finally:
                download_path.unlink(missing_ok=True)

        logger.info("Function downloaded", function_name=function_name, directory=to_directory)
        return function

    async def _create_archive(self, directory: str, cancel_event: Optional[asyncio.Event]) -> CodeArchive:
        with _operation("creating archive"):
            archive = await asyncio.to_thread(CodeArchive.create, directory)
        if cancel_event is not None and cancel_event.is_set():
            archive.cleanup()
            raise OperationCancelledError("cancelled after creating archive")
        return archive

    async def _upload(
        self,
        function_id: str,
        archive: CodeArchive,
        progress: FunctionDeploymentProgress,
        cancel_event: Optional[asyncio.Event],
    ) -> None:
        with _operation("getting presigned URL"):
            url = await run_cancellable(
                self.api.get_function_upload_url(function_id, archive.size), cancel_event, "getting upload URL"
            )

        await progress.notify_code_uploading()

        with _operation("uploading archive"):
            await run_cancellable(
                upload_code_archive(archive, url, client=self.transfer_client, timeout=self.transfer_timeout),
                cancel_event,
                "uploading archive",
            )
        CODE_UPLOAD_COUNT.labels(result="uploaded").inc()

    async def _wait_for_build(
        self,
        function_id: str,
        progress: FunctionDeploymentProgress,
        cancel_event: Optional[asyncio.Event],
    ) -> Function:
        started = time.monotonic()
        try:
            with _operation("waiting for function to be ready"):
                return await wait_for_function(
                    self.api,
                    function_id,
                    progress.build_callback(),
                    interval=self.poll_interval,
                    cancel_event=cancel_event,
                    deadline=self.build_deadline,
                )
        finally:
            BUILD_WAIT_DURATION.observe(time.monotonic() - started)
