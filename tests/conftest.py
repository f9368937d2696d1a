"""
Pytest configuration and fixtures for funcdeploy tests.
"""

import itertools
from typing import Any, Dict, List, Optional, Tuple

import httpx
import pytest

from funcdeploy.core.exceptions import ResourceNotFoundError
from funcdeploy.core.models import (
    CreateFunctionRequest,
    CreateNamespaceRequest,
    Function,
    FunctionStatus,
    Namespace,
    NamespaceStatus,
    Runtime,
    UpdateFunctionRequest,
)
from funcdeploy.deploy.orchestrator import DeploymentOrchestrator
from funcdeploy.deploy.progress import ProgressNotification
from funcdeploy.deploy.tags import TAG_CREATED_BY

DEFAULT_BUILD_MESSAGES = [
    "building: installing dependencies",
    "pushing image: uploading layers",
    "deploying: rolling out",
]

MUTATING_CALLS = {
    "create_namespace",
    "delete_namespace",
    "create_function",
    "deploy_function",
    "update_function",
    "delete_function",
    "get_function_upload_url",
}


class FakeResourceAPI:
    """In-memory Functions API.

    Deploying (or updating with ``redeploy``) schedules one snapshot per build
    message; the last one is terminal.
    """

    def __init__(self, build_messages: Optional[List[str]] = None, final_status: FunctionStatus = FunctionStatus.READY):
        self.namespaces: Dict[str, Namespace] = {}
        self.functions: Dict[str, Function] = {}
        self.runtimes: List[Runtime] = [
            Runtime(name="python313", language="Python", version="3.13", status="available", default_handler="handler.handle"),
            Runtime(name="node22", language="Node", version="22", status="available", default_handler="handler.handle"),
        ]
        self.calls: List[Tuple[str, Any]] = []
        self.build_messages = DEFAULT_BUILD_MESSAGES if build_messages is None else build_messages
        self.final_status = final_status
        self._builds: Dict[str, List[Tuple[FunctionStatus, str]]] = {}
        self._ids = itertools.count(1)

    # Test helpers

    def add_namespace(self, name: str, tags: Optional[List[str]] = None, owned: bool = True) -> Namespace:
        tags = list(tags or [])
        if owned and TAG_CREATED_BY not in tags:
            tags.append(TAG_CREATED_BY)
        ns = Namespace(id=f"ns-{next(self._ids)}", name=name, status=NamespaceStatus.READY, tags=tags)
        self.namespaces[ns.id] = ns
        return ns

    def add_function(
        self,
        name: str,
        namespace_id: str = "ns-0",
        tags: Optional[List[str]] = None,
        owned: bool = True,
        status: FunctionStatus = FunctionStatus.READY,
        **fields: Any,
    ) -> Function:
        tags = list(tags or [])
        if owned and TAG_CREATED_BY not in tags:
            tags.append(TAG_CREATED_BY)
        fn = Function(
            id=f"fn-{next(self._ids)}",
            name=name,
            namespace_id=namespace_id,
            status=status,
            tags=tags,
            domain_name=f"{name}.functions.test",
            **fields,
        )
        self.functions[fn.id] = fn
        return fn

    def call_names(self) -> List[str]:
        return [name for name, _ in self.calls]

    def mutating_calls(self) -> List[str]:
        return [name for name in self.call_names() if name in MUTATING_CALLS]

    def _schedule_build(self, function_id: str) -> None:
        steps = [(FunctionStatus.PENDING, message) for message in self.build_messages]
        if steps:
            steps[-1] = (self.final_status, steps[-1][1])
        else:
            steps = [(self.final_status, "")]
        self._builds[function_id] = steps
        self.functions[function_id] = self.functions[function_id].model_copy(
            update={"status": FunctionStatus.PENDING}
        )

    # ResourceAPI

    async def get_namespace(self, namespace_id: str) -> Namespace:
        self.calls.append(("get_namespace", namespace_id))
        if namespace_id not in self.namespaces:
            raise ResourceNotFoundError(f"namespace {namespace_id} not found")
        return self.namespaces[namespace_id]

    async def create_namespace(self, request: CreateNamespaceRequest) -> Namespace:
        self.calls.append(("create_namespace", request))
        ns = Namespace(
            id=f"ns-{next(self._ids)}", name=request.name, status=NamespaceStatus.PENDING, tags=request.tags
        )
        # Becomes ready on the next read.
        self.namespaces[ns.id] = ns.model_copy(update={"status": NamespaceStatus.READY})
        return ns

    async def list_namespaces(self, name: Optional[str] = None) -> List[Namespace]:
        self.calls.append(("list_namespaces", name))
        return [ns for ns in self.namespaces.values() if name is None or name in ns.name]

    async def delete_namespace(self, namespace_id: str) -> Namespace:
        self.calls.append(("delete_namespace", namespace_id))
        ns = self.namespaces.pop(namespace_id)
        return ns.model_copy(update={"status": NamespaceStatus.DELETING})

    async def create_function(self, request: CreateFunctionRequest) -> Function:
        self.calls.append(("create_function", request))
        fn = Function(
            id=f"fn-{next(self._ids)}",
            name=request.name,
            namespace_id=request.namespace_id,
            status=FunctionStatus.CREATED,
            runtime=request.runtime,
            handler=request.handler or "",
            timeout=request.timeout,
            description=request.description,
            tags=request.tags,
            environment_variables=request.environment_variables or {},
            domain_name=f"{request.name}.functions.test",
        )
        self.functions[fn.id] = fn
        return fn

    async def deploy_function(self, function_id: str) -> Function:
        self.calls.append(("deploy_function", function_id))
        self._schedule_build(function_id)
        return self.functions[function_id]

    async def get_function(self, function_id: str) -> Function:
        self.calls.append(("get_function", function_id))
        if function_id not in self.functions:
            raise ResourceNotFoundError(f"function {function_id} not found")
        steps = self._builds.get(function_id)
        if steps:
            status, message = steps.pop(0)
            self.functions[function_id] = self.functions[function_id].model_copy(
                update={"status": status, "build_message": message}
            )
        return self.functions[function_id]

    async def list_functions(self, name: Optional[str] = None, namespace_id: Optional[str] = None) -> List[Function]:
        self.calls.append(("list_functions", name))
        return [
            fn
            for fn in self.functions.values()
            if (name is None or name in fn.name) and (namespace_id is None or fn.namespace_id == namespace_id)
        ]

    async def update_function(self, request: UpdateFunctionRequest) -> Function:
        self.calls.append(("update_function", request))
        changes = request.model_dump(exclude_none=True, exclude={"function_id", "redeploy"})
        self.functions[request.function_id] = self.functions[request.function_id].model_copy(update=changes)
        if request.redeploy:
            self._schedule_build(request.function_id)
        return self.functions[request.function_id]

    async def delete_function(self, function_id: str) -> Function:
        self.calls.append(("delete_function", function_id))
        fn = self.functions.pop(function_id)
        return fn.model_copy(update={"status": FunctionStatus.DELETING})

    async def list_function_runtimes(self) -> List[Runtime]:
        self.calls.append(("list_function_runtimes", None))
        return list(self.runtimes)

    async def get_function_upload_url(self, function_id: str, content_length: int) -> str:
        self.calls.append(("get_function_upload_url", (function_id, content_length)))
        return f"https://storage.test/upload/{function_id}?X-Amz-Signature=sig"

    async def get_function_download_url(self, function_id: str) -> str:
        self.calls.append(("get_function_download_url", function_id))
        return f"https://storage.test/download/{function_id}?X-Amz-Signature=sig"


class StorageRecorder:
    """Presigned-URL object storage backed by httpx.MockTransport."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.status_code = 200
        self.download_body = b""

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "GET":
            return httpx.Response(self.status_code, content=self.download_body)
        return httpx.Response(self.status_code)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    @property
    def uploads(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == "PUT"]


class RecordingSink:
    def __init__(self, fail: bool = False):
        self.notifications: List[ProgressNotification] = []
        self.fail = fail

    async def notify_progress(self, notification: ProgressNotification) -> None:
        self.notifications.append(notification)
        if self.fail:
            raise RuntimeError("session closed")

    @property
    def progress_values(self) -> List[float]:
        return [n.progress for n in self.notifications]

    @property
    def messages(self) -> List[str]:
        return [n.message for n in self.notifications]


@pytest.fixture
def fake_api():
    return FakeResourceAPI()


@pytest.fixture
def storage():
    return StorageRecorder()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def orchestrator(fake_api, storage):
    return DeploymentOrchestrator(fake_api, poll_interval=0.01, transfer_client=storage.client())


@pytest.fixture
def code_dir(tmp_path):
    """A small function source tree."""
    root = tmp_path / "code"
    (root / "lib").mkdir(parents=True)
    (root / "handler.py").write_text("def handle(event, context):\n    return {'statusCode': 200}\n")
    (root / "lib" / "util.py").write_text("VALUE = 42\n")
    (root / "requirements.txt").write_text("")
    return root
