"""Deployment engine: packaging, tagging, progress, polling and orchestration."""

from .archive import CodeArchive, extract_archive
from .models import CreateAndDeployFunctionInput, CreateNamespaceInput, UpdateFunctionInput, parse_duration
from .orchestrator import DeploymentOrchestrator
from .progress import DeploymentStep, FunctionDeploymentProgress, ProgressNotification, ProgressSink
from .tags import (
    TAG_CODE_ARCHIVE_DIGEST_PREFIX,
    TAG_CREATED_BY,
    check_resource_ownership,
    get_code_archive_digest,
    is_owned,
    set_code_archive_digest_tag,
    set_created_by_tag,
)
from .waiter import wait_for_function, wait_for_namespace

__all__ = [
    "CodeArchive",
    "extract_archive",
    "CreateAndDeployFunctionInput",
    "CreateNamespaceInput",
    "UpdateFunctionInput",
    "parse_duration",
    "DeploymentOrchestrator",
    "DeploymentStep",
    "FunctionDeploymentProgress",
    "ProgressNotification",
    "ProgressSink",
    "TAG_CODE_ARCHIVE_DIGEST_PREFIX",
    "TAG_CREATED_BY",
    "check_resource_ownership",
    "get_code_archive_digest",
    "is_owned",
    "set_code_archive_digest_tag",
    "set_created_by_tag",
    "wait_for_function",
    "wait_for_namespace",
]
