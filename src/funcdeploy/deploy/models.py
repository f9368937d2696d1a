"""Inputs for deployment operations."""

from __future__ import annotations

import re
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from funcdeploy.core.models import (
    CreateFunctionRequest,
    CreateNamespaceRequest,
    Function,
    Secret,
    UpdateFunctionRequest,
)
from funcdeploy.deploy.tags import (
    get_code_archive_digest,
    set_code_archive_digest_tag,
    set_created_by_tag,
)

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|\u00b5s|\u03bcs|ms|h|m|s)")
_UNIT_NANOSECONDS = {
    "h": 3_600_000_000_000,
    "m": 60_000_000_000,
    "s": 1_000_000_000,
    "ms": 1_000_000,
    "us": 1_000,
    "\u00b5s": 1_000,  # micro sign
    "\u03bcs": 1_000,  # greek mu
    "ns": 1,
}


def parse_duration(value: str) -> int:
    """Parse a duration such as ``"300s"``, ``"5m"`` or ``"1h2m3s"`` into whole seconds.

    Units are h, m, s, ms, us (or \u00b5s), and ns. A bare ``"0"`` is accepted and
    a leading ``+`` is ignored. Negative durations are rejected.
    """
    text = value.strip()
    if text.startswith("+"):
        text = text[1:]
    if not text:
        raise ValueError(f"invalid duration {value!r}")
    if text == "0":
        return 0
    pos = 0
    total = Decimal(0)
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            break
        total += Decimal(match.group(1)) * _UNIT_NANOSECONDS[match.group(2)]
        pos = match.end()
    if pos != len(text):
        raise ValueError(f"invalid duration {value!r}")
    return int(total // 1_000_000_000)


def format_duration(value: str) -> str:
    return f"{parse_duration(value)}s"


class CreateNamespaceInput(BaseModel):
    name: str
    tags: List[str] = Field(default_factory=list)

    def to_request(self) -> CreateNamespaceRequest:
        return CreateNamespaceRequest(name=self.name, tags=set_created_by_tag(self.tags))


class CreateAndDeployFunctionInput(BaseModel):
    """Create a function in an existing namespace and deploy code from a local directory."""

    directory: str = Field(..., description="Directory containing the function code")
    function_name: str
    namespace_name: str
    runtime: str = Field(..., description="Runtime, e.g. python313")
    handler: str = Field(..., description="Handler as file.function, e.g. handler.handle")
    timeout: str = Field(..., description="Execution timeout, e.g. 300s or 5m")
    description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    environment_variables: Dict[str, str] = Field(default_factory=dict)
    secret_environment_variables: Dict[str, str] = Field(default_factory=dict)
    min_scale: Optional[int] = Field(None, ge=0)
    max_scale: Optional[int] = Field(None, ge=0)
    memory_limit: Optional[int] = Field(None, gt=0)

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: str) -> str:
        parse_duration(v)
        return v

    def to_request(self, namespace_id: str) -> CreateFunctionRequest:
        secrets = [Secret(key=k, value=v) for k, v in self.secret_environment_variables.items()]
        return CreateFunctionRequest(
            namespace_id=namespace_id,
            name=self.function_name,
            runtime=self.runtime,
            handler=self.handler,
            timeout=format_duration(self.timeout),
            description=self.description,
            tags=set_created_by_tag(self.tags),
            environment_variables=self.environment_variables or None,
            secret_environment_variables=secrets or None,
            min_scale=self.min_scale,
            max_scale=self.max_scale,
            memory_limit=self.memory_limit,
        )


class UpdateFunctionInput(BaseModel):
    """Update the code and/or configuration of an existing function."""

    directory: str
    function_name: str

    runtime: Optional[str] = None
    handler: Optional[str] = None
    timeout: Optional[str] = None
    description: Optional[str] = None
    tags: Optional[List[str]] = None
    environment_variables: Optional[Dict[str, str]] = None
    min_scale: Optional[int] = Field(None, ge=0)
    max_scale: Optional[int] = Field(None, ge=0)
    memory_limit: Optional[int] = Field(None, gt=0)

    @field_validator("timeout")
    @classmethod
    def validate_timeout(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            parse_duration(v)
        return v

    def to_request(self, current: Function, code_archive_digest: str) -> UpdateFunctionRequest:
        """Build a partial update against ``current``.

        Runtime and handler are only sent when they change: resending the
        same value still triggers a full redeploy.
        """
        tags: Optional[List[str]] = None
        if self.tags is not None:
            tags = set_code_archive_digest_tag(set_created_by_tag(self.tags), code_archive_digest)
        else:
            current_digest, _ = get_code_archive_digest(current.tags)
            if current_digest != code_archive_digest:
                tags = set_code_archive_digest_tag(current.tags, code_archive_digest)

        runtime = None
        if self.runtime is not None and self.runtime.lower() != current.runtime.lower():
            runtime = self.runtime

        handler = None
        if self.handler is not None and self.handler != current.handler:
            handler = self.handler

        return UpdateFunctionRequest(
            function_id=current.id,
            runtime=runtime,
            handler=handler,
            timeout=format_duration(self.timeout) if self.timeout is not None else None,
            description=self.description,
            tags=tags,
            environment_variables=self.environment_variables,
            min_scale=self.min_scale,
            max_scale=self.max_scale,
            memory_limit=self.memory_limit,
        )
