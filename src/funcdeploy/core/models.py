"""Core data models for the Functions API."""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class FunctionStatus(str, Enum):
    """Function status as reported by the Functions API."""

    UNKNOWN = "unknown"
    READY = "ready"
    DELETING = "deleting"
    ERROR = "error"
    LOCKED = "locked"
    CREATING = "creating"
    PENDING = "pending"
    CREATED = "created"

    @classmethod
    def _missing_(cls, value):
        return cls.UNKNOWN


class NamespaceStatus(str, Enum):
    """Namespace status as reported by the Functions API."""

    UNKNOWN = "unknown"
    READY = "ready"
    DELETING = "deleting"
    ERROR = "error"
    LOCKED = "locked"
    CREATING = "creating"
    PENDING = "pending"

    @classmethod
    def _missing_(cls, value):
        return cls.UNKNOWN


FUNCTION_TERMINAL_STATUSES = frozenset(
    {FunctionStatus.CREATED, FunctionStatus.ERROR, FunctionStatus.LOCKED, FunctionStatus.READY}
)

NAMESPACE_TERMINAL_STATUSES = frozenset(
    {NamespaceStatus.READY, NamespaceStatus.ERROR, NamespaceStatus.LOCKED}
)


class Namespace(BaseModel):
    """Function namespace."""

    id: str = Field(..., description="Namespace ID")
    name: str = Field(..., description="Namespace name")
    status: NamespaceStatus = Field(NamespaceStatus.UNKNOWN, description="Namespace status")
    tags: List[str] = Field(default_factory=list, description="Namespace tags")
    error_message: Optional[str] = Field(None, description="Error reported by the platform")
    project_id: str = Field("", description="Owning project")
    region: str = Field("", description="Region")


class Function(BaseModel):
    """Serverless function."""

    id: str = Field(..., description="Function ID")
    name: str = Field(..., description="Function name")
    namespace_id: str = Field(..., description="Parent namespace ID")
    status: FunctionStatus = Field(FunctionStatus.UNKNOWN, description="Function status")
    runtime: str = Field("", description="Runtime identifier, e.g. python313")
    handler: str = Field("", description="Handler as file.function")
    description: Optional[str] = Field(None, description="Function description")
    tags: List[str] = Field(default_factory=list, description="Function tags")
    timeout: Optional[str] = Field(None, description="Execution timeout, e.g. 300s")
    min_scale: Optional[int] = None
    max_scale: Optional[int] = None
    memory_limit: Optional[int] = None
    environment_variables: Dict[str, str] = Field(default_factory=dict)
    error_message: Optional[str] = Field(None, description="Error reported by the platform")
    build_message: Optional[str] = Field(None, description="Latest build phase message")
    domain_name: str = Field("", description="Public domain of the function")
    region: str = Field("", description="Region")

    @property
    def endpoint(self) -> str:
        return f"https://{self.domain_name}"


class Runtime(BaseModel):
    """Function runtime offered by the platform."""

    name: str
    language: str = ""
    version: str = ""
    status: str = ""
    default_handler: str = ""


class Secret(BaseModel):
    key: str
    value: Optional[str] = None


class CreateNamespaceRequest(BaseModel):
    name: str
    project_id: Optional[str] = None
    tags: List[str] = Field(default_factory=list)


class CreateFunctionRequest(BaseModel):
    namespace_id: str
    name: str
    runtime: str
    handler: Optional[str] = None
    timeout: Optional[str] = None
    description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    environment_variables: Optional[Dict[str, str]] = None
    secret_environment_variables: Optional[List[Secret]] = None
    min_scale: Optional[int] = None
    max_scale: Optional[int] = None
    memory_limit: Optional[int] = None


class UpdateFunctionRequest(BaseModel):
    """Partial update. ``None`` fields are not sent."""

    function_id: str
    redeploy: Optional[bool] = None
    runtime: Optional[str] = None
    handler: Optional[str] = None
    timeout: Optional[str] = None
    description: Optional[str] = None
    tags: Optional[List[str]] = None
    environment_variables: Optional[Dict[str, str]] = None
    min_scale: Optional[int] = None
    max_scale: Optional[int] = None
    memory_limit: Optional[int] = None

    def to_body(self) -> dict:
        return self.model_dump(exclude_none=True, exclude={"function_id"})
