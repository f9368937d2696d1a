"""Functions API clients."""

from .base import ResourceAPI, get_function_by_name, get_namespace_by_name
from .scaleway import ScalewayFunctionsAPI

__all__ = [
    "ResourceAPI",
    "ScalewayFunctionsAPI",
    "get_function_by_name",
    "get_namespace_by_name",
]
