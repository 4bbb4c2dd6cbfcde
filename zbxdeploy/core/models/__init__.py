"""
Domain models — pydantic types for the deployer.

    from zbxdeploy.core.models import DeploymentRequest, TargetEnvironment, ProgressState
"""

from zbxdeploy.core.models.environment import Architecture, TargetEnvironment
from zbxdeploy.core.models.progress import ProgressState
from zbxdeploy.core.models.request import (
    DATABASE_KINDS,
    SUPPORTED_VERSIONS,
    WEBSERVER_KINDS,
    DeploymentRequest,
)

__all__ = [
    "Architecture",
    "DATABASE_KINDS",
    "DeploymentRequest",
    "ProgressState",
    "SUPPORTED_VERSIONS",
    "TargetEnvironment",
    "WEBSERVER_KINDS",
]
