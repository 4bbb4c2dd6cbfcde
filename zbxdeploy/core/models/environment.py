"""
TargetEnvironment — what host we are running on.

Probed exactly once per process and read-only afterwards.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict

Architecture = Literal["amd64", "arm64"]


class TargetEnvironment(BaseModel):
    """Distribution id, OS version and normalized CPU architecture."""

    model_config = ConfigDict(frozen=True)

    distro: str
    os_version: str
    architecture: Architecture = "amd64"

    def __str__(self) -> str:
        return f"{self.distro} {self.os_version} ({self.architecture})"
