"""
DeploymentRequest — the validated, immutable input of one run.

Built once from the command line, before the host is probed or any
command runs. Validation problems surface as ``ValidationError``.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, SecretStr, model_validator
from pydantic import ValidationError as _PydanticValidationError

from zbxdeploy.core.errors import ValidationError

ActionKind = Literal["install", "upgrade", "uninstall"]
ModeKind = Literal["default", "manual"]
DatabaseKind = Literal["mysql", "pgsql"]
WebServerKind = Literal["apache", "nginx"]

SUPPORTED_VERSIONS: tuple[str, ...] = ("6.0", "6.4", "7.0")
DATABASE_KINDS: tuple[str, ...] = ("mysql", "pgsql")
WEBSERVER_KINDS: tuple[str, ...] = ("apache", "nginx")


class DeploymentRequest(BaseModel):
    """What the operator asked for.

    ``product_version``, ``database`` and ``webserver`` are required for
    install and upgrade and ignored for uninstall. ``db_password`` is
    only meaningful for install and is attached with ``with_credential``
    after the flags themselves have been validated.
    """

    model_config = ConfigDict(frozen=True)

    action: ActionKind
    mode: ModeKind = "default"
    product_version: str | None = None
    database: DatabaseKind | None = None
    webserver: WebServerKind | None = None
    db_password: SecretStr | None = None

    @model_validator(mode="after")
    def _check_action_inputs(self) -> DeploymentRequest:
        if self.action == "uninstall":
            return self

        missing = [
            flag
            for flag, value in (
                ("--version", self.product_version),
                ("--db", self.database),
                ("--webserver", self.webserver),
            )
            if not value
        ]
        if missing:
            raise ValueError(f"{self.action} requires {', '.join(missing)}")

        if self.product_version not in SUPPORTED_VERSIONS:
            raise ValueError(
                f"Invalid Zabbix version: {self.product_version}. "
                f"Allowed versions are: {', '.join(SUPPORTED_VERSIONS)}."
            )
        return self

    @classmethod
    def build(cls, **fields: object) -> DeploymentRequest:
        """Validate raw CLI values into a request.

        Raises:
            ValidationError: With a readable message per failing field.
        """
        try:
            return cls.model_validate(fields)
        except _PydanticValidationError as e:
            problems = []
            for err in e.errors():
                loc = ".".join(str(p) for p in err["loc"])
                msg = err["msg"].removeprefix("Value error, ")
                problems.append(f"{loc}: {msg}" if loc else msg)
            raise ValidationError("; ".join(problems), step="Validation") from e

    def with_credential(self, password: str) -> DeploymentRequest:
        """Return a copy carrying the database credential."""
        if not password:
            raise ValidationError("Database password cannot be empty.", step="Validation")
        return self.model_copy(update={"db_password": SecretStr(password)})

    @property
    def password(self) -> str:
        return self.db_password.get_secret_value() if self.db_password else ""

    def describe(self) -> str:
        if self.action == "uninstall":
            return "uninstall"
        return f"{self.action} {self.product_version} ({self.database}, {self.webserver})"
