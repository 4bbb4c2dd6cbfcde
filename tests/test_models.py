"""
Tests for domain models — request validation, environment, progress.
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from zbxdeploy.core.errors import ValidationError
from zbxdeploy.core.models import DeploymentRequest, ProgressState, TargetEnvironment


class TestDeploymentRequest:
    def test_install(self):
        r = DeploymentRequest.build(action="install", product_version="7.0", database="mysql", webserver="nginx")
        assert r.mode == "default"
        assert r.password == ""
        assert r.describe() == "install 7.0 (mysql, nginx)"

    def test_uninstall_needs_nothing(self):
        r = DeploymentRequest.build(action="uninstall")
        assert r.product_version is None
        assert r.describe() == "uninstall"

    def test_missing_flags_listed(self):
        with pytest.raises(ValidationError) as exc:
            DeploymentRequest.build(action="upgrade", product_version="7.0")
        assert "--db" in str(exc.value)
        assert "--webserver" in str(exc.value)
        assert exc.value.step == "Validation"

    def test_unsupported_version(self):
        with pytest.raises(ValidationError, match="Allowed versions are: 6.0, 6.4, 7.0"):
            DeploymentRequest.build(action="install", product_version="5.0", database="mysql", webserver="apache")

    def test_invalid_database(self):
        with pytest.raises(ValidationError, match="database"):
            DeploymentRequest.build(action="install", product_version="6.0", database="oracle", webserver="apache")

    def test_invalid_action(self):
        with pytest.raises(ValidationError):
            DeploymentRequest.build(action="reinstall")

    def test_with_credential(self):
        r = DeploymentRequest.build(action="install", product_version="6.4", database="pgsql", webserver="apache")
        r2 = r.with_credential("pw")
        assert r2.password == "pw"
        assert r.password == ""
        assert "pw" not in repr(r2)

    def test_empty_credential_rejected(self):
        r = DeploymentRequest.build(action="install", product_version="6.4", database="pgsql", webserver="apache")
        with pytest.raises(ValidationError, match="cannot be empty"):
            r.with_credential("")

    def test_frozen(self):
        r = DeploymentRequest.build(action="uninstall")
        with pytest.raises(PydanticValidationError):
            r.action = "install"


class TestTargetEnvironment:
    def test_defaults_to_amd64(self):
        env = TargetEnvironment(distro="ubuntu", os_version="22.04")
        assert env.architecture == "amd64"

    def test_rejects_unknown_arch(self):
        with pytest.raises(PydanticValidationError):
            TargetEnvironment(distro="ubuntu", os_version="22.04", architecture="riscv64")


class TestProgressState:
    def test_advance(self):
        p = ProgressState(total_steps=6)
        assert p.advance("Prerequisites Installation") == 16
        assert p.current_step == 1

    def test_reaches_100(self):
        p = ProgressState(total_steps=4)
        for _ in range(4):
            p.advance("x")
        assert p.percentage == 100

    def test_never_exceeds_100(self):
        p = ProgressState(total_steps=1, current_step=3)
        assert p.percentage == 100

    def test_zero_total(self):
        assert ProgressState(total_steps=0).percentage == 100
