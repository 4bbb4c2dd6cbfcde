"""Engine — the lifecycle state machine."""

from zbxdeploy.core.engine.lifecycle import (  # noqa: F401
    LifecycleController,
    LifecycleReport,
    parse_server_version,
)
