"""Detection — read-only probes of the host."""

from zbxdeploy.core.detection.environment import (  # noqa: F401
    normalize_architecture,
    parse_os_release,
    probe,
)
