"""Lifecycle supervisor: construction order, failure policy, health."""

from craftlink.supervisor.banner import banner_lines, print_banner
from craftlink.supervisor.supervisor import (
    ComponentHandle,
    ErrorKind,
    HealthSnapshot,
    ManagerFactories,
    Supervisor,
    SupervisorState,
)

__all__ = [
    "ComponentHandle",
    "ErrorKind",
    "HealthSnapshot",
    "ManagerFactories",
    "Supervisor",
    "SupervisorState",
    "banner_lines",
    "print_banner",
]
