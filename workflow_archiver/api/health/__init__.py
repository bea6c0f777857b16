"""Health probe resources for liveness and readiness checks."""

from .resources import HealthResource, ReadyResource

__all__ = ["HealthResource", "ReadyResource"]
