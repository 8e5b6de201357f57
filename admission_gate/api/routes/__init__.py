from __future__ import annotations

from admission_gate.api.routes.debug import router as debug_router
from admission_gate.api.routes.health import router as health_router
from admission_gate.api.routes.resource import router as resource_router

__all__ = ["debug_router", "health_router", "resource_router"]
