"""
Order Interfaces Layer
======================

Interface adapters (controllers) for the order lifecycle module.

This is the outermost layer - handles HTTP requests/responses and
delegates to application services.
"""

from servicio_tecnico.ordenes.interfaces.controllers import (
    cron_router,
    ejecutar_barrido,
    notificaciones_router,
    ordenes_router,
    sweep_lock,
)

__all__ = [
    "cron_router",
    "ordenes_router",
    "notificaciones_router",
    "ejecutar_barrido",
    "sweep_lock",
]
