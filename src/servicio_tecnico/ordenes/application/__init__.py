"""
Order Application Layer
========================

Contains:
- Services: alert sweep, live semáforo, status changes, notification bell
- DTOs: Data transfer objects for API serialization
- Repository/gateway interfaces implemented by the infrastructure layer
"""

from servicio_tecnico.ordenes.application.dto import (
    CambioEstadoRequest,
    MarcarLeidaRequest,
    MarcarLeidaResponse,
    MarcarTodasResponse,
    NotificacionResponse,
    NotificacionesListResponse,
    OrdenResponse,
    OrdenSemaforoResponse,
    SemaforoResumenItem,
    SemaforoResumenResponse,
    SweepResponse,
    TransicionesResponse,
)
from servicio_tecnico.ordenes.application.services import (
    AlertaSweepService,
    INotificacionRepository,
    INotificationGateway,
    IOrdenRepository,
    ISemaforoConfigProvider,
    NotificacionService,
    OrdenEstadoService,
    SemaforoService,
    StaticSemaforoConfigProvider,
)

__all__ = [
    # DTOs
    "CambioEstadoRequest",
    "MarcarLeidaRequest",
    "MarcarLeidaResponse",
    "MarcarTodasResponse",
    "NotificacionResponse",
    "NotificacionesListResponse",
    "OrdenResponse",
    "OrdenSemaforoResponse",
    "SemaforoResumenItem",
    "SemaforoResumenResponse",
    "SweepResponse",
    "TransicionesResponse",
    # Services
    "AlertaSweepService",
    "SemaforoService",
    "OrdenEstadoService",
    "NotificacionService",
    "StaticSemaforoConfigProvider",
    # Repository Interfaces
    "IOrdenRepository",
    "INotificationGateway",
    "INotificacionRepository",
    "ISemaforoConfigProvider",
]
