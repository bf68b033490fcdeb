"""
Order Infrastructure Layer
===========================

Infrastructure implementations for the order lifecycle engine:
- Models: SQLAlchemy ORM models
- Repositories: Data access layer
- External: Threshold config watcher and sweep scheduler
"""

from servicio_tecnico.ordenes.infrastructure.external import (
    AlertaSweepScheduler,
    SemaforoConfigManager,
)
from servicio_tecnico.ordenes.infrastructure.models import (
    ClienteModel,
    NotificacionModel,
    OrdenModel,
    UsuarioModel,
)
from servicio_tecnico.ordenes.infrastructure.repositories import (
    SQLAlchemyNotificationGateway,
    SQLAlchemyOrdenRepository,
)

__all__ = [
    "UsuarioModel",
    "ClienteModel",
    "OrdenModel",
    "NotificacionModel",
    "SQLAlchemyOrdenRepository",
    "SQLAlchemyNotificationGateway",
    "SemaforoConfigManager",
    "AlertaSweepScheduler",
]
