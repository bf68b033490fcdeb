"""
Order Domain Entities
======================

Pure Python domain entities for the order lifecycle engine.

These entities carry no infrastructure concerns; the persistence layer
maps its rows onto them.
"""

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Optional

from servicio_tecnico.config import (
    EstadoOrden,
    ESTADOS_CERRADOS,
    PrioridadNotif,
    TipoNotificacion,
)


@dataclass
class Orden:
    """
    Read-only view of a repair order as seen by the lifecycle engine.

    The order-editing workflow owns the record; the engine only reads it.
    """

    id: str
    folio: str
    estado: EstadoOrden
    fecha_recepcion: datetime

    fecha_reparacion: Optional[datetime] = None
    fecha_entrega: Optional[datetime] = None

    tecnico_id: Optional[str] = None
    tecnico_nombre: Optional[str] = None

    marca_equipo: str = ""
    modelo_equipo: str = ""
    cliente_nombre: str = ""

    def __post_init__(self):
        """Validate order on initialization."""
        if self.fecha_recepcion is None:
            raise ValueError("fecha_recepcion is required")
        self.estado = EstadoOrden(self.estado)

    @property
    def equipo(self) -> str:
        """Equipment description (brand and model)."""
        return f"{self.marca_equipo} {self.modelo_equipo}".strip()

    @property
    def is_activa(self) -> bool:
        """Check if the order is still in the shop's active workload."""
        return self.estado not in ESTADOS_CERRADOS


@dataclass
class Notificacion:
    """Notification addressed to one user (one row of the bell)."""

    id: str
    usuario_id: str
    tipo: TipoNotificacion
    titulo: str
    mensaje: str
    prioridad: PrioridadNotif
    created_at: datetime

    orden_id: Optional[str] = None
    orden_folio: Optional[str] = None
    leida: bool = False
    fecha_leida: Optional[datetime] = None

    def marcar_leida(self, timestamp: datetime) -> None:
        """Acknowledge the notification."""
        if self.leida:
            return
        self.leida = True
        self.fecha_leida = timestamp


@dataclass
class ResultadoBarrido:
    """Aggregate counters of one alert sweep."""

    alertas_rojas: int = 0
    alertas_amarillas: int = 0
    notificaciones_creadas: int = 0
    errores: int = 0

    ordenes_evaluadas: int = 0
    interrumpido: bool = False

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses and logs."""
        return asdict(self)
