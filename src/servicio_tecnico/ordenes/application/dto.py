"""
Order Application DTOs
=======================

Pydantic models for serialization/deserialization of the HTTP layer.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from servicio_tecnico.config import EstadoOrden, PrioridadNotif, SemaforoColor, TipoNotificacion


# ========== Request DTOs ==========

class CambioEstadoRequest(BaseModel):
    """Request body for a status change."""
    estado: EstadoOrden = Field(..., description="Target state")


class MarcarLeidaRequest(BaseModel):
    """Request body for acknowledging a notification."""
    leida: bool = Field(..., description="Set to true to acknowledge")


# ========== Response DTOs ==========

class SweepResponse(BaseModel):
    """Result of one alert sweep."""
    success: bool = True
    timestamp: datetime
    alertas_rojas: int
    alertas_amarillas: int
    notificaciones_creadas: int
    errores: int
    ordenes_evaluadas: int = 0
    interrumpido: bool = False


class OrdenResponse(BaseModel):
    """Order summary."""
    id: str
    folio: str
    estado: EstadoOrden
    fecha_recepcion: datetime
    fecha_reparacion: Optional[datetime] = None
    fecha_entrega: Optional[datetime] = None
    tecnico_id: Optional[str] = None
    equipo: str = ""
    cliente: str = ""


class OrdenSemaforoResponse(BaseModel):
    """Live semáforo of an order (null for closed orders)."""
    orden_id: str
    folio: str
    estado: EstadoOrden
    semaforo: Optional[SemaforoColor] = Field(None, description="Null for ENTREGADO/CANCELADO")


class SemaforoResumenItem(BaseModel):
    color: SemaforoColor
    count: int


class SemaforoResumenResponse(BaseModel):
    """Active orders per semáforo color."""
    items: List[SemaforoResumenItem]
    total: int


class TransicionesResponse(BaseModel):
    """Full transition table."""
    transiciones: Dict[EstadoOrden, List[EstadoOrden]]


class NotificacionResponse(BaseModel):
    """One notification of the bell."""
    id: str
    tipo: TipoNotificacion
    titulo: str
    mensaje: str
    prioridad: PrioridadNotif
    leida: bool
    fecha_leida: Optional[datetime] = None
    orden_id: Optional[str] = None
    orden_folio: Optional[str] = None
    created_at: datetime


class NotificacionesListResponse(BaseModel):
    """Page of notifications plus unread count."""
    notificaciones: List[NotificacionResponse]
    no_leidas: int
    next_cursor: Optional[datetime] = None


class MarcarTodasResponse(BaseModel):
    success: bool = True
    actualizadas: int


class MarcarLeidaResponse(BaseModel):
    success: bool = True
    actualizada: bool = Field(..., description="False when it was already read")
