"""
Status-Change Notices
=====================

Who hears about an order entering a new state, and what they read.

Pure rules: the application layer fans each AvisoEstado out through the
notification gateway.
"""

from dataclasses import dataclass
from typing import List, NamedTuple, Optional, Tuple

from servicio_tecnico.config import EstadoOrden, PrioridadNotif, Role, TipoNotificacion
from servicio_tecnico.ordenes.domain.entities import Orden


@dataclass(frozen=True)
class AvisoEstado:
    """
    One notification raised by a status change.

    Targets either every active user of `roles` or the single `usuario_id`.
    """
    tipo: TipoNotificacion
    titulo: str
    mensaje: str
    prioridad: PrioridadNotif
    roles: Tuple[Role, ...] = ()
    usuario_id: Optional[str] = None


class _Plantilla(NamedTuple):
    # Empty roles means the assigned technician
    roles: Tuple[Role, ...]
    titulo: str
    mensaje: str
    prioridad: PrioridadNotif


_COORDINACION = (Role.COORD_SERVICIO, Role.SUPER_ADMIN)

_PLANTILLAS = {
    EstadoOrden.EN_DIAGNOSTICO: _Plantilla(
        (),
        "📋 Orden asignada para diagnóstico",
        "Se te asignó la orden {folio} para diagnóstico ({equipo})",
        PrioridadNotif.NORMAL,
    ),
    EstadoOrden.ESPERA_REFACCIONES: _Plantilla(
        (Role.REFACCIONES, Role.COORD_SERVICIO),
        "🟠 Orden necesita refacciones",
        "La orden {folio} necesita refacciones ({equipo})",
        PrioridadNotif.ALTA,
    ),
    EstadoOrden.COTIZACION_PENDIENTE: _Plantilla(
        _COORDINACION,
        "🟡 Cotización pendiente de aprobación",
        "Cotización pendiente de aprobación para {folio} ({equipo})",
        PrioridadNotif.NORMAL,
    ),
    EstadoOrden.EN_REPARACION: _Plantilla(
        (),
        "🔧 Puedes iniciar la reparación",
        "Puedes iniciar la reparación de {folio} ({equipo})",
        PrioridadNotif.NORMAL,
    ),
    EstadoOrden.REPARADO: _Plantilla(
        _COORDINACION,
        "✅ Reparación completada",
        "El técnico completó la reparación de {folio} ({equipo})",
        PrioridadNotif.NORMAL,
    ),
    EstadoOrden.LISTO_ENTREGA: _Plantilla(
        _COORDINACION,
        "📦 Orden lista para entrega",
        "Orden {folio} lista para entrega al cliente ({equipo})",
        PrioridadNotif.NORMAL,
    ),
    EstadoOrden.ENTREGADO: _Plantilla(
        _COORDINACION,
        "🎉 Orden entregada",
        "Orden {folio} entregada al cliente ({equipo})",
        PrioridadNotif.NORMAL,
    ),
}


def _avisos_cancelacion(orden: Orden, estado_anterior: EstadoOrden) -> List[AvisoEstado]:
    titulo = "❌ Orden cancelada"
    mensaje = f"La orden {orden.folio} ha sido cancelada ({orden.equipo})"
    avisos = []

    if orden.tecnico_id:
        avisos.append(AvisoEstado(
            TipoNotificacion.ORDEN_CANCELADA, titulo, mensaje, PrioridadNotif.ALTA,
            usuario_id=orden.tecnico_id,
        ))
    avisos.append(AvisoEstado(
        TipoNotificacion.ORDEN_CANCELADA, titulo, mensaje, PrioridadNotif.ALTA,
        roles=_COORDINACION,
    ))
    if estado_anterior == EstadoOrden.ESPERA_REFACCIONES:
        avisos.append(AvisoEstado(
            TipoNotificacion.ORDEN_CANCELADA,
            "❌ Orden cancelada (refacciones ya no requeridas)",
            f"La orden {orden.folio} que esperaba refacciones ha sido cancelada",
            PrioridadNotif.ALTA,
            roles=(Role.REFACCIONES,),
        ))
    return avisos


def avisos_cambio_estado(orden: Orden, estado_anterior: EstadoOrden) -> List[AvisoEstado]:
    """
    Notices for `orden` having just moved from `estado_anterior` to `orden.estado`.

    Technician-bound notices are dropped when nobody is assigned. Moving
    back to RECIBIDO notifies nobody.
    """
    if orden.estado == EstadoOrden.CANCELADO:
        return _avisos_cancelacion(orden, estado_anterior)

    plantilla = _PLANTILLAS.get(orden.estado)
    if plantilla is None:
        return []

    titulo = plantilla.titulo
    mensaje = plantilla.mensaje.format(folio=orden.folio, equipo=orden.equipo)

    if not plantilla.roles:
        if not orden.tecnico_id:
            return []
        return [AvisoEstado(
            TipoNotificacion.ESTADO_CAMBIADO, titulo, mensaje, plantilla.prioridad,
            usuario_id=orden.tecnico_id,
        )]

    return [AvisoEstado(
        TipoNotificacion.ESTADO_CAMBIADO, titulo, mensaje, plantilla.prioridad,
        roles=plantilla.roles,
    )]
