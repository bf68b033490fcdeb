import pytest

from conftest import make_orden
from servicio_tecnico.config import EstadoOrden, PrioridadNotif, Role, TipoNotificacion
from servicio_tecnico.ordenes.domain import avisos_cambio_estado

COORDINACION = (Role.COORD_SERVICIO, Role.SUPER_ADMIN)


@pytest.mark.parametrize(
    "anterior,nuevo,roles,prioridad",
    [
        (EstadoOrden.EN_DIAGNOSTICO, EstadoOrden.ESPERA_REFACCIONES,
         (Role.REFACCIONES, Role.COORD_SERVICIO), PrioridadNotif.ALTA),
        (EstadoOrden.EN_DIAGNOSTICO, EstadoOrden.COTIZACION_PENDIENTE, COORDINACION, PrioridadNotif.NORMAL),
        (EstadoOrden.EN_REPARACION, EstadoOrden.REPARADO, COORDINACION, PrioridadNotif.NORMAL),
        (EstadoOrden.REPARADO, EstadoOrden.LISTO_ENTREGA, COORDINACION, PrioridadNotif.NORMAL),
        (EstadoOrden.LISTO_ENTREGA, EstadoOrden.ENTREGADO, COORDINACION, PrioridadNotif.NORMAL),
    ],
)
def test_role_notices(anterior, nuevo, roles, prioridad):
    orden = make_orden(nuevo, tecnico_id="tec-1")

    (aviso,) = avisos_cambio_estado(orden, anterior)

    assert aviso.roles == roles
    assert aviso.usuario_id is None
    assert aviso.tipo == TipoNotificacion.ESTADO_CAMBIADO
    assert aviso.prioridad == prioridad
    assert orden.folio in aviso.mensaje


@pytest.mark.parametrize("nuevo", [EstadoOrden.EN_DIAGNOSTICO, EstadoOrden.EN_REPARACION])
def test_technician_notices(nuevo):
    orden = make_orden(nuevo, tecnico_id="tec-1")

    (aviso,) = avisos_cambio_estado(orden, EstadoOrden.RECIBIDO)

    assert aviso.usuario_id == "tec-1"
    assert aviso.roles == ()


def test_technician_notice_needs_an_assigned_technician():
    orden = make_orden(EstadoOrden.EN_REPARACION)

    assert avisos_cambio_estado(orden, EstadoOrden.EN_DIAGNOSTICO) == []


def test_back_to_received_notifies_nobody():
    orden = make_orden(EstadoOrden.RECIBIDO, tecnico_id="tec-1")

    assert avisos_cambio_estado(orden, EstadoOrden.CANCELADO) == []


def test_cancellation_notices():
    orden = make_orden(EstadoOrden.CANCELADO, tecnico_id="tec-1")

    avisos = avisos_cambio_estado(orden, EstadoOrden.EN_DIAGNOSTICO)

    assert [(a.usuario_id, a.roles) for a in avisos] == [("tec-1", ()), (None, COORDINACION)]
    assert all(a.tipo == TipoNotificacion.ORDEN_CANCELADA for a in avisos)
    assert avisos[0].mensaje == f"La orden {orden.folio} ha sido cancelada (HP LaserJet M404)"


def test_cancellation_while_waiting_for_parts_tells_the_parts_desk():
    orden = make_orden(EstadoOrden.CANCELADO)

    avisos = avisos_cambio_estado(orden, EstadoOrden.ESPERA_REFACCIONES)

    assert [a.roles for a in avisos] == [COORDINACION, (Role.REFACCIONES,)]
    assert avisos[1].titulo == "❌ Orden cancelada (refacciones ya no requeridas)"
