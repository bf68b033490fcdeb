"""Shared fixtures: in-memory repositories and order builders."""

import dataclasses
import itertools
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence

import pytest

from servicio_tecnico.config import (
    EstadoOrden,
    PrioridadNotif,
    Role,
    tipo_notificacion,
)
from servicio_tecnico.core import RepositoryException
from servicio_tecnico.ordenes.application import (
    INotificacionRepository,
    INotificationGateway,
    IOrdenRepository,
)
from servicio_tecnico.ordenes.domain import Notificacion, Orden

AHORA = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)

_folios = itertools.count(1)


def make_orden(estado: EstadoOrden = EstadoOrden.RECIBIDO, **overrides) -> Orden:
    """Build an order received one hour before AHORA unless overridden."""
    n = next(_folios)
    values = dict(
        id=f"orden-{n}",
        folio=f"OS-2026-{n:04d}",
        estado=estado,
        fecha_recepcion=AHORA - timedelta(hours=1),
        marca_equipo="HP",
        modelo_equipo="LaserJet M404",
        cliente_nombre="Comercializadora del Norte",
    )
    values.update(overrides)
    return Orden(**values)


class FakeOrdenRepository(IOrdenRepository):
    def __init__(self, ordenes: Sequence[Orden] = (), fail_listing: bool = False):
        self.ordenes: Dict[str, Orden] = {o.id: o for o in ordenes}
        self.fail_listing = fail_listing

    async def list_activas(self) -> List[Orden]:
        if self.fail_listing:
            raise RepositoryException("database unavailable")
        return [o for o in self.ordenes.values() if o.is_activa]

    async def list_by_estados(self, estados: Sequence[EstadoOrden]) -> List[Orden]:
        return [o for o in self.ordenes.values() if o.estado in estados]

    async def get_by_id(self, orden_id: str) -> Optional[Orden]:
        return self.ordenes.get(orden_id)

    async def update_estado(self, orden_id, estado, timestamps) -> Orden:
        orden = dataclasses.replace(self.ordenes[orden_id], estado=estado, **timestamps)
        self.ordenes[orden_id] = orden
        return orden


class FakeNotificationStore(INotificationGateway, INotificacionRepository):
    """
    Notification store keeping rows in a list.

    `fail_dedup_for`, `fail_roles_for` and `fail_user_for` hold order ids
    whose dedup check or writes raise.
    """

    def __init__(self, usuarios: Optional[Dict[str, Role]] = None):
        self.usuarios = usuarios if usuarios is not None else {
            "coord-1": Role.COORD_SERVICIO,
            "admin-1": Role.SUPER_ADMIN,
            "tec-1": Role.TECNICO,
            "ref-1": Role.REFACCIONES,
        }
        self.notificaciones: List[Notificacion] = []
        self.fail_dedup_for = set()
        self.fail_roles_for = set()
        self.fail_user_for = set()
        self.error: BaseException = RepositoryException("write failed")
        self._ids = itertools.count(1)
        self._created = itertools.count(0)

    def add(self, usuario_id, orden_id, tipo, titulo, mensaje, prioridad):
        self.notificaciones.append(Notificacion(
            id=f"notif-{next(self._ids)}",
            usuario_id=usuario_id,
            tipo=tipo_notificacion(tipo),
            titulo=titulo,
            mensaje=mensaje,
            prioridad=prioridad,
            created_at=AHORA + timedelta(seconds=next(self._created)),
            orden_id=orden_id,
        ))

    def for_orden(self, orden_id: str) -> List[Notificacion]:
        return [n for n in self.notificaciones if n.orden_id == orden_id]

    async def has_unacknowledged(self, orden_id, tipo_alerta) -> bool:
        if orden_id in self.fail_dedup_for:
            raise self.error
        tipo = tipo_notificacion(tipo_alerta)
        return any(
            n.orden_id == orden_id and n.tipo == tipo and not n.leida
            for n in self.notificaciones
        )

    async def create_for_roles(
        self, roles, orden_id, tipo, titulo, mensaje, prioridad, excluir_usuario_id=None
    ) -> int:
        if orden_id in self.fail_roles_for:
            raise self.error
        destinatarios = [
            u for u, role in self.usuarios.items()
            if role in roles and u != excluir_usuario_id
        ]
        for usuario_id in destinatarios:
            self.add(usuario_id, orden_id, tipo, titulo, mensaje, prioridad)
        return len(destinatarios)

    async def create_for_user(
        self, usuario_id, orden_id, tipo, titulo, mensaje, prioridad, excluir_usuario_id=None
    ) -> int:
        if orden_id in self.fail_user_for:
            raise self.error
        if usuario_id == excluir_usuario_id:
            return 0
        self.add(usuario_id, orden_id, tipo, titulo, mensaje, prioridad)
        return 1

    async def list_for_user(self, usuario_id, solo_no_leidas=False, limit=20, cursor=None):
        rows = [
            n for n in self.notificaciones
            if n.usuario_id == usuario_id
            and not (solo_no_leidas and n.leida)
            and (cursor is None or n.created_at < cursor)
        ]
        rows.sort(key=lambda n: n.created_at, reverse=True)
        return rows[:limit]

    async def count_unread(self, usuario_id) -> int:
        return sum(1 for n in self.notificaciones if n.usuario_id == usuario_id and not n.leida)

    async def get_by_id(self, notificacion_id):
        return next((n for n in self.notificaciones if n.id == notificacion_id), None)

    async def mark_read(self, notificacion_id, usuario_id, timestamp) -> bool:
        n = await self.get_by_id(notificacion_id)
        if n is None or n.usuario_id != usuario_id or n.leida:
            return False
        n.marcar_leida(timestamp)
        return True

    async def mark_all_read(self, usuario_id, timestamp) -> int:
        count = 0
        for n in self.notificaciones:
            if n.usuario_id == usuario_id and not n.leida:
                n.marcar_leida(timestamp)
                count += 1
        return count


@pytest.fixture
def store() -> FakeNotificationStore:
    return FakeNotificationStore()


@pytest.fixture
def clock():
    return lambda: AHORA
