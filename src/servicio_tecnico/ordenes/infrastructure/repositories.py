"""
Order Infrastructure Repositories
==================================

Concrete implementations of the repository and gateway interfaces using
async SQLAlchemy.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Union

from sqlalchemy import func, insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from servicio_tecnico.config import (
    ESTADOS_ACTIVOS,
    TIPO_NOTIFICACION_POR_ALERTA,
    EstadoOrden,
    PrioridadNotif,
    Role,
    TipoAlerta,
    TipoNotificacion,
    tipo_notificacion,
)
from servicio_tecnico.core import RepositoryException
from servicio_tecnico.ordenes.application import (
    INotificacionRepository,
    INotificationGateway,
    IOrdenRepository,
)
from servicio_tecnico.ordenes.domain import Notificacion, Orden
from servicio_tecnico.ordenes.infrastructure.models import (
    NotificacionModel,
    OrdenModel,
    UsuarioModel,
)
from servicio_tecnico.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)


class SQLAlchemyOrdenRepository(IOrdenRepository):
    """
    SQLAlchemy implementation of the order repository.

    Maps OrdenModel rows (with client and technician) onto Orden entities.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    @staticmethod
    def _to_entity(model: OrdenModel) -> Orden:
        return Orden(
            id=model.id,
            folio=model.folio,
            estado=EstadoOrden(model.estado),
            fecha_recepcion=model.fecha_recepcion,
            fecha_reparacion=model.fecha_reparacion,
            fecha_entrega=model.fecha_entrega,
            tecnico_id=model.tecnico_id,
            tecnico_nombre=model.tecnico.name if model.tecnico else None,
            marca_equipo=model.marca_equipo,
            modelo_equipo=model.modelo_equipo,
            cliente_nombre=model.cliente.nombre if model.cliente else "",
        )

    async def list_activas(self) -> List[Orden]:
        """List orders whose state is not ENTREGADO nor CANCELADO."""
        return await self.list_by_estados(ESTADOS_ACTIVOS)

    async def list_by_estados(self, estados: Sequence[EstadoOrden]) -> List[Orden]:
        """List orders in any of the given states, oldest reception first."""
        if not estados:
            return []
        stmt = (
            select(OrdenModel)
            .where(OrdenModel.estado.in_([EstadoOrden(e).value for e in estados]))
            .order_by(OrdenModel.fecha_recepcion.asc())
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars().all()]

    async def get_by_id(self, orden_id: str) -> Optional[Orden]:
        """Get order by ID."""
        model = await self._get_model(orden_id)
        return self._to_entity(model) if model else None

    async def update_estado(
        self,
        orden_id: str,
        estado: EstadoOrden,
        timestamps: Dict[str, datetime]
    ) -> Orden:
        """Persist a new state plus the timestamps it stamps."""
        model = await self._get_model(orden_id)
        if not model:
            raise RepositoryException(f"Orden {orden_id} not found")

        model.estado = EstadoOrden(estado).value
        for campo, valor in timestamps.items():
            setattr(model, campo, valor)
        model.updated_at = datetime.now(timezone.utc)

        await self._session.flush()
        return self._to_entity(model)

    async def _get_model(self, orden_id: str) -> Optional[OrdenModel]:
        stmt = select(OrdenModel).where(OrdenModel.id == orden_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()


class SQLAlchemyNotificationGateway(INotificationGateway, INotificacionRepository):
    """
    SQLAlchemy implementation of the notification store.

    Serves both the alert sweep (dedup check and fan-out writes) and the
    per-user bell. Each sweep-facing call runs in its own SAVEPOINT so one
    failed order does not poison the session for the rest of the sweep.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    @staticmethod
    def _to_entity(model: NotificacionModel) -> Notificacion:
        return Notificacion(
            id=model.id,
            usuario_id=model.usuario_id,
            tipo=TipoNotificacion(model.tipo),
            titulo=model.titulo,
            mensaje=model.mensaje,
            prioridad=PrioridadNotif(model.prioridad),
            created_at=model.created_at,
            orden_id=model.orden_id,
            orden_folio=model.orden.folio if model.orden else None,
            leida=model.leida,
            fecha_leida=model.fecha_leida,
        )

    # ========== Alert sweep surface ==========

    @asynccontextmanager
    async def _savepoint(self, error: str):
        """
        Run reads and writes of one call in a SAVEPOINT.

        A failed statement leaves PostgreSQL's transaction aborted until it
        is rolled back; rolling back to the savepoint keeps the session
        usable and earlier writes intact.
        """
        try:
            async with self._session.begin_nested():
                yield
        except SQLAlchemyError as e:
            raise RepositoryException(f"{error}: {e}")

    async def has_unacknowledged(self, orden_id: str, tipo_alerta: TipoAlerta) -> bool:
        """Check for an unread alert notification of this kind for the order."""
        tipo = TIPO_NOTIFICACION_POR_ALERTA[TipoAlerta(tipo_alerta)]
        stmt = (
            select(NotificacionModel.id)
            .where(
                NotificacionModel.orden_id == orden_id,
                NotificacionModel.tipo == tipo.value,
                NotificacionModel.leida.is_(False),
            )
            .limit(1)
        )
        async with self._savepoint(f"Dedup lookup failed for orden {orden_id}"):
            found = (await self._session.execute(stmt)).scalar_one_or_none()
        return found is not None

    async def create_for_roles(
        self,
        roles: Sequence[Role],
        orden_id: str,
        tipo: Union[TipoAlerta, TipoNotificacion],
        titulo: str,
        mensaje: str,
        prioridad: PrioridadNotif,
        excluir_usuario_id: Optional[str] = None
    ) -> int:
        """Notify every active user holding one of `roles` but `excluir_usuario_id`; returns rows written."""
        stmt = select(UsuarioModel.id).where(
            UsuarioModel.role.in_([Role(r).value for r in roles]),
            UsuarioModel.activo.is_(True),
        )
        if excluir_usuario_id is not None:
            stmt = stmt.where(UsuarioModel.id != excluir_usuario_id)

        async with self._savepoint(f"Notification fan-out failed for orden {orden_id}"):
            usuario_ids = list((await self._session.execute(stmt)).scalars().all())
            if usuario_ids:
                await self._insert(usuario_ids, orden_id, tipo, titulo, mensaje, prioridad)

        if not usuario_ids:
            logger.warning(
                "No active recipients for roles",
                extra={"roles": [Role(r).value for r in roles], "orden_id": orden_id}
            )
        return len(usuario_ids)

    async def create_for_user(
        self,
        usuario_id: str,
        orden_id: str,
        tipo: Union[TipoAlerta, TipoNotificacion],
        titulo: str,
        mensaje: str,
        prioridad: PrioridadNotif,
        excluir_usuario_id: Optional[str] = None
    ) -> int:
        """Notify a single user unless it is `excluir_usuario_id`; returns rows written."""
        if usuario_id == excluir_usuario_id:
            return 0
        async with self._savepoint(f"Notification write failed for orden {orden_id}"):
            await self._insert([usuario_id], orden_id, tipo, titulo, mensaje, prioridad)
        return 1

    async def _insert(
        self,
        usuario_ids: List[str],
        orden_id: str,
        tipo: Union[TipoAlerta, TipoNotificacion],
        titulo: str,
        mensaje: str,
        prioridad: PrioridadNotif
    ) -> None:
        tipo = tipo_notificacion(tipo)
        rows = [
            {
                "usuario_id": usuario_id,
                "orden_id": orden_id,
                "tipo": tipo.value,
                "titulo": titulo,
                "mensaje": mensaje,
                "prioridad": PrioridadNotif(prioridad).value,
            }
            for usuario_id in usuario_ids
        ]
        await self._session.execute(insert(NotificacionModel), rows)

    # ========== Bell surface ==========

    async def list_for_user(
        self,
        usuario_id: str,
        solo_no_leidas: bool = False,
        limit: int = 20,
        cursor: Optional[datetime] = None
    ) -> List[Notificacion]:
        """Newest first, strictly older than `cursor` when given."""
        stmt = select(NotificacionModel).where(NotificacionModel.usuario_id == usuario_id)
        if solo_no_leidas:
            stmt = stmt.where(NotificacionModel.leida.is_(False))
        if cursor is not None:
            stmt = stmt.where(NotificacionModel.created_at < cursor)
        stmt = stmt.order_by(NotificacionModel.created_at.desc()).limit(limit)

        result = await self._session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars().all()]

    async def count_unread(self, usuario_id: str) -> int:
        stmt = select(func.count()).select_from(NotificacionModel).where(
            NotificacionModel.usuario_id == usuario_id,
            NotificacionModel.leida.is_(False),
        )
        return (await self._session.execute(stmt)).scalar_one()

    async def get_by_id(self, notificacion_id: str) -> Optional[Notificacion]:
        stmt = select(NotificacionModel).where(NotificacionModel.id == notificacion_id)
        model = (await self._session.execute(stmt)).scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def mark_read(self, notificacion_id: str, usuario_id: str, timestamp: datetime) -> bool:
        stmt = (
            update(NotificacionModel)
            .where(
                NotificacionModel.id == notificacion_id,
                NotificacionModel.usuario_id == usuario_id,
                NotificacionModel.leida.is_(False),
            )
            .values(leida=True, fecha_leida=timestamp)
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def mark_all_read(self, usuario_id: str, timestamp: datetime) -> int:
        stmt = (
            update(NotificacionModel)
            .where(
                NotificacionModel.usuario_id == usuario_id,
                NotificacionModel.leida.is_(False),
            )
            .values(leida=True, fecha_leida=timestamp)
        )
        result = await self._session.execute(stmt)
        return result.rowcount
