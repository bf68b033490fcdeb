"""
Order Application Services
===========================

Application services orchestrate the lifecycle engine and coordinate
between domain logic and the repositories/gateways behind it.

Collaborators are injected through the interfaces below, so every
service runs against in-memory fakes in tests.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

from servicio_tecnico.config import (
    EstadoOrden,
    PrioridadNotif,
    ROLES_ALERTA,
    Role,
    SemaforoColor,
    TipoAlerta,
    TipoNotificacion,
)
from servicio_tecnico.core import (
    AccessDeniedException,
    RepositoryException,
    ResourceNotFoundException,
)
from servicio_tecnico.ordenes.domain import (
    DEFAULT_SEMAFORO_CONFIG,
    AvisoEstado,
    DetalleAlertaAmarilla,
    DetalleAlertaRoja,
    Notificacion,
    Orden,
    ResultadoBarrido,
    SemaforoCalculator,
    SemaforoConfig,
    asegurar_transicion,
    avisos_cambio_estado,
)
from servicio_tecnico.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ========== Repository Interfaces (Dependency Inversion) ==========

class IOrdenRepository(ABC):
    """Interface for order data access."""

    @abstractmethod
    async def list_activas(self) -> List[Orden]:
        """List orders whose state is not ENTREGADO nor CANCELADO."""

    @abstractmethod
    async def list_by_estados(self, estados: Sequence[EstadoOrden]) -> List[Orden]:
        """List orders in any of the given states, oldest reception first."""

    @abstractmethod
    async def get_by_id(self, orden_id: str) -> Optional[Orden]:
        """Get order by ID."""

    @abstractmethod
    async def update_estado(
        self,
        orden_id: str,
        estado: EstadoOrden,
        timestamps: Dict[str, datetime]
    ) -> Orden:
        """Persist a new state plus the timestamps it stamps."""


class INotificationGateway(ABC):
    """Write/read surface of the notification store used by the alert sweep and status changes."""

    @abstractmethod
    async def has_unacknowledged(self, orden_id: str, tipo_alerta: TipoAlerta) -> bool:
        """Check for an unread alert notification of this kind for the order."""

    @abstractmethod
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

    @abstractmethod
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


class INotificacionRepository(ABC):
    """Interface for the per-user notification bell."""

    @abstractmethod
    async def list_for_user(
        self,
        usuario_id: str,
        solo_no_leidas: bool = False,
        limit: int = 20,
        cursor: Optional[datetime] = None
    ) -> List[Notificacion]:
        """Newest first, strictly older than `cursor` when given."""

    @abstractmethod
    async def count_unread(self, usuario_id: str) -> int:
        """Count unread notifications of a user."""

    @abstractmethod
    async def get_by_id(self, notificacion_id: str) -> Optional[Notificacion]:
        """Get notification by ID."""

    @abstractmethod
    async def mark_read(self, notificacion_id: str, usuario_id: str, timestamp: datetime) -> bool:
        """Mark one notification as read; False if nothing changed."""

    @abstractmethod
    async def mark_all_read(self, usuario_id: str, timestamp: datetime) -> int:
        """Mark every unread notification of the user; returns the count."""


class ISemaforoConfigProvider(ABC):
    """Interface for semáforo threshold access."""

    @abstractmethod
    def get_config(self) -> SemaforoConfig:
        """Get current semáforo configuration."""


class StaticSemaforoConfigProvider(ISemaforoConfigProvider):
    """Provider returning a fixed configuration."""

    def __init__(self, config: Optional[SemaforoConfig] = None):
        self._config = config or DEFAULT_SEMAFORO_CONFIG

    def get_config(self) -> SemaforoConfig:
        return self._config


# ========== Application Services ==========

class AlertaSweepService:
    """
    Periodic alert sweep over all active orders.

    Each run is stateless: it classifies every active order and, for ROJO
    and AMARILLO, raises a notification unless an unread one of the same
    kind already exists for that order. A failure on one order is counted
    and logged and never stops the sweep.
    """

    def __init__(
        self,
        orden_repository: IOrdenRepository,
        notification_gateway: INotificationGateway,
        config_provider: Optional[ISemaforoConfigProvider] = None,
        clock: Clock = utc_now
    ):
        self._orden_repo = orden_repository
        self._gateway = notification_gateway
        self._config_provider = config_provider or StaticSemaforoConfigProvider()
        self._clock = clock

    async def run_sweep(
        self,
        ahora: Optional[datetime] = None,
        deadline: Optional[datetime] = None
    ) -> ResultadoBarrido:
        """
        Evaluate every active order and create the alerts it needs.

        Args:
            ahora: Evaluation instant (defaults to the clock)
            deadline: Stop before the next order once the clock passes it

        Returns:
            ResultadoBarrido with the aggregate counters

        Raises:
            Any error from listing the active orders; there is nothing to
            iterate over, so it is not a per-order failure.
        """
        ahora = ahora or self._clock()
        config = self._config_provider.get_config()
        result = ResultadoBarrido()

        ordenes = await self._orden_repo.list_activas()

        for orden in ordenes:
            if deadline is not None and self._clock() >= deadline:
                result.interrumpido = True
                logger.warning(
                    "Alert sweep deadline reached",
                    extra={
                        "ordenes_evaluadas": result.ordenes_evaluadas,
                        "ordenes_pendientes": len(ordenes) - result.ordenes_evaluadas
                    }
                )
                break

            result.ordenes_evaluadas += 1
            try:
                color = SemaforoCalculator.calcular(orden, ahora, config)

                if color == SemaforoColor.ROJO:
                    await self._procesar_alerta_roja(orden, ahora, result)
                elif color == SemaforoColor.AMARILLO:
                    await self._procesar_alerta_amarilla(orden, ahora, result)
            except Exception as e:
                result.errores += 1
                logger.error(
                    "Failed to process order in alert sweep",
                    extra={
                        "orden_id": getattr(orden, "id", None),
                        "folio": getattr(orden, "folio", None),
                        "error_type": type(e).__name__,
                        "error": str(e)
                    }
                )

        logger.info("Alert sweep complete", extra=result.to_dict())
        return result

    async def _procesar_alerta_roja(
        self,
        orden: Orden,
        ahora: datetime,
        result: ResultadoBarrido
    ) -> None:
        """Finished equipment waiting for pickup beyond the limit."""
        if await self._gateway.has_unacknowledged(orden.id, TipoAlerta.ROJO):
            return

        fecha_listo, fallback = SemaforoCalculator.fecha_listo(orden)
        if fallback:
            logger.warning(
                "LISTO_ENTREGA order without fecha_reparacion, using fecha_recepcion",
                extra={"orden_id": orden.id, "folio": orden.folio}
            )

        detalle = DetalleAlertaRoja(
            folio=orden.folio,
            equipo=orden.equipo,
            cliente=orden.cliente_nombre,
            dias_sin_recoger=SemaforoCalculator.dias_completos(
                SemaforoCalculator.tiempo_transcurrido(fecha_listo, ahora)
            )
        )

        await self._gateway.create_for_roles(
            ROLES_ALERTA,
            orden.id,
            TipoAlerta.ROJO,
            detalle.titulo,
            detalle.mensaje,
            PrioridadNotif.ALTA
        )
        result.alertas_rojas += 1
        result.notificaciones_creadas += 1

    async def _procesar_alerta_amarilla(
        self,
        orden: Orden,
        ahora: datetime,
        result: ResultadoBarrido
    ) -> None:
        """Diagnosis or quote without progress beyond the limit."""
        if await self._gateway.has_unacknowledged(orden.id, TipoAlerta.AMARILLO):
            return

        detalle = DetalleAlertaAmarilla(
            folio=orden.folio,
            equipo=orden.equipo,
            horas_sin_avance=SemaforoCalculator.horas_completas(
                SemaforoCalculator.tiempo_transcurrido(orden.fecha_recepcion, ahora)
            ),
            tecnico=orden.tecnico_nombre
        )

        await self._gateway.create_for_roles(
            ROLES_ALERTA,
            orden.id,
            TipoAlerta.AMARILLO,
            detalle.titulo,
            detalle.mensaje,
            PrioridadNotif.NORMAL
        )
        result.alertas_amarillas += 1
        result.notificaciones_creadas += 1

        if orden.tecnico_id:
            await self._gateway.create_for_user(
                orden.tecnico_id,
                orden.id,
                TipoAlerta.AMARILLO,
                detalle.titulo,
                detalle.mensaje_tecnico,
                PrioridadNotif.NORMAL
            )
            result.notificaciones_creadas += 1


class SemaforoService:
    """Live semáforo for list views and the dashboard."""

    def __init__(
        self,
        orden_repository: IOrdenRepository,
        config_provider: Optional[ISemaforoConfigProvider] = None,
        clock: Clock = utc_now
    ):
        self._orden_repo = orden_repository
        self._config_provider = config_provider or StaticSemaforoConfigProvider()
        self._clock = clock

    async def semaforo_de_orden(self, orden_id: str) -> Tuple[Orden, Optional[SemaforoColor]]:
        """
        Current color of one order.

        Closed orders (ENTREGADO, CANCELADO) have no color.
        """
        orden = await self._orden_repo.get_by_id(orden_id)
        if orden is None:
            raise ResourceNotFoundException("Orden", orden_id)

        if not orden.is_activa:
            return orden, None
        return orden, SemaforoCalculator.calcular(
            orden, self._clock(), self._config_provider.get_config()
        )

    async def resumen(self) -> Dict[SemaforoColor, int]:
        """Count active orders per color."""
        ahora = self._clock()
        config = self._config_provider.get_config()
        counts = {color: 0 for color in SemaforoColor}

        for orden in await self._orden_repo.list_activas():
            counts[SemaforoCalculator.calcular(orden, ahora, config)] += 1

        return counts


class OrdenEstadoService:
    """
    Validated status changes for the order-editing workflow.

    After a change, the users concerned by the new state are notified
    (never the one who made it). A failed notification is logged and
    does not undo the change.
    """

    # Timestamp stamped on entering a state
    TIMESTAMP_POR_ESTADO = {
        EstadoOrden.REPARADO: "fecha_reparacion",
        EstadoOrden.ENTREGADO: "fecha_entrega",
    }

    def __init__(
        self,
        orden_repository: IOrdenRepository,
        clock: Clock = utc_now,
        notification_gateway: Optional[INotificationGateway] = None
    ):
        self._orden_repo = orden_repository
        self._clock = clock
        self._gateway = notification_gateway

    async def cambiar_estado(
        self,
        orden_id: str,
        nuevo_estado: EstadoOrden,
        cambiado_por: Optional[str] = None
    ) -> Orden:
        """
        Move an order to `nuevo_estado`.

        Args:
            orden_id: Order to move
            nuevo_estado: Target state
            cambiado_por: User making the change, left out of the notices

        Raises:
            ResourceNotFoundException: Unknown order
            TransicionInvalidaException: Move not in the transition graph
        """
        orden = await self._orden_repo.get_by_id(orden_id)
        if orden is None:
            raise ResourceNotFoundException("Orden", orden_id)

        asegurar_transicion(orden.estado, nuevo_estado)
        if orden.estado == nuevo_estado:
            return orden

        timestamps = {}
        campo = self.TIMESTAMP_POR_ESTADO.get(nuevo_estado)
        if campo:
            timestamps[campo] = self._clock()

        actualizada = await self._orden_repo.update_estado(orden_id, nuevo_estado, timestamps)

        logger.info(
            "Order state changed",
            extra={
                "orden_id": orden_id,
                "folio": orden.folio,
                "estado_anterior": orden.estado.value,
                "estado_nuevo": nuevo_estado.value
            }
        )

        if self._gateway is not None:
            for aviso in avisos_cambio_estado(actualizada, orden.estado):
                await self._enviar_aviso(actualizada, aviso, cambiado_por)

        return actualizada

    async def _enviar_aviso(
        self,
        orden: Orden,
        aviso: AvisoEstado,
        cambiado_por: Optional[str]
    ) -> None:
        try:
            if aviso.usuario_id:
                await self._gateway.create_for_user(
                    aviso.usuario_id,
                    orden.id,
                    aviso.tipo,
                    aviso.titulo,
                    aviso.mensaje,
                    aviso.prioridad,
                    excluir_usuario_id=cambiado_por
                )
            else:
                await self._gateway.create_for_roles(
                    aviso.roles,
                    orden.id,
                    aviso.tipo,
                    aviso.titulo,
                    aviso.mensaje,
                    aviso.prioridad,
                    excluir_usuario_id=cambiado_por
                )
        except RepositoryException as e:
            logger.error(
                "Failed to notify state change",
                extra={
                    "orden_id": orden.id,
                    "folio": orden.folio,
                    "tipo": aviso.tipo.value,
                    "error": e.message
                }
            )


class NotificacionService:
    """Per-user notification bell: listing and acknowledgment."""

    MAX_LIMIT = 50

    def __init__(self, notificacion_repository: INotificacionRepository, clock: Clock = utc_now):
        self._repo = notificacion_repository
        self._clock = clock

    async def listar(
        self,
        usuario_id: str,
        solo_no_leidas: bool = False,
        limit: int = 20,
        cursor: Optional[datetime] = None
    ) -> Tuple[List[Notificacion], Optional[datetime]]:
        """
        One page of a user's notifications.

        Returns:
            Tuple of (notifications, next_cursor); next_cursor is None on the last page
        """
        take = max(1, min(limit, self.MAX_LIMIT))
        # Fetch one extra row to know whether another page exists
        rows = await self._repo.list_for_user(usuario_id, solo_no_leidas, take + 1, cursor)

        if len(rows) > take:
            page = rows[:take]
            return page, page[-1].created_at
        return rows, None

    async def contar_no_leidas(self, usuario_id: str) -> int:
        return await self._repo.count_unread(usuario_id)

    async def marcar_leida(self, notificacion_id: str, usuario_id: str) -> bool:
        """
        Acknowledge one notification owned by `usuario_id`.

        Raises:
            ResourceNotFoundException: Unknown notification
            AccessDeniedException: Notification belongs to another user
        """
        notificacion = await self._repo.get_by_id(notificacion_id)
        if notificacion is None:
            raise ResourceNotFoundException("Notificacion", notificacion_id)
        if notificacion.usuario_id != usuario_id:
            raise AccessDeniedException("Notificacion", notificacion_id)

        return await self._repo.mark_read(notificacion_id, usuario_id, self._clock())

    async def marcar_todas(self, usuario_id: str) -> int:
        return await self._repo.mark_all_read(usuario_id, self._clock())
