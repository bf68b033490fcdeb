"""
Order Controllers (API Routes)
===============================

FastAPI routes for the order lifecycle module:
- /cron: externally triggered alert sweep
- /ordenes: semáforo, status changes, transition table
- /notificaciones: per-user notification bell

Controllers are thin - they delegate to application services.
"""

import asyncio
import secrets
from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from servicio_tecnico.config import EstadoOrden, SemaforoColor, settings
from servicio_tecnico.core import ValidationException
from servicio_tecnico.infrastructure.database import get_session
from servicio_tecnico.ordenes.application import (
    AlertaSweepService,
    CambioEstadoRequest,
    ISemaforoConfigProvider,
    MarcarLeidaRequest,
    MarcarLeidaResponse,
    MarcarTodasResponse,
    NotificacionResponse,
    NotificacionService,
    NotificacionesListResponse,
    OrdenEstadoService,
    OrdenResponse,
    OrdenSemaforoResponse,
    SemaforoResumenItem,
    SemaforoResumenResponse,
    SemaforoService,
    SweepResponse,
    TransicionesResponse,
)
from servicio_tecnico.ordenes.application.services import utc_now
from servicio_tecnico.ordenes.domain import (
    TRANSICIONES_VALIDAS,
    Notificacion,
    Orden,
    ResultadoBarrido,
)
from servicio_tecnico.ordenes.infrastructure import (
    SemaforoConfigManager,
    SQLAlchemyNotificationGateway,
    SQLAlchemyOrdenRepository,
)
from servicio_tecnico.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

cron_router = APIRouter(prefix="/cron", tags=["Cron"])
ordenes_router = APIRouter(prefix="/ordenes", tags=["Órdenes"])
notificaciones_router = APIRouter(prefix="/notificaciones", tags=["Notificaciones"])

# Shared by the cron endpoint and the in-process scheduler job
sweep_lock = asyncio.Lock()

# Extra time given to a sweep past its soft deadline before it is cancelled
SWEEP_GRACE_SECONDS = 5.0


async def ejecutar_barrido(
    service: AlertaSweepService,
    timeout_seconds: float
) -> ResultadoBarrido:
    """
    Run one sweep bounded in time.

    The sweep stops between orders at the soft deadline and is cancelled
    outright if it overruns it by SWEEP_GRACE_SECONDS.
    """
    deadline = utc_now() + timedelta(seconds=timeout_seconds)
    return await asyncio.wait_for(
        service.run_sweep(deadline=deadline),
        timeout=timeout_seconds + SWEEP_GRACE_SECONDS
    )


# ========== Dependencies ==========

def get_semaforo_config(request: Request) -> ISemaforoConfigProvider:
    """
    Threshold provider loaded at startup.

    Serverless deployments skip the lifespan, so the file is loaded on
    first use there.
    """
    provider = getattr(request.app.state, "semaforo_config", None)
    if provider is None:
        provider = SemaforoConfigManager()
        provider.load(settings.semaforo_config_path)
        request.app.state.semaforo_config = provider
    return provider


async def get_sweep_service(
    request: Request,
    session: AsyncSession = Depends(get_session)
) -> AlertaSweepService:
    return AlertaSweepService(
        SQLAlchemyOrdenRepository(session),
        SQLAlchemyNotificationGateway(session),
        get_semaforo_config(request)
    )


async def get_semaforo_service(
    request: Request,
    session: AsyncSession = Depends(get_session)
) -> SemaforoService:
    return SemaforoService(SQLAlchemyOrdenRepository(session), get_semaforo_config(request))


async def get_estado_service(
    session: AsyncSession = Depends(get_session)
) -> OrdenEstadoService:
    return OrdenEstadoService(
        SQLAlchemyOrdenRepository(session),
        notification_gateway=SQLAlchemyNotificationGateway(session)
    )


async def get_notificacion_service(
    session: AsyncSession = Depends(get_session)
) -> NotificacionService:
    return NotificacionService(SQLAlchemyNotificationGateway(session))


async def get_usuario_id(
    x_usuario_id: Optional[str] = Header(None, description="Authenticated user id, set by the auth layer")
) -> str:
    """Caller identity forwarded by the upstream auth layer."""
    if not x_usuario_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No autorizado"
        )
    return x_usuario_id


async def verify_cron_auth(
    x_vercel_cron_auth: Optional[str] = Header(None),
    authorization: Optional[str] = Header(None)
) -> None:
    """
    In production only Vercel Cron or a holder of CRON_SECRET may trigger
    the sweep. Other environments are open.
    """
    if settings.environment != "production":
        return
    if x_vercel_cron_auth:
        return
    if settings.cron_secret and authorization and secrets.compare_digest(
        authorization, f"Bearer {settings.cron_secret}"
    ):
        return

    logger.warning("Rejected unauthenticated cron call")
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="No autorizado"
    )


# ========== Mappers ==========

def _orden_response(orden: Orden) -> OrdenResponse:
    return OrdenResponse(
        id=orden.id,
        folio=orden.folio,
        estado=orden.estado,
        fecha_recepcion=orden.fecha_recepcion,
        fecha_reparacion=orden.fecha_reparacion,
        fecha_entrega=orden.fecha_entrega,
        tecnico_id=orden.tecnico_id,
        equipo=orden.equipo,
        cliente=orden.cliente_nombre,
    )


def _notificacion_response(notificacion: Notificacion) -> NotificacionResponse:
    return NotificacionResponse(
        id=notificacion.id,
        tipo=notificacion.tipo,
        titulo=notificacion.titulo,
        mensaje=notificacion.mensaje,
        prioridad=notificacion.prioridad,
        leida=notificacion.leida,
        fecha_leida=notificacion.fecha_leida,
        orden_id=notificacion.orden_id,
        orden_folio=notificacion.orden_folio,
        created_at=notificacion.created_at,
    )


# ========== Cron ==========

@cron_router.get(
    "/alertas",
    response_model=SweepResponse,
    summary="Run the alert sweep",
    description="""
    Evaluate every active order and raise the semáforo alerts it needs.

    - 🔴 ROJO: equipment ready for pickup beyond the limit (roles notified, ALTA)
    - 🟡 AMARILLO: diagnosis/quote without progress (roles and technician, NORMAL)

    An alert is not repeated while an unread one of the same kind exists for
    the order. In production requires `x-vercel-cron-auth` or
    `Authorization: Bearer <CRON_SECRET>`.
    """,
    dependencies=[Depends(verify_cron_auth)],
    responses={
        401: {"description": "Missing cron credentials"},
        409: {"description": "A sweep is already running"},
        500: {"description": "Sweep failed"},
    }
)
async def cron_alertas(service: AlertaSweepService = Depends(get_sweep_service)):
    if sweep_lock.locked():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Barrido de alertas en curso"
        )

    async with sweep_lock:
        try:
            resultado = await ejecutar_barrido(service, settings.alertas_sweep_timeout_seconds)
        except Exception as e:
            logger.error(
                "Alert sweep failed",
                extra={"error_type": type(e).__name__, "error": str(e)}
            )
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Error al ejecutar alertas"
            )

    return SweepResponse(timestamp=utc_now(), **resultado.to_dict())


# ========== Órdenes ==========

@ordenes_router.get(
    "/transiciones",
    response_model=TransicionesResponse,
    summary="Status transition table"
)
async def get_transiciones():
    return TransicionesResponse(
        transiciones={
            desde: [e for e in EstadoOrden if e in destinos]
            for desde, destinos in TRANSICIONES_VALIDAS.items()
        }
    )


@ordenes_router.get(
    "/semaforo/resumen",
    response_model=SemaforoResumenResponse,
    summary="Active orders per semáforo color"
)
async def get_semaforo_resumen(service: SemaforoService = Depends(get_semaforo_service)):
    counts = await service.resumen()
    items = [SemaforoResumenItem(color=color, count=counts[color]) for color in SemaforoColor]
    return SemaforoResumenResponse(items=items, total=sum(counts.values()))


@ordenes_router.get(
    "/{orden_id}/semaforo",
    response_model=OrdenSemaforoResponse,
    summary="Live semáforo of an order",
    responses={404: {"description": "Order not found"}}
)
async def get_orden_semaforo(
    orden_id: str,
    service: SemaforoService = Depends(get_semaforo_service)
):
    orden, color = await service.semaforo_de_orden(orden_id)
    return OrdenSemaforoResponse(
        orden_id=orden.id,
        folio=orden.folio,
        estado=orden.estado,
        semaforo=color
    )


@ordenes_router.patch(
    "/{orden_id}/estado",
    response_model=OrdenResponse,
    summary="Change the status of an order",
    description="""
    Move an order along the transition graph. Entering REPARADO stamps
    `fecha_reparacion`; entering ENTREGADO stamps `fecha_entrega`.
    The users concerned by the new state are notified, except the caller.
    """,
    responses={
        400: {"description": "Transition not allowed"},
        404: {"description": "Order not found"},
    }
)
async def cambiar_estado(
    orden_id: str,
    request: CambioEstadoRequest,
    usuario_id: str = Depends(get_usuario_id),
    service: OrdenEstadoService = Depends(get_estado_service)
):
    orden = await service.cambiar_estado(orden_id, request.estado, cambiado_por=usuario_id)
    logger.info(
        "Status change requested",
        extra={"orden_id": orden_id, "usuario_id": usuario_id, "estado": request.estado.value}
    )
    return _orden_response(orden)


# ========== Notificaciones ==========

@notificaciones_router.get(
    "",
    response_model=NotificacionesListResponse,
    summary="Notification bell of the caller"
)
async def listar_notificaciones(
    solo_no_leidas: bool = Query(False, description="Only unread notifications"),
    limit: int = Query(20, ge=1, le=NotificacionService.MAX_LIMIT, description="Page size"),
    cursor: Optional[datetime] = Query(None, description="next_cursor of the previous page"),
    usuario_id: str = Depends(get_usuario_id),
    service: NotificacionService = Depends(get_notificacion_service)
):
    notificaciones, next_cursor = await service.listar(usuario_id, solo_no_leidas, limit, cursor)
    no_leidas = await service.contar_no_leidas(usuario_id)
    return NotificacionesListResponse(
        notificaciones=[_notificacion_response(n) for n in notificaciones],
        no_leidas=no_leidas,
        next_cursor=next_cursor
    )


@notificaciones_router.patch(
    "/{notificacion_id}",
    response_model=MarcarLeidaResponse,
    summary="Acknowledge one notification",
    responses={
        400: {"description": "Only leida=true is accepted"},
        403: {"description": "Notification belongs to another user"},
        404: {"description": "Notification not found"},
    }
)
async def marcar_leida(
    notificacion_id: str,
    request: MarcarLeidaRequest,
    usuario_id: str = Depends(get_usuario_id),
    service: NotificacionService = Depends(get_notificacion_service)
):
    if not request.leida:
        raise ValidationException("Solo se admite leida=true")
    actualizada = await service.marcar_leida(notificacion_id, usuario_id)
    return MarcarLeidaResponse(actualizada=actualizada)


@notificaciones_router.post(
    "/marcar-todas",
    response_model=MarcarTodasResponse,
    summary="Acknowledge every notification of the caller"
)
async def marcar_todas(
    usuario_id: str = Depends(get_usuario_id),
    service: NotificacionService = Depends(get_notificacion_service)
):
    actualizadas = await service.marcar_todas(usuario_id)
    return MarcarTodasResponse(actualizadas=actualizadas)
