"""End-to-end run of the scheduled sweep job on SQLite."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from servicio_tecnico.config import EstadoOrden, Role, TipoNotificacion
from servicio_tecnico.infrastructure.database import (
    close_database,
    create_tables,
    get_session_context,
    init_database,
)
from servicio_tecnico.main import build_sweep_job
from servicio_tecnico.ordenes.infrastructure import (
    ClienteModel,
    NotificacionModel,
    OrdenModel,
    SemaforoConfigManager,
    UsuarioModel,
)
from servicio_tecnico.ordenes.interfaces import sweep_lock


@pytest.fixture
async def database(tmp_path):
    init_database("sqlite+aiosqlite:///:memory:")
    await create_tables()
    ahora = datetime.now(timezone.utc)
    async with get_session_context() as session:
        session.add_all([
            UsuarioModel(id="coord-1", name="Coordinación", role=Role.COORD_SERVICIO.value),
            UsuarioModel(id="tec-1", name="Juan Pérez", role=Role.TECNICO.value),
            ClienteModel(id="cli-1", nombre="Comercializadora del Norte"),
        ])
        await session.flush()
        session.add_all([
            OrdenModel(
                id="roja", folio="OS-0001", estado=EstadoOrden.LISTO_ENTREGA.value,
                cliente_id="cli-1", fecha_recepcion=ahora - timedelta(days=12),
                fecha_reparacion=ahora - timedelta(days=6),
            ),
            OrdenModel(
                id="amarilla", folio="OS-0002", estado=EstadoOrden.EN_DIAGNOSTICO.value,
                cliente_id="cli-1", tecnico_id="tec-1", fecha_recepcion=ahora - timedelta(days=4),
            ),
            OrdenModel(
                id="verde", folio="OS-0003", estado=EstadoOrden.EN_REPARACION.value,
                cliente_id="cli-1", fecha_recepcion=ahora - timedelta(days=4),
            ),
        ])
    manager = SemaforoConfigManager()
    manager.load(tmp_path / "semaforo_config.yaml")
    yield manager
    await close_database()


async def _notificaciones():
    async with get_session_context() as session:
        result = await session.execute(select(NotificacionModel))
        return [(n.orden_id, n.usuario_id, n.tipo) for n in result.scalars().all()]


async def test_scheduled_job_writes_alerts_once(database):
    job = build_sweep_job(database)

    await job()
    first = await _notificaciones()
    await job()
    second = await _notificaciones()

    assert sorted(first) == sorted([
        ("roja", "coord-1", TipoNotificacion.ALERTA_ROJO.value),
        ("amarilla", "coord-1", TipoNotificacion.ALERTA_AMARILLO.value),
        ("amarilla", "tec-1", TipoNotificacion.ALERTA_AMARILLO.value),
    ])
    assert sorted(second) == sorted(first)


async def test_scheduled_job_skips_while_sweep_running(database):
    job = build_sweep_job(database)

    await sweep_lock.acquire()
    try:
        await job()
    finally:
        sweep_lock.release()

    assert await _notificaciones() == []
