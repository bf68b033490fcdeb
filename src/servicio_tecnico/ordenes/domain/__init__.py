"""
Order Domain Layer
==================

Domain layer for the order lifecycle engine.

Contains:
- Entities: Orden, Notificacion, ResultadoBarrido
- Value Objects: SemaforoConfig, alert detail payloads
- Domain Services: SemaforoCalculator, transition graph, status-change notices

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from servicio_tecnico.ordenes.domain.avisos import AvisoEstado, avisos_cambio_estado
from servicio_tecnico.ordenes.domain.entities import Notificacion, Orden, ResultadoBarrido
from servicio_tecnico.ordenes.domain.transitions import (
    TRANSICIONES_VALIDAS,
    asegurar_transicion,
    es_transicion_valida,
    estados_siguientes,
)
from servicio_tecnico.ordenes.domain.value_objects import (
    DEFAULT_SEMAFORO_CONFIG,
    DetalleAlertaAmarilla,
    DetalleAlertaRoja,
    SemaforoCalculator,
    SemaforoConfig,
    calcular_semaforo,
)

__all__ = [
    # Entities
    "Orden",
    "Notificacion",
    "ResultadoBarrido",
    # Transition graph
    "TRANSICIONES_VALIDAS",
    "es_transicion_valida",
    "estados_siguientes",
    "asegurar_transicion",
    # Value Objects & Services
    "SemaforoConfig",
    "DEFAULT_SEMAFORO_CONFIG",
    "SemaforoCalculator",
    "calcular_semaforo",
    "DetalleAlertaRoja",
    "DetalleAlertaAmarilla",
    # Status-change notices
    "AvisoEstado",
    "avisos_cambio_estado",
]
