"""
Order Transition Graph
======================

Fixed table of legal status changes for repair orders.

Main flow: RECIBIDO → EN_DIAGNOSTICO → EN_REPARACION → REPARADO → LISTO_ENTREGA → ENTREGADO
Spare parts: ... → ESPERA_REFACCIONES → EN_REPARACION → ...
Quote:       ... → COTIZACION_PENDIENTE → EN_REPARACION → ...

CANCELADO is reachable from every state except ENTREGADO, and a
cancelled order can only be reactivated back to RECIBIDO.
Backward edges exist for corrections made on the shop floor.
"""

from types import MappingProxyType
from typing import FrozenSet, Mapping

from servicio_tecnico.config import EstadoOrden
from servicio_tecnico.core import TransicionInvalidaException

E = EstadoOrden

TRANSICIONES_VALIDAS: Mapping[EstadoOrden, FrozenSet[EstadoOrden]] = MappingProxyType({
    E.RECIBIDO: frozenset({E.EN_DIAGNOSTICO, E.CANCELADO}),
    E.EN_DIAGNOSTICO: frozenset({
        E.ESPERA_REFACCIONES, E.COTIZACION_PENDIENTE, E.EN_REPARACION,
        E.RECIBIDO, E.CANCELADO,
    }),
    E.ESPERA_REFACCIONES: frozenset({E.EN_REPARACION, E.EN_DIAGNOSTICO, E.CANCELADO}),
    E.COTIZACION_PENDIENTE: frozenset({E.EN_REPARACION, E.EN_DIAGNOSTICO, E.CANCELADO}),
    E.EN_REPARACION: frozenset({
        E.REPARADO, E.ESPERA_REFACCIONES, E.EN_DIAGNOSTICO, E.CANCELADO,
    }),
    E.REPARADO: frozenset({E.LISTO_ENTREGA, E.EN_REPARACION, E.CANCELADO}),
    E.LISTO_ENTREGA: frozenset({E.ENTREGADO, E.REPARADO, E.CANCELADO}),
    E.ENTREGADO: frozenset(),  # final
    E.CANCELADO: frozenset({E.RECIBIDO}),  # reactivation
})


def es_transicion_valida(desde: EstadoOrden, hacia: EstadoOrden) -> bool:
    """
    Check whether an order may move from `desde` to `hacia`.

    A self-transition is always valid (it is not a real change).
    """
    if desde == hacia:
        return True
    return hacia in TRANSICIONES_VALIDAS.get(desde, frozenset())


def estados_siguientes(estado: EstadoOrden) -> FrozenSet[EstadoOrden]:
    """Successor states of `estado`, excluding the implicit self-transition."""
    return TRANSICIONES_VALIDAS[estado]


def asegurar_transicion(desde: EstadoOrden, hacia: EstadoOrden) -> None:
    """
    Raise TransicionInvalidaException when the move is not allowed.

    For callers that reject the request instead of branching on a bool.
    """
    if not es_transicion_valida(desde, hacia):
        raise TransicionInvalidaException(EstadoOrden(desde).value, EstadoOrden(hacia).value)
