import pytest

from servicio_tecnico.config import ESTADOS_ACTIVOS, ESTADOS_CERRADOS, ROLES_ALERTA, EstadoOrden
from servicio_tecnico.core import TransicionInvalidaException, ValidationException
from servicio_tecnico.ordenes.domain import (
    TRANSICIONES_VALIDAS,
    asegurar_transicion,
    es_transicion_valida,
    estados_siguientes,
)

E = EstadoOrden


def test_table_matches_workshop_flow():
    assert dict(TRANSICIONES_VALIDAS) == {
        E.RECIBIDO: {E.EN_DIAGNOSTICO, E.CANCELADO},
        E.EN_DIAGNOSTICO: {
            E.ESPERA_REFACCIONES, E.COTIZACION_PENDIENTE, E.EN_REPARACION,
            E.RECIBIDO, E.CANCELADO,
        },
        E.ESPERA_REFACCIONES: {E.EN_REPARACION, E.EN_DIAGNOSTICO, E.CANCELADO},
        E.COTIZACION_PENDIENTE: {E.EN_REPARACION, E.EN_DIAGNOSTICO, E.CANCELADO},
        E.EN_REPARACION: {E.REPARADO, E.ESPERA_REFACCIONES, E.EN_DIAGNOSTICO, E.CANCELADO},
        E.REPARADO: {E.LISTO_ENTREGA, E.EN_REPARACION, E.CANCELADO},
        E.LISTO_ENTREGA: {E.ENTREGADO, E.REPARADO, E.CANCELADO},
        E.ENTREGADO: set(),
        E.CANCELADO: {E.RECIBIDO},
    }


def test_every_state_has_an_entry():
    assert set(TRANSICIONES_VALIDAS) == set(EstadoOrden)


def test_table_is_read_only():
    with pytest.raises(TypeError):
        TRANSICIONES_VALIDAS[E.ENTREGADO] = frozenset({E.RECIBIDO})


def test_state_sets_are_read_only():
    assert ESTADOS_ACTIVOS == (
        E.RECIBIDO, E.EN_DIAGNOSTICO, E.ESPERA_REFACCIONES, E.COTIZACION_PENDIENTE,
        E.EN_REPARACION, E.REPARADO, E.LISTO_ENTREGA,
    )
    assert set(ESTADOS_ACTIVOS).isdisjoint(ESTADOS_CERRADOS)
    with pytest.raises(AttributeError):
        ESTADOS_ACTIVOS.append(E.ENTREGADO)
    with pytest.raises(AttributeError):
        ROLES_ALERTA.append(ROLES_ALERTA[0])


def test_targets_are_known_states():
    for destinos in TRANSICIONES_VALIDAS.values():
        assert destinos <= set(EstadoOrden)


@pytest.mark.parametrize("estado", [e for e in EstadoOrden if e not in (E.ENTREGADO, E.CANCELADO)])
def test_every_open_state_can_be_cancelled(estado):
    assert es_transicion_valida(estado, E.CANCELADO)


def test_delivered_is_terminal():
    for destino in EstadoOrden:
        if destino != E.ENTREGADO:
            assert not es_transicion_valida(E.ENTREGADO, destino)


def test_cancelled_only_reactivates_to_received():
    assert estados_siguientes(E.CANCELADO) == frozenset({E.RECIBIDO})


def test_self_transition_is_not_a_change():
    for estado in EstadoOrden:
        assert es_transicion_valida(estado, estado)


@pytest.mark.parametrize(
    "desde,hacia",
    [
        (E.RECIBIDO, E.ENTREGADO),
        (E.RECIBIDO, E.EN_REPARACION),
        (E.EN_DIAGNOSTICO, E.LISTO_ENTREGA),
        (E.REPARADO, E.ENTREGADO),
        (E.CANCELADO, E.EN_DIAGNOSTICO),
    ],
)
def test_skipping_steps_is_rejected(desde, hacia):
    assert not es_transicion_valida(desde, hacia)
    with pytest.raises(TransicionInvalidaException) as exc_info:
        asegurar_transicion(desde, hacia)

    assert isinstance(exc_info.value, ValidationException)
    assert exc_info.value.message == f"Transición no permitida: {desde.value} → {hacia.value}"
    assert exc_info.value.details == {"desde": desde.value, "hacia": hacia.value}
