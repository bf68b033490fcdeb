"""
Order Value Objects
====================

Immutable value objects for the order lifecycle domain:
- SemaforoConfig: thresholds of the traffic-light classifier
- SemaforoCalculator: pure semáforo calculations
- DetalleAlertaRoja / DetalleAlertaAmarilla: typed payloads of sweep alerts
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from servicio_tecnico.config import EstadoOrden, SemaforoColor
from servicio_tecnico.ordenes.domain.entities import Orden


class SemaforoConfig(BaseModel):
    """
    Semáforo thresholds loaded from YAML.

    Defaults are the shop's standard SLA: 5 days to pick up a finished
    repair, 72 hours for diagnosis or quote, 24 hours for a fresh intake.
    """
    model_config = ConfigDict(frozen=True)

    listo_entrega_dias: float = Field(
        default=5,
        gt=0,
        description="Days a finished order may wait for pickup before ROJO"
    )
    diagnostico_horas: float = Field(
        default=72,
        gt=0,
        description="Hours in diagnosis/quote before AMARILLO"
    )
    recibido_horas: float = Field(
        default=24,
        gt=0,
        description="Hours a received order is considered new (AZUL)"
    )

    @property
    def limite_listo_entrega(self) -> timedelta:
        return timedelta(days=self.listo_entrega_dias)

    @property
    def limite_diagnostico(self) -> timedelta:
        return timedelta(hours=self.diagnostico_horas)

    @property
    def limite_recibido(self) -> timedelta:
        return timedelta(hours=self.recibido_horas)


DEFAULT_SEMAFORO_CONFIG = SemaforoConfig()


def _as_utc(value: datetime) -> datetime:
    # Naive timestamps from the store are UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SemaforoCalculator:
    """
    Pure functions for semáforo calculations.

    Stateless; all time arithmetic of the classifier lives here.
    """

    @staticmethod
    def tiempo_transcurrido(desde: datetime, ahora: datetime) -> timedelta:
        """Elapsed time between two instants, tolerating naive datetimes."""
        return _as_utc(ahora) - _as_utc(desde)

    @staticmethod
    def fecha_listo(orden: Orden) -> Tuple[datetime, bool]:
        """
        Instant the order became ready for pickup.

        Returns:
            Tuple of (instant, used_fallback). LISTO_ENTREGA orders normally
            carry fecha_reparacion; fecha_recepcion is only a fallback.
        """
        if orden.fecha_reparacion is not None:
            return orden.fecha_reparacion, False
        return orden.fecha_recepcion, True

    @staticmethod
    def calcular(
        orden: Orden,
        ahora: datetime,
        config: Optional[SemaforoConfig] = None
    ) -> SemaforoColor:
        """
        Classify an order's health.

        Precedence (first match wins): ROJO, NARANJA, AMARILLO, AZUL, VERDE.
        Thresholds compare with a strict ">", so an order exactly at the
        limit is not yet breached.
        """
        config = config or DEFAULT_SEMAFORO_CONFIG
        desde_recepcion = SemaforoCalculator.tiempo_transcurrido(orden.fecha_recepcion, ahora)

        if orden.estado == EstadoOrden.LISTO_ENTREGA:
            fecha_listo, _ = SemaforoCalculator.fecha_listo(orden)
            sin_recoger = SemaforoCalculator.tiempo_transcurrido(fecha_listo, ahora)
            if sin_recoger > config.limite_listo_entrega:
                return SemaforoColor.ROJO

        if orden.estado == EstadoOrden.ESPERA_REFACCIONES:
            return SemaforoColor.NARANJA

        if (
            orden.estado in (EstadoOrden.EN_DIAGNOSTICO, EstadoOrden.COTIZACION_PENDIENTE)
            and desde_recepcion > config.limite_diagnostico
        ):
            return SemaforoColor.AMARILLO

        if orden.estado == EstadoOrden.RECIBIDO and desde_recepcion < config.limite_recibido:
            return SemaforoColor.AZUL

        return SemaforoColor.VERDE

    @staticmethod
    def dias_completos(delta: timedelta) -> int:
        """Whole days in a duration (floor)."""
        return delta // timedelta(days=1)

    @staticmethod
    def horas_completas(delta: timedelta) -> int:
        """Whole hours in a duration (floor)."""
        return delta // timedelta(hours=1)


def calcular_semaforo(
    orden: Orden,
    ahora: datetime,
    config: Optional[SemaforoConfig] = None
) -> SemaforoColor:
    """Semáforo color of `orden` at instant `ahora`."""
    return SemaforoCalculator.calcular(orden, ahora, config)


@dataclass(frozen=True)
class DetalleAlertaRoja:
    """Payload of a red alert: finished equipment not picked up."""
    folio: str
    equipo: str
    cliente: str
    dias_sin_recoger: int

    @property
    def titulo(self) -> str:
        return f"🔴 Equipo sin recoger: {self.folio}"

    @property
    def mensaje(self) -> str:
        return f"{self.equipo} lleva {self.dias_sin_recoger} días listo. Cliente: {self.cliente}"


@dataclass(frozen=True)
class DetalleAlertaAmarilla:
    """Payload of a yellow alert: diagnosis or quote stalled."""
    folio: str
    equipo: str
    horas_sin_avance: int
    tecnico: Optional[str] = None

    @property
    def titulo(self) -> str:
        return f"🟡 Diagnóstico atrasado: {self.folio}"

    @property
    def mensaje(self) -> str:
        return (
            f"{self.equipo} lleva {self.horas_sin_avance}h sin avance. "
            f"Técnico: {self.tecnico or 'Sin asignar'}"
        )

    @property
    def mensaje_tecnico(self) -> str:
        """Shorter body for the assigned technician."""
        return f"{self.equipo} lleva {self.horas_sin_avance}h sin avance"
