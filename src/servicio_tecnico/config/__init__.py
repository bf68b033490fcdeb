"""
Configuration Module
====================

Application settings and domain constants using Pydantic.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import List, Optional, Union

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="servicio-tecnico", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root logging level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/servicio_tecnico",
        description="PostgreSQL connection URL (async)"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)

    # ========== Semáforo / Alertas ==========
    semaforo_config_path: Path = Field(
        default=Path("semaforo_config.yaml"),
        description="Path to semáforo thresholds YAML file"
    )
    alertas_sweep_interval_seconds: int = Field(
        default=3600,
        description="Seconds between alert sweeps (0 disables the in-process trigger)",
        ge=0
    )
    alertas_sweep_timeout_seconds: float = Field(
        default=300.0,
        description="Overall deadline for a single alert sweep",
        gt=0
    )
    cron_secret: Optional[str] = Field(
        default=None,
        description="Bearer secret required by /cron/alertas in production"
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and check the logging level name."""
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"invalid log level: {v}")
        return level


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class EstadoOrden(str, Enum):
    """Repair order lifecycle states."""
    RECIBIDO = "RECIBIDO"
    EN_DIAGNOSTICO = "EN_DIAGNOSTICO"
    ESPERA_REFACCIONES = "ESPERA_REFACCIONES"
    COTIZACION_PENDIENTE = "COTIZACION_PENDIENTE"
    EN_REPARACION = "EN_REPARACION"
    REPARADO = "REPARADO"
    LISTO_ENTREGA = "LISTO_ENTREGA"
    ENTREGADO = "ENTREGADO"
    CANCELADO = "CANCELADO"


class SemaforoColor(str, Enum):
    """Traffic-light health colors."""
    ROJO = "ROJO"           # Listo para entrega > 5 días sin recoger
    NARANJA = "NARANJA"     # Esperando refacciones
    AMARILLO = "AMARILLO"   # Diagnóstico o cotización > 72 horas
    AZUL = "AZUL"           # Recibido hoy
    VERDE = "VERDE"         # Proceso normal


class TipoAlerta(str, Enum):
    """Semáforo colors wired to notification creation."""
    ROJO = "ROJO"
    AMARILLO = "AMARILLO"


class TipoNotificacion(str, Enum):
    """Notification record types."""
    ORDEN_CREADA = "ORDEN_CREADA"
    ESTADO_CAMBIADO = "ESTADO_CAMBIADO"
    ORDEN_CANCELADA = "ORDEN_CANCELADA"
    TECNICO_REASIGNADO = "TECNICO_REASIGNADO"
    PRIORIDAD_URGENTE = "PRIORIDAD_URGENTE"
    COTIZACION_MODIFICADA = "COTIZACION_MODIFICADA"
    ALERTA_ROJO = "ALERTA_ROJO"
    ALERTA_AMARILLO = "ALERTA_AMARILLO"
    STOCK_BAJO = "STOCK_BAJO"


class PrioridadNotif(str, Enum):
    """Notification priorities."""
    BAJA = "BAJA"
    NORMAL = "NORMAL"
    ALTA = "ALTA"
    URGENTE = "URGENTE"


class Role(str, Enum):
    """User roles."""
    SUPER_ADMIN = "SUPER_ADMIN"
    COORD_SERVICIO = "COORD_SERVICIO"
    TECNICO = "TECNICO"
    REFACCIONES = "REFACCIONES"


# ========== Lists for validation ==========

ESTADOS_CERRADOS = frozenset({EstadoOrden.ENTREGADO, EstadoOrden.CANCELADO})
ESTADOS_ACTIVOS = tuple(e for e in EstadoOrden if e not in ESTADOS_CERRADOS)

TIPO_NOTIFICACION_POR_ALERTA = {
    TipoAlerta.ROJO: TipoNotificacion.ALERTA_ROJO,
    TipoAlerta.AMARILLO: TipoNotificacion.ALERTA_AMARILLO,
}

ROLES_ALERTA = (Role.COORD_SERVICIO, Role.SUPER_ADMIN)


def tipo_notificacion(tipo: Union[TipoAlerta, TipoNotificacion]) -> TipoNotificacion:
    """Notification type stored for an alert kind or an explicit type."""
    if isinstance(tipo, TipoAlerta):
        return TIPO_NOTIFICACION_POR_ALERTA[tipo]
    return TipoNotificacion(tipo)
