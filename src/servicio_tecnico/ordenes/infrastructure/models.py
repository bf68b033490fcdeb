"""
Order Infrastructure Models
============================

SQLAlchemy ORM models for the order lifecycle module.

These are the database representations of our domain entities.
"""

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from servicio_tecnico.config import EstadoOrden, PrioridadNotif
from servicio_tecnico.infrastructure.database import Base


def _uuid() -> str:
    return str(uuid4())


def _now() -> datetime:
    return datetime.now(timezone.utc)


class UsuarioModel(Base):
    """Back-office user; role decides which alerts reach them."""
    __tablename__ = "usuarios"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    activo: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class ClienteModel(Base):
    """Client owning the equipment."""
    __tablename__ = "clientes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    nombre: Mapped[str] = mapped_column(String(255), nullable=False)
    empresa: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)


class OrdenModel(Base):
    """
    Database model for the repair order.

    Maps to the 'ordenes' table.
    """
    __tablename__ = "ordenes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    folio: Mapped[str] = mapped_column(String(50), unique=True, index=True, nullable=False)
    estado: Mapped[str] = mapped_column(
        String(50), nullable=False, index=True, default=EstadoOrden.RECIBIDO.value
    )

    # Equipment
    marca_equipo: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    modelo_equipo: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    # References
    cliente_id: Mapped[str] = mapped_column(ForeignKey("clientes.id"), nullable=False)
    tecnico_id: Mapped[Optional[str]] = mapped_column(ForeignKey("usuarios.id"), nullable=True)

    # Lifecycle timestamps
    fecha_recepcion: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)
    fecha_reparacion: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    fecha_entrega: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)

    cliente: Mapped[ClienteModel] = relationship(lazy="selectin")
    tecnico: Mapped[Optional[UsuarioModel]] = relationship(lazy="selectin")


class NotificacionModel(Base):
    """
    Database model for a notification addressed to one user.

    Maps to the 'notificaciones' table.
    """
    __tablename__ = "notificaciones"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    usuario_id: Mapped[str] = mapped_column(ForeignKey("usuarios.id"), nullable=False, index=True)
    orden_id: Mapped[Optional[str]] = mapped_column(ForeignKey("ordenes.id"), nullable=True)

    tipo: Mapped[str] = mapped_column(String(50), nullable=False)
    titulo: Mapped[str] = mapped_column(String(255), nullable=False)
    mensaje: Mapped[str] = mapped_column(Text, nullable=False)
    prioridad: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PrioridadNotif.NORMAL.value
    )

    # Acknowledgment
    leida: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    fecha_leida: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=_now)

    orden: Mapped[Optional[OrdenModel]] = relationship(lazy="selectin")

    __table_args__ = (
        # Dedup lookup of the alert sweep
        Index("ix_notificaciones_orden_tipo_leida", "orden_id", "tipo", "leida"),
        Index("ix_notificaciones_usuario_created", "usuario_id", "created_at"),
    )
