"""SQLAlchemy models for the synced catalog.

All tables are stored in the 'catalog' schema. Natural keys are the vendor
(Webflow) ids; surrogate ids are assigned on first insert.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pgvector.sqlalchemy import Vector
from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from catalog_service.config import get_settings

settings = get_settings()
EMBEDDING_DIM = settings.embedding_dimension

SCHEMA = "catalog"


class Base(DeclarativeBase):
    """Base class for all models."""

    __table_args__ = {"schema": SCHEMA}


# =============================================================================
# Products
# =============================================================================


class Product(Base):
    """A vendor product with its mapped fields and the raw field data."""

    __tablename__ = "products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    webflow_product_id: Mapped[str] = mapped_column(
        String(64), unique=True, nullable=False, index=True
    )
    slug: Mapped[Optional[str]] = mapped_column(String(255), index=True)
    name: Mapped[Optional[str]] = mapped_column(String(500))
    brand: Mapped[Optional[str]] = mapped_column(String(255))
    product_reference: Mapped[Optional[str]] = mapped_column(String(255))
    price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    currency: Mapped[Optional[str]] = mapped_column(String(8))
    description: Mapped[Optional[str]] = mapped_column(Text)
    description_complete: Mapped[Optional[str]] = mapped_column(Text)
    bullet_points: Mapped[Optional[str]] = mapped_column(Text)
    meta_description: Mapped[Optional[str]] = mapped_column(Text)
    altword: Mapped[Optional[str]] = mapped_column(Text)
    benefice_court: Mapped[Optional[str]] = mapped_column(Text)
    fiche_technique_url: Mapped[Optional[str]] = mapped_column(Text)
    url: Mapped[Optional[str]] = mapped_column(Text)

    # Raw vendor field data plus resolved option names
    payload: Mapped[dict[str, Any]] = mapped_column(JSONB, default=dict)

    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )


class ProductVariant(Base):
    """A purchasable SKU of a product."""

    __tablename__ = "product_variants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    webflow_sku_id: Mapped[str] = mapped_column(
        String(64), unique=True, nullable=False, index=True
    )
    product_id: Mapped[int] = mapped_column(
        ForeignKey(f"{SCHEMA}.products.id", ondelete="CASCADE"), nullable=False
    )
    webflow_product_id: Mapped[str] = mapped_column(String(64), nullable=False)
    sku: Mapped[Optional[str]] = mapped_column(String(255))
    name: Mapped[Optional[str]] = mapped_column(String(500))
    slug: Mapped[Optional[str]] = mapped_column(String(255))
    price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    compare_at_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2))
    currency: Mapped[Optional[str]] = mapped_column(String(8))

    # option slot id -> selected option id
    option_values: Mapped[Optional[dict[str, Any]]] = mapped_column(JSONB)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False)
    image_url: Mapped[Optional[str]] = mapped_column(Text)
    payload: Mapped[dict[str, Any]] = mapped_column(JSONB, default=dict)

    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_product_variants_product_id", "product_id"),
        Index("ix_product_variants_sku", "sku"),
        {"schema": SCHEMA},
    )


# =============================================================================
# Option Lookup
# =============================================================================


class OptionMapEntry(Base):
    """Display name of one option of a vendor option field."""

    __tablename__ = "option_map"

    field_slug: Mapped[str] = mapped_column(String(255), primary_key=True)
    option_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    option_name: Mapped[str] = mapped_column(String(500), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )


# =============================================================================
# RAG
# =============================================================================


class ProductChunk(Base):
    """An embedded slice of a product's text representation."""

    __tablename__ = "product_chunks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(
        ForeignKey(f"{SCHEMA}.products.id", ondelete="CASCADE"), nullable=False
    )
    chunk: Mapped[str] = mapped_column(Text, nullable=False)
    chunk_hash: Mapped[str] = mapped_column(String(40), nullable=False)
    meta: Mapped[dict[str, Any]] = mapped_column(JSONB, default=dict)
    embedding: Mapped[Any] = mapped_column(Vector(EMBEDDING_DIM), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("product_id", "chunk_hash", name="uq_product_chunks_hash"),
        {"schema": SCHEMA},
    )


class ChatMessage(Base):
    """Insert-only log of chat exchanges."""

    __tablename__ = "chat_messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    session_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), nullable=False
    )
