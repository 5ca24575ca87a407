from __future__ import annotations

import uuid

from sqlalchemy import BigInteger, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import JSON

ORDERS = "orders"
EXCHANGE_RATES = "exchangeRates"
PRODUCTS = "products"


def _json_type():
    return JSON().with_variant(JSONB(astext_type=Text()), "postgresql")


def new_document_id() -> str:
    return uuid.uuid4().hex


class Base(DeclarativeBase):
    pass


class DocumentModel(Base):
    __tablename__ = "documents"
    __table_args__ = (
        UniqueConstraint("collection", "doc_id", name="uq_documents_collection_doc_id"),
    )

    seq_id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    collection: Mapped[str] = mapped_column(String(64), nullable=False)
    doc_id: Mapped[str] = mapped_column(String(64), nullable=False, default=new_document_id)
    data: Mapped[dict] = mapped_column(_json_type(), nullable=False, default=dict)
    written_at: Mapped[int] = mapped_column(BigInteger, nullable=False)


Index("ix_documents_collection", DocumentModel.collection)
