"""
SQLAlchemy ORM models for products and the scan ledger.
"""

from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, DateTime, Enum as SQLEnum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ..config.database import Base
from ..utils.identifiers import IDENTIFIER_LENGTH
from .enums import ProductStatus


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Product(Base):
    """A physical product protected by a bounded scan budget."""

    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("scan_count >= 0", name="ck_products_scan_count_non_negative"),
        CheckConstraint("scan_budget >= 1", name="ck_products_scan_budget_positive"),
        CheckConstraint("scan_count <= scan_budget", name="ck_products_scan_count_within_budget"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    identifier: Mapped[str] = mapped_column(String(IDENTIFIER_LENGTH), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    scan_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    scan_budget: Mapped[int] = mapped_column(Integer, nullable=False, default=2)
    status: Mapped[ProductStatus] = mapped_column(
        SQLEnum(
            ProductStatus,
            name="product_status",
            native_enum=False,
            length=16,
            values_callable=lambda enum: [member.value for member in enum]
        ),
        nullable=False,
        default=ProductStatus.ACTIVE
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    def __repr__(self):
        return f'<Product(identifier="{self.identifier}", scans={self.scan_count}/{self.scan_budget}, status={self.status.value})>'


class ScanAttempt(Base):
    """Append-only ledger row for a verification call against a known product."""

    __tablename__ = "scan_attempts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Weak reference by value: ledger rows outlive deleted products
    identifier: Mapped[str] = mapped_column(String(IDENTIFIER_LENGTH), index=True, nullable=False)
    source_address: Mapped[str] = mapped_column(String(255), nullable=False, default="unknown")
    scanned_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
