from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Float,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


# ---------------------------
# Reports
# ---------------------------


class SwReport(Base):
    __tablename__ = "sw_reports"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    # Serialized Transaction models, in report order.
    transactions: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False)
    total_spent: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    status: Mapped[str] = mapped_column(String, nullable=False)
    progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    degraded_chunks: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


# ---------------------------
# Personalization
# ---------------------------


class SwUserRule(Base):
    __tablename__ = "sw_user_rules"
    __table_args__ = (UniqueConstraint("user_id", "merchant_pattern"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    merchant_pattern: Mapped[str] = mapped_column(Text, nullable=False)
    preferred_category: Mapped[str] = mapped_column(String, nullable=False)


class SwCategorySetting(Base):
    __tablename__ = "sw_category_settings"
    __table_args__ = (UniqueConstraint("user_id", "category"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    category: Mapped[str] = mapped_column(String, nullable=False)
    is_discretionary: Mapped[bool] = mapped_column(Boolean, nullable=False)


# ---------------------------
# Budgets
# ---------------------------


class SwBudget(Base):
    __tablename__ = "sw_budgets"
    __table_args__ = (UniqueConstraint("user_id", "period_label", "category"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    period_label: Mapped[str] = mapped_column(String, nullable=False)
    # "Total" holds the whole-period target.
    category: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[float] = mapped_column(Float, nullable=False)


__all__ = ["Base", "SwBudget", "SwCategorySetting", "SwReport", "SwUserRule"]
