"""Database access: engine/session owner and ORM models."""

from .client import Database
from .models import Base, SwBudget, SwCategorySetting, SwReport, SwUserRule

__all__ = [
    "Base",
    "Database",
    "SwBudget",
    "SwCategorySetting",
    "SwReport",
    "SwUserRule",
]
