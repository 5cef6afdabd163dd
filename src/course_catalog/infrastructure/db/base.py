"""Declarative base shared by catalog models."""

from __future__ import annotations

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Root of the catalog ORM metadata."""
