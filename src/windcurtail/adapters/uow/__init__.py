# src/windcurtail/adapters/uow/__init__.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""
Unit of Work implementations (Adapters Layer)

Exports:
    - SqlAlchemyUnitOfWork: SQLAlchemy-backed UnitOfWork.
    - sqlalchemy_uow_factory: builds a zero-arg factory bound to a sessionmaker.
"""

from __future__ import annotations

from .sqlalchemy_uow import SqlAlchemyUnitOfWork, sqlalchemy_uow_factory

__all__ = ["SqlAlchemyUnitOfWork", "sqlalchemy_uow_factory"]
