"""
BaseService -- common constructor and session contract for services.

Services receive a SQLAlchemy ``Session`` from the caller and persist with
``session.flush()``; they never commit or roll back.  The caller (a
``session_scope()`` block, a request handler or a test) owns the
transaction, so several service calls can form one atomic unit.
"""

from abc import ABC

from sqlalchemy.orm import Session

from linen_config.schema import EngineConfig


class BaseService(ABC):
    """
    Abstract base class for linen services.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
    """

    def __init__(self, session: Session, config: EngineConfig | None = None):
        self.session = session
        self.config = config or EngineConfig.with_defaults()
