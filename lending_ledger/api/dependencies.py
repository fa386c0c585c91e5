"""Dependency injection for FastAPI endpoints"""

from fastapi import Depends, Request
from sqlalchemy.orm import Session
from lending_ledger.infrastructure.database.session import get_db
from lending_ledger.services.ledger_service import LedgerService


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_ledger_service(db: Session = Depends(get_db)) -> LedgerService:
    """Provide a ledger service bound to the request's session"""
    return LedgerService(db)
