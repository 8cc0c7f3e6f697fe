"""Dependency injection for FastAPI endpoints"""

from fastapi import Request
from lending_engine.infrastructure.clients.profile import ProfileClient
from lending_engine.infrastructure.clients.ledger import LedgerClient


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_profile_client() -> ProfileClient:
    """Provide member profile client instance"""
    return ProfileClient()


def get_ledger_client() -> LedgerClient:
    """Provide Ledger webhook client instance"""
    return LedgerClient()
