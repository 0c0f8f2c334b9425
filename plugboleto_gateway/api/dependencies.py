"""Dependency injection for FastAPI endpoints"""

from fastapi import Request

from plugboleto_gateway.infrastructure.clients.boletos import BoletoClient


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_boleto_client() -> BoletoClient:
    """Provide PlugBoleto title client instance"""
    return BoletoClient()
