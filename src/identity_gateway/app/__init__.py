"""Identity gateway FastAPI application."""

from .main import create_app
from .settings import GatewaySettings

__all__ = ["create_app", "GatewaySettings"]
