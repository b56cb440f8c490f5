"""HTTP routes for the identity gateway."""

from .identity import create_identity_router

__all__ = ['create_identity_router']
