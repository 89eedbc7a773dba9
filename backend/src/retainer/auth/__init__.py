"""
Authentication helpers for the Retainer service.
"""

from .context import AuthContext, JWTManager

__all__ = ["AuthContext", "JWTManager"]
