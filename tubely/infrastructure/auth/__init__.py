"""
Access token handling (HS256 JWT via python-jose).
"""

from .tokens import AuthError, TokenValidator, make_jwt, validate_jwt

__all__ = ["AuthError", "TokenValidator", "make_jwt", "validate_jwt"]
