"""
API Routes for carecycle.

- auth.py: Authentication endpoints
"""

from .auth import bp as auth_bp

__all__ = ["auth_bp"]
