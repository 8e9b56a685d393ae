"""
Authentication Package

Reads the caller identity supplied by the external authentication layer.
"""

from .decorators import AuthenticatedUser, load_authenticated_user, require_authentication

__all__ = ['AuthenticatedUser', 'load_authenticated_user', 'require_authentication']
