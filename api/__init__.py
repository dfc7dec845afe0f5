"""
API Module
Token platform REST client
"""

from .client import PlatformClient, TokenCreateRequest, TokenCreateResult

__all__ = ['PlatformClient', 'TokenCreateRequest', 'TokenCreateResult']
