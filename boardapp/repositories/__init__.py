"""Persistence for the one thing the client keeps between runs: the token."""
from .token_repository import TokenRepository, MemoryTokenRepository

__all__ = [
    'TokenRepository',
    'MemoryTokenRepository',
]
