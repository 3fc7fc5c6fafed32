"""Repository for the persisted credential token ({"authToken": "<jwt>"})."""
from typing import Dict, Optional

from .base import BaseRepository

TOKEN_KEY = 'authToken'


class TokenRepository(BaseRepository):
    """Keeps the bearer token between runs, the way a browser keeps it in
    local storage.

    Schema::

        { "authToken": "<header>.<payload>.<signature>" }

    Clearing the token deletes the file rather than leaving an empty one.
    """

    def __init__(self, file_path: str = '.gameboard_token.json') -> None:
        super().__init__(file_path)
        data = self._load({})
        self.data: Dict[str, str] = data if isinstance(data, dict) else {}

    def get(self) -> Optional[str]:
        """Return the stored token, or ``None``."""
        token = self.data.get(TOKEN_KEY)
        return token if isinstance(token, str) and token else None

    def set(self, token: str) -> None:
        self.data[TOKEN_KEY] = token
        self._save(self.data)

    def clear(self) -> None:
        self.data.pop(TOKEN_KEY, None)
        if self.data:
            self._save(self.data)
        else:
            self._remove()


class MemoryTokenRepository(TokenRepository):
    """Token store that never touches disk; one per browser session in the web GUI."""

    def __init__(self, token: Optional[str] = None) -> None:
        super().__init__('')
        if token:
            self.data[TOKEN_KEY] = token
