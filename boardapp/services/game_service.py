"""Business logic for the game catalog, tags and external import."""
import logging
from typing import Any, Dict, List

import gameboard
from board_client import BoardClient, BoardError
from ..state import Session
from .validation import require

logger = logging.getLogger('gameboard.games')


class GameService:
    """Local catalog, tag listing and the external metadata source."""

    def __init__(self, client: BoardClient) -> None:
        self._client = client

    def local_games(self, limit: int = gameboard.LOCAL_GAMES_LIMIT) -> List[Dict[str, Any]]:
        return self._client.list_games(limit=limit)

    def tags(self) -> List[Dict[str, Any]]:
        return self._client.get_tags()

    def games_with_tag(self, tag_slug: str) -> Dict[str, Any]:
        data = self._client.games_by_tag(tag_slug) or {}
        return {'tag': data.get('tag') or {}, 'games': data.get('games') or []}

    def search_external(self, query: str) -> List[Dict[str, Any]]:
        query = (query or '').strip()
        require(bool(query), 'Please enter a search term')
        return self._client.search_rawg(query)

    def import_external(self, session: Session, rawg_id: int) -> Dict[str, Any]:
        """Import an external game and return the local record (with its ``id``)."""
        require(session.is_authenticated, 'Please login to import games')
        return self._client.import_rawg(session.token, rawg_id)

    def create(self, session: Session, title: str, cover_image: str = '',
               description: str = '', tags: str = '') -> Dict[str, Any]:
        require(session.is_authenticated, 'Please login to add games')
        title = (title or '').strip()
        require(bool(title), 'Please enter a game title')
        return self._client.create_game(
            session.token, title,
            cover_image=(cover_image or '').strip(),
            description=(description or '').strip(),
            tags=(tags or '').strip(),
        )

    def suggestions(self, query: str) -> List[Dict[str, Any]]:
        """Suggestions for the post composer's game picker.

        Either source failing is logged and treated as empty so the other
        can still contribute.
        """
        query = (query or '').strip()
        if len(query) < gameboard.MIN_SUGGESTION_QUERY:
            return []
        try:
            local = self._client.list_games(limit=gameboard.SUGGESTION_LOCAL_LIMIT)
        except BoardError as exc:
            logger.warning("Local game lookup failed: %s", exc)
            local = []
        try:
            external = self._client.search_rawg(query)
        except BoardError as exc:
            logger.warning("External game lookup failed: %s", exc)
            external = []
        return gameboard.merge_game_suggestions(query, local, external)
