"""Business logic for the posts feed, post detail and post creation."""
import mimetypes
import os
from typing import Any, BinaryIO, Dict, Optional, Tuple

import gameboard
from board_client import BoardClient
from ..state import FilterState, Session
from .validation import require


class MediaAttachment:
    """One optional file attached to a new post."""

    def __init__(self, filename: str, stream: BinaryIO,
                 content_type: Optional[str] = None) -> None:
        self.filename = os.path.basename(filename)
        self.stream = stream
        self.content_type = (content_type
                             or mimetypes.guess_type(self.filename)[0]
                             or 'application/octet-stream')

    @property
    def kind(self) -> str:
        """``'image'``, ``'video'`` or ``''`` for anything else."""
        major = self.content_type.split('/', 1)[0]
        return major if major in ('image', 'video') else ''

    def as_upload(self) -> Tuple[str, BinaryIO, str]:
        return (self.filename, self.stream, self.content_type)


class PostService:
    """Wraps the post endpoints and the validation in front of them."""

    def __init__(self, client: BoardClient, per_page: int = gameboard.POSTS_PER_PAGE) -> None:
        self._client = client
        self._per_page = per_page

    def fetch_page(self, filters: FilterState) -> Dict[str, Any]:
        """Return ``{posts, pagination}`` for the current page and filters.

        Uses the plain listing when no filter is active, the search endpoint
        otherwise.
        """
        if filters.is_active:
            data = self._client.search_posts(
                query=filters.search_query,
                game_id=filters.game_filter,
                tag=filters.tag_filter,
                page=filters.page,
                limit=self._per_page,
            )
        else:
            data = self._client.list_posts(page=filters.page, limit=self._per_page)
        data = data or {}
        return {'posts': data.get('posts') or [], 'pagination': data.get('pagination') or {}}

    def get(self, post_id: int) -> Dict[str, Any]:
        return self._client.get_post(post_id)

    def create(self, session: Session, title: str, content: str,
               game_id: Any, media: Optional[MediaAttachment] = None) -> Dict[str, Any]:
        """Validate and submit a new post.

        Raises:
            ValidationError: Not logged in, missing title/content, or no game.
        """
        require(session.is_authenticated, 'Please login to create posts')
        title = (title or '').strip()
        content = (content or '').strip()
        require(bool(title) and bool(content), 'Please fill in title and content')
        require(bool(game_id), 'Please select a game')
        return self._client.create_post(
            session.token, title, content, game_id,
            media=media.as_upload() if media else None,
        )

    def delete(self, session: Session, post_id: int) -> None:
        require(session.is_authenticated, 'Please login to delete posts')
        self._client.delete_post(session.token, post_id)

    def dashboard(self, session: Session) -> Dict[str, Any]:
        require(session.is_authenticated, 'Please login to view your dashboard')
        return self._client.get_dashboard(session.token) or {}
