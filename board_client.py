"""
board_client.py
===============
Thin wrapper around the GameBoard REST API consumed by the view controller.

Authentication
--------------
Login and registration return ``{"token": ..., "user": {...}}``.  Every
write call takes that token and sends it as::

    Authorization: Bearer <token>

The server is the only authority on the token; the client never checks
it beyond decoding a display name (see :func:`gameboard.decode_token_payload`).

Usage
-----
::

    from board_client import BoardClient

    client = BoardClient("http://localhost:8080")
    auth = client.login("alice", "secret")
    page = client.list_posts(page=1)
    # {"posts": [...], "pagination": {"page": 1, "pages": 3, ...}}
    client.create_comment(auth["token"], post_id=7, content="gg")
"""

from __future__ import annotations

import logging
from typing import Any, BinaryIO, Dict, List, Optional, Tuple

import requests

logger = logging.getLogger('gameboard.client')

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
_DEFAULT_TIMEOUT = 10  # seconds


class BoardError(Exception):
    """Base class for every error raised by :class:`BoardClient`."""


class BoardAPIError(BoardError):
    """Raised when the API answers with a non-success status.

    ``message`` is the server-provided ``error`` text, shown to the user
    verbatim.
    """

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"HTTP {status_code}: {message}")
        self.status_code = status_code
        self.message = message


class BoardNetworkError(BoardError):
    """Raised when the request never produced an HTTP response."""


class BoardClient:
    """Minimal GameBoard REST client sharing one :class:`requests.Session`."""

    def __init__(
        self,
        base_url: str,
        timeout: float = _DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        """
        Args:
            base_url: Scheme and host of the API, e.g. ``http://localhost:8080``.
            timeout:  HTTP request timeout in seconds.
            session:  Optional pre-built session (tests inject a mock).
        """
        if not base_url:
            raise ValueError("base_url must not be empty")
        self._base_url = base_url.rstrip('/')
        self._timeout = timeout
        self._session = session or requests.Session()

    def close(self) -> None:
        """Release the pooled connections of the underlying session."""
        self._session.close()

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    def login(self, username: str, password: str) -> Dict[str, Any]:
        """``POST /api/auth/login`` → ``{"token", "user"}``."""
        return self._request('POST', '/api/auth/login',
                             json={'username': username, 'password': password})

    def register(self, username: str, email: str, password: str) -> Dict[str, Any]:
        """``POST /api/auth/register``; the server may also return a token."""
        return self._request('POST', '/api/auth/register',
                             json={'username': username, 'email': email, 'password': password})

    # ------------------------------------------------------------------
    # Posts
    # ------------------------------------------------------------------

    def list_posts(self, page: int = 1, limit: int = 10) -> Dict[str, Any]:
        return self._request('GET', '/api/posts', params={'page': page, 'limit': limit})

    def search_posts(
        self,
        query: str = '',
        game_id: Optional[Any] = None,
        tag: str = '',
        page: int = 1,
        limit: int = 10,
    ) -> Dict[str, Any]:
        """``GET /api/posts/search``; empty filters are left out of the query."""
        params: Dict[str, Any] = {'page': page, 'limit': limit}
        if query:
            params['q'] = query
        if game_id:
            params['game_id'] = game_id
        if tag:
            params['tag'] = tag
        return self._request('GET', '/api/posts/search', params=params)

    def get_post(self, post_id: int) -> Dict[str, Any]:
        return self._request('GET', f'/api/posts/{post_id}')

    def create_post(
        self,
        token: str,
        title: str,
        content: str,
        game_id: Any,
        media: Optional[Tuple[str, BinaryIO, str]] = None,
    ) -> Dict[str, Any]:
        """``POST /api/posts`` as multipart form data.

        Args:
            media: Optional ``(filename, fileobj, mimetype)`` attachment sent
                   as the ``file`` part.
        """
        # Text fields ride as filename-less parts so the body is always multipart
        files: Dict[str, Any] = {
            'title': (None, title),
            'content': (None, content),
            'game_id': (None, str(game_id)),
        }
        if media:
            files['file'] = media
        return self._request('POST', '/api/posts', token=token, files=files)

    def delete_post(self, token: str, post_id: int) -> Dict[str, Any]:
        return self._request('DELETE', f'/api/posts/{post_id}', token=token)

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    def get_comments(self, post_id: int) -> List[Dict[str, Any]]:
        """Return the comment tree for *post_id* (top-level nodes with ``replies``)."""
        return self._request('GET', f'/api/comments/post/{post_id}') or []

    def create_comment(
        self,
        token: str,
        post_id: int,
        content: str,
        parent_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {'post_id': post_id, 'content': content}
        if parent_id is not None:
            body['parent_id'] = parent_id
        return self._request('POST', '/api/comments', token=token, json=body)

    def update_comment(self, token: str, comment_id: int, content: str) -> Dict[str, Any]:
        return self._request('PUT', f'/api/comments/{comment_id}', token=token,
                             json={'content': content})

    def delete_comment(self, token: str, comment_id: int) -> Dict[str, Any]:
        return self._request('DELETE', f'/api/comments/{comment_id}', token=token)

    # ------------------------------------------------------------------
    # Games and tags
    # ------------------------------------------------------------------

    def list_games(self, limit: int = 20) -> List[Dict[str, Any]]:
        """``GET /api/games``; unwraps ``{"games": [...]}`` when present."""
        data = self._request('GET', '/api/games', params={'limit': limit})
        return _unwrap(data, 'games')

    def create_game(
        self,
        token: str,
        title: str,
        cover_image: str = '',
        description: str = '',
        tags: str = '',
    ) -> Dict[str, Any]:
        """``POST /api/games``; *tags* is a comma-separated string."""
        return self._request('POST', '/api/games', token=token, json={
            'title': title,
            'cover_image': cover_image,
            'description': description,
            'tags': tags,
        })

    def get_tags(self) -> List[Dict[str, Any]]:
        return self._request('GET', '/api/games/tags') or []

    def games_by_tag(self, tag_slug: str) -> Dict[str, Any]:
        """``GET /api/games/tag/<slug>`` → ``{"tag", "games", "pagination"}``."""
        return self._request('GET', f'/api/games/tag/{tag_slug}')

    def search_rawg(self, query: str) -> List[Dict[str, Any]]:
        """Search the external metadata source; accepts a ``results`` wrapper or a bare list."""
        data = self._request('GET', '/api/games/rawg/search', params={'q': query})
        return _unwrap(data, 'results')

    def import_rawg(self, token: str, rawg_id: int) -> Dict[str, Any]:
        """Import an external game and return the local game record.

        A fresh import answers with the game itself; a repeated import
        answers ``{"message": "game already imported", "game": {...}}``.
        """
        data = self._request('POST', '/api/games/rawg/import', token=token,
                             json={'rawg_id': rawg_id})
        if isinstance(data, dict) and isinstance(data.get('game'), dict):
            return data['game']
        return data

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------

    def get_dashboard(self, token: str) -> Dict[str, Any]:
        return self._request('GET', '/api/dashboard', token=token)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        token: Optional[str] = None,
        **kwargs: Any,
    ) -> Any:
        """Perform a request and return the parsed JSON body.

        Raises:
            BoardAPIError:     Non-2xx status.
            BoardNetworkError: Transport failure (DNS, refused, timeout).
        """
        url = self._base_url + path
        headers = {}
        if token:
            headers['Authorization'] = f'Bearer {token}'
        try:
            resp = self._session.request(
                method,
                url,
                headers=headers,
                timeout=self._timeout,
                **kwargs,
            )
        except requests.RequestException as exc:
            raise BoardNetworkError(f"Network error calling {method} {path}: {exc}") from exc

        if not resp.ok:
            message = _error_message(resp)
            logger.info("%s %s rejected with %s: %s", method, path, resp.status_code, message)
            raise BoardAPIError(resp.status_code, message)

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            raise BoardAPIError(resp.status_code, f"Invalid JSON in response: {exc}") from exc


def _unwrap(data: Any, key: str) -> List[Dict[str, Any]]:
    if isinstance(data, dict):
        return data.get(key) or []
    return data or []


def _error_message(resp: requests.Response) -> str:
    """Extract the ``error`` field from a rejection body, falling back to its text."""
    try:
        body = resp.json()
    except ValueError:
        return resp.text or resp.reason or 'Unknown error'
    if isinstance(body, dict) and body.get('error'):
        return str(body['error'])
    return resp.text or 'Unknown error'
