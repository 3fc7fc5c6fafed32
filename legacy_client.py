"""
legacy_client.py
================
Client for the older forum backend (the "Persona 5 Forum" server).

This backend is a separate, incompatible contract with its own client,
independent of :mod:`board_client`:

* routes live at the root (``/login``, ``/forums``, ``/forums/<id>/posts``,
  ``/posts/<id>/comments``, ``/search``) instead of under ``/api``;
* records use PascalCase keys (``ID``, ``Title``, ``CreatedAt``, ``User``);
* errors come back as plain text bodies, and comment creation answers
  ``201 Created``.

Records are parsed into the small classes below and are never converted
into the primary API's snake_case dicts.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger('gameboard.legacy')

_DEFAULT_TIMEOUT = 10  # seconds


class LegacyForumError(Exception):
    """Raised when the legacy server rejects a request or cannot be reached.

    ``message`` carries the raw response body so it can be shown verbatim.
    """

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

class LegacyUser:
    def __init__(self, id: int = 0, username: str = '', email: str = '') -> None:
        self.id = id
        self.username = username
        self.email = email

    @classmethod
    def from_json(cls, data: Optional[Dict[str, Any]]) -> 'LegacyUser':
        data = data or {}
        return cls(
            id=data.get('ID', 0),
            username=data.get('Username', ''),
            email=data.get('Email', ''),
        )


class LegacyForum:
    def __init__(self, id: int, game_id: int, name: str) -> None:
        self.id = id
        self.game_id = game_id
        self.name = name

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> 'LegacyForum':
        return cls(id=data.get('ID', 0), game_id=data.get('GameID', 0), name=data.get('Name', ''))


class LegacyPost:
    def __init__(self, id: int, forum_id: int, user_id: int, title: str,
                 content: str, created_at: str, user: LegacyUser) -> None:
        self.id = id
        self.forum_id = forum_id
        self.user_id = user_id
        self.title = title
        self.content = content
        self.created_at = created_at
        self.user = user

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> 'LegacyPost':
        return cls(
            id=data.get('ID', 0),
            forum_id=data.get('ForumID', 0),
            user_id=data.get('UserID', 0),
            title=data.get('Title', ''),
            content=data.get('Content', ''),
            created_at=data.get('CreatedAt', ''),
            user=LegacyUser.from_json(data.get('User')),
        )


class LegacyComment:
    def __init__(self, id: int, post_id: int, user_id: int, content: str,
                 created_at: str, user: LegacyUser) -> None:
        self.id = id
        self.post_id = post_id
        self.user_id = user_id
        self.content = content
        self.created_at = created_at
        self.user = user

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> 'LegacyComment':
        return cls(
            id=data.get('ID', 0),
            post_id=data.get('PostID', 0),
            user_id=data.get('UserID', 0),
            content=data.get('Content', ''),
            created_at=data.get('CreatedAt', ''),
            user=LegacyUser.from_json(data.get('User')),
        )


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class LegacyForumClient:
    """Client for the legacy forum server. Holds its own token and user."""

    def __init__(self, base_url: str = 'http://localhost:8082',
                 timeout: float = _DEFAULT_TIMEOUT) -> None:
        if not base_url:
            raise ValueError("base_url must not be empty")
        self._base_url = base_url.rstrip('/')
        self._timeout = timeout
        self.token: Optional[str] = None
        self.current_user: Optional[LegacyUser] = None

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'LegacyForumClient':
        """Build a client from a :func:`gameboard.load_config` dict."""
        return cls(config.get('legacy_url') or 'http://localhost:8082',
                   timeout=float(config.get('timeout') or _DEFAULT_TIMEOUT))

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def register(self, username: str, password: str, email: str) -> None:
        self._post('/register', {'username': username, 'password': password, 'email': email},
                   expected=(200,), context='Registration failed')

    def login(self, username: str, password: str) -> LegacyUser:
        """Log in and keep the returned token.

        The legacy server returns only ``{"token": ...}``; the user record is
        built from the submitted username.
        """
        resp = self._post('/login', {'username': username, 'password': password},
                          expected=(200,), context='Login failed')
        try:
            body = resp.json()
        except ValueError as exc:
            raise LegacyForumError(f"Login failed: invalid response: {exc}") from exc
        token = body.get('token') if isinstance(body, dict) else None
        if not token:
            raise LegacyForumError("Login failed: response carried no token")
        self.token = token
        self.current_user = LegacyUser(username=username)
        return self.current_user

    def logout(self) -> None:
        self.token = None
        self.current_user = None

    def list_forums(self) -> List[LegacyForum]:
        return [LegacyForum.from_json(f) for f in self._get_list('/forums')]

    def list_posts(self, forum_id: int, page: int = 1, limit: int = 10) -> List[LegacyPost]:
        data = self._get_list(f'/forums/{forum_id}/posts', key='posts',
                              params={'page': page, 'limit': limit})
        return [LegacyPost.from_json(p) for p in data]

    def create_post(self, forum_id: int, title: str, content: str) -> LegacyPost:
        resp = self._post(f'/forums/{forum_id}/posts', {'title': title, 'content': content},
                          expected=(200, 201), context='Failed to create post', auth=True)
        return LegacyPost.from_json(resp.json())

    def list_comments(self, post_id: int, page: int = 1, limit: int = 10) -> List[LegacyComment]:
        data = self._get_list(f'/posts/{post_id}/comments', key='comments',
                              params={'page': page, 'limit': limit})
        return [LegacyComment.from_json(c) for c in data]

    def add_comment(self, post_id: int, content: str) -> LegacyComment:
        resp = self._post(f'/posts/{post_id}/comments', {'content': content},
                          expected=(201,), context='Failed to add comment', auth=True)
        return LegacyComment.from_json(resp.json())

    def search(self, query: str) -> Dict[str, List[Any]]:
        """Search post titles/bodies and comment bodies.

        Returns:
            ``{'posts': [LegacyPost, ...], 'comments': [LegacyComment, ...]}``
        """
        if not query:
            raise LegacyForumError("query parameter required")
        data = self._get_json('/search', params={'q': query})
        return {
            'posts': [LegacyPost.from_json(p) for p in data.get('posts') or []],
            'comments': [LegacyComment.from_json(c)
                         for c in data.get('comments') or []],
        }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        try:
            resp = requests.get(self._base_url + path, params=params or {}, timeout=self._timeout)
        except requests.RequestException as exc:
            raise LegacyForumError(f"Network error calling {path}: {exc}") from exc
        if resp.status_code != 200:
            raise LegacyForumError(resp.text, resp.status_code)
        try:
            return resp.json()
        except ValueError as exc:
            raise LegacyForumError(f"Invalid JSON from {path}: {exc}", resp.status_code) from exc

    def _get_list(self, path: str, key: Optional[str] = None,
                  params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """GET a list; the server may send a bare array or wrap it under *key*."""
        data = self._get_json(path, params)
        if isinstance(data, dict) and key:
            data = data.get(key, [])
        return data if isinstance(data, list) else []

    def _post(self, path: str, body: Dict[str, Any], expected: tuple,
              context: str, auth: bool = False) -> requests.Response:
        headers = {'Content-Type': 'application/json'}
        if auth:
            if not self.token:
                raise LegacyForumError(f"{context}: not logged in")
            headers['Authorization'] = f'Bearer {self.token}'
        try:
            resp = requests.post(self._base_url + path, json=body,
                                 headers=headers, timeout=self._timeout)
        except requests.RequestException as exc:
            raise LegacyForumError(f"{context}: {exc}") from exc
        if resp.status_code not in expected:
            logger.info("%s %s -> %s", path, context, resp.status_code)
            raise LegacyForumError(f"{context}: {resp.text}", resp.status_code)
        return resp
