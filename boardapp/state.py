"""Client-held UI state owned by a single :class:`~boardapp.controller.ViewController`."""
from typing import Any, Dict, Optional


class Session:
    """Credential token plus the display user decoded from it."""

    def __init__(self, token: Optional[str] = None,
                 user: Optional[Dict[str, Any]] = None) -> None:
        self.token = token
        self.user = user

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    @property
    def user_id(self) -> Optional[Any]:
        return self.user.get('id') if self.user else None

    @property
    def username(self) -> str:
        return (self.user or {}).get('username') or ''

    def clear(self) -> None:
        self.token = None
        self.user = None


class FilterState:
    """Feed page number and active search filters."""

    def __init__(self) -> None:
        self.page = 1
        self.search_query = ''
        self.game_filter = ''
        self.tag_filter = ''

    @property
    def is_active(self) -> bool:
        return bool(self.search_query or self.game_filter or self.tag_filter)

    def reset(self) -> None:
        self.page = 1
        self.search_query = ''
        self.game_filter = ''
        self.tag_filter = ''


class SelectionState:
    """Which post, game and reply form are currently selected."""

    def __init__(self) -> None:
        self.selected_post_id: Optional[int] = None
        self.selected_game_id: Optional[int] = None
        self.replying_to_comment_id: Optional[int] = None


class AppState:
    """Everything a controller mutates, passed in explicitly at construction."""

    def __init__(self) -> None:
        self.session = Session()
        self.filters = FilterState()
        self.selection = SelectionState()
