"""
The render target of a :class:`~boardapp.controller.ViewController`.

A ``Page`` stands in for the browser document: named regions holding
rendered markup, a hidden flag per region or section, form field values,
select options, the active tab and the queue of blocking alerts the user
still has to see.  The controller is handed a ``Page`` at construction and
never looks anything up by element id.
"""
from typing import Dict, Iterable, List, Set, Tuple

from markupsafe import Markup

# Regions whose content is replaced wholesale by the controller.
POSTS_FEED = 'posts_feed'
POSTS_PAGINATION = 'posts_pagination'
POST_DETAIL = 'post_detail'
COMMENTS_LIST = 'comments_list'
LOCAL_GAMES = 'local_games'
RAWG_RESULTS = 'rawg_results'
TAGS_CLOUD = 'tags_cloud'
TAG_GAMES = 'tag_games'
GAME_SUGGESTIONS = 'game_suggestions'
SELECTED_GAME = 'selected_game'
MEDIA_PREVIEW = 'media_preview'
DASHBOARD = 'dashboard'

# Sections that are only toggled.
AUTH_SECTION = 'auth_section'
USER_SECTION = 'user_section'
CREATE_TAB = 'create_tab'
CREATE_GAME_SECTION = 'create_game_section'
COMMENT_FORM = 'comment_form'
AUTH_MODAL = 'auth_modal'
LOGIN_FORM = 'login_form'
REGISTER_FORM = 'register_form'
POST_MODAL = 'post_modal'

TABS = ('feed', 'games', 'createPost', 'dashboard')

_INITIALLY_HIDDEN = (
    USER_SECTION, CREATE_TAB, CREATE_GAME_SECTION, COMMENT_FORM,
    AUTH_MODAL, REGISTER_FORM, POST_MODAL, POSTS_PAGINATION,
    GAME_SUGGESTIONS, SELECTED_GAME, MEDIA_PREVIEW,
)


class Page:
    """Mutable view state for one browser tab."""

    def __init__(self) -> None:
        self.regions: Dict[str, Markup] = {}
        self.hidden: Set[str] = set(_INITIALLY_HIDDEN)
        self.fields: Dict[str, str] = {}
        self.options: Dict[str, List[Tuple[str, str]]] = {}
        self.text: Dict[str, str] = {}
        self.alerts: List[str] = []
        self.active_tab = 'feed'

    # ------------------------------------------------------------------
    # Regions
    # ------------------------------------------------------------------

    def set_html(self, region: str, markup: str) -> None:
        """Replace *region* with *markup*; plain strings are escaped."""
        self.regions[region] = Markup(markup) if isinstance(markup, Markup) else Markup.escape(markup)

    def html(self, region: str) -> Markup:
        return self.regions.get(region, Markup(''))

    # ------------------------------------------------------------------
    # Visibility
    # ------------------------------------------------------------------

    def show(self, *names: str) -> None:
        self.hidden.difference_update(names)

    def hide(self, *names: str) -> None:
        self.hidden.update(names)

    def toggle(self, name: str, hidden: bool) -> None:
        if hidden:
            self.hide(name)
        else:
            self.show(name)

    def is_hidden(self, name: str) -> bool:
        return name in self.hidden

    # ------------------------------------------------------------------
    # Forms
    # ------------------------------------------------------------------

    def field(self, name: str, default: str = '') -> str:
        return self.fields.get(name, default)

    def set_field(self, name: str, value: str) -> None:
        self.fields[name] = value

    def update_fields(self, values: Dict[str, str]) -> None:
        self.fields.update(values)

    def reset_fields(self, names: Iterable[str]) -> None:
        for name in names:
            self.fields.pop(name, None)

    def set_options(self, name: str, options: List[Tuple[str, str]]) -> None:
        self.options[name] = options

    # ------------------------------------------------------------------
    # Alerts
    # ------------------------------------------------------------------

    def alert(self, message: str) -> None:
        self.alerts.append(message)

    def pop_alerts(self) -> List[str]:
        alerts, self.alerts = self.alerts, []
        return alerts
