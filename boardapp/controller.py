"""
View controller: turns user intents into API calls and API responses into
rendered page regions.

The controller owns nothing global.  It is built with the
:class:`~boardapp.page.Page` it renders into, the
:class:`~boardapp.state.AppState` it mutates, one service per domain and a
``confirm`` callable that asks the user to approve destructive actions.

Failure handling follows one pattern (see :meth:`ViewController._attempt`):

* ``ValidationError``   → alert with the validation message, no request sent;
* ``BoardAPIError``     → alert ``"<action failed>: <server message>"``;
* ``BoardNetworkError`` → alert ``"<action failed>"``, full error logged.

Nothing is retried; the user re-triggers the action.
"""
import logging
import threading
from typing import Any, Callable, Dict, List, Optional, Tuple

import gameboard
from board_client import BoardAPIError, BoardError, BoardNetworkError
from . import page as regions
from . import render
from .debounce import Debouncer, RequestSequencer
from .page import Page
from .services import (
    AuthService, CommentService, GameService, MediaAttachment, PostService,
    ValidationError,
)
from .services.comment_service import count_comments
from .state import AppState

logger = logging.getLogger('gameboard.controller')

ConfirmFn = Callable[[str], bool]

_POST_FORM_FIELDS = ('post_title', 'post_content', 'post_game_search', 'selected_game_id')
_GAME_FORM_FIELDS = ('game_title', 'game_cover', 'game_description', 'game_tags')


def _deny(_message: str) -> bool:
    return False


def _as_id(value: Any) -> Optional[int]:
    """Positive integer id from a form value, or ``None`` when blank."""
    if value in (None, ''):
        return None
    try:
        number = int(value)
    except (TypeError, ValueError):
        number = 0
    if number <= 0:
        raise ValidationError('Invalid game selection')
    return number


class ViewController:
    """One instance per open client; see module docstring."""

    def __init__(
        self,
        page: Page,
        state: AppState,
        auth: AuthService,
        posts: PostService,
        comments: CommentService,
        games: GameService,
        confirm: Optional[ConfirmFn] = None,
        debounce_wait: float = gameboard.DEBOUNCE_SECONDS,
    ) -> None:
        self.page = page
        self.state = state
        self._auth = auth
        self._posts = posts
        self._comments_service = comments
        self._games = games
        self._confirm = confirm or _deny
        self._sequencer = RequestSequencer()
        self._suggest = Debouncer(self.search_games_for_post, debounce_wait)
        self._comment_tree: List[Dict[str, Any]] = []
        # Held by hosts around each handler; the debounce thread takes it
        # before touching the page.
        self.lock = threading.RLock()

    # ------------------------------------------------------------------
    # Startup and session views
    # ------------------------------------------------------------------

    def initialize(self, now: Optional[float] = None) -> None:
        """Restore the stored session, then load posts, tags and games."""
        if self._auth.restore(self.state.session, now=now):
            self.show_authenticated_view()
        else:
            self.show_unauthenticated_view()
        self.load_posts()
        self.load_tags()
        self.load_local_games()

    def show_authenticated_view(self) -> None:
        self.page.hide(regions.AUTH_SECTION)
        self.page.show(regions.USER_SECTION, regions.CREATE_TAB,
                       regions.CREATE_GAME_SECTION, regions.COMMENT_FORM)
        self.page.text['user_display'] = f"Welcome, {self.state.session.username}!"

    def show_unauthenticated_view(self) -> None:
        self.page.show(regions.AUTH_SECTION)
        self.page.hide(regions.USER_SECTION, regions.CREATE_TAB,
                       regions.CREATE_GAME_SECTION, regions.COMMENT_FORM)
        self.page.text.pop('user_display', None)

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def switch_tab(self, tab_name: str, reload: bool = True) -> None:
        """Activate *tab_name* and re-fetch its data; nothing is cached."""
        if tab_name not in regions.TABS:
            logger.warning("Ignoring unknown tab %r", tab_name)
            return
        logger.debug("Switching to tab: %s", tab_name)
        self.page.active_tab = tab_name
        if not reload:
            return
        if tab_name == 'games':
            self.load_local_games()
        elif tab_name == 'feed':
            self.load_posts(self.state.filters.page)
        elif tab_name == 'dashboard':
            self.load_dashboard()

    # ------------------------------------------------------------------
    # Auth modal
    # ------------------------------------------------------------------

    def show_auth_modal(self, form: str) -> None:
        self.page.show(regions.AUTH_MODAL)
        self.toggle_auth_form(form)

    def hide_auth_modal(self) -> None:
        self.page.hide(regions.AUTH_MODAL)

    def toggle_auth_form(self, form: str) -> None:
        self.page.toggle(regions.LOGIN_FORM, form != 'login')
        self.page.toggle(regions.REGISTER_FORM, form != 'register')

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def login(self, username: str, password: str) -> bool:
        ok, _ = self._attempt('Login failed', self._auth.login,
                              self.state.session, username, password)
        if not ok:
            return False
        self.hide_auth_modal()
        self.show_authenticated_view()
        self.load_posts()
        return True

    def register(self, username: str, email: str, password: str,
                 confirm_password: str) -> bool:
        ok, signed_in = self._attempt('Registration failed', self._auth.register,
                                      self.state.session, username, email,
                                      password, confirm_password)
        if not ok:
            return False
        if signed_in:
            self.hide_auth_modal()
            self.show_authenticated_view()
            self.load_posts()
        else:
            self.page.alert('Registration successful! Please login.')
            self.toggle_auth_form('login')
        return True

    def logout(self) -> None:
        self._auth.logout(self.state.session)
        self.show_unauthenticated_view()
        self.load_posts()

    # ------------------------------------------------------------------
    # Feed, search and pagination
    # ------------------------------------------------------------------

    def load_posts(self, page: int = 1) -> None:
        """Render *page* of the feed, honouring any active filters."""
        filters = self.state.filters
        filters.page = max(1, int(page))
        searching = filters.is_active
        self.page.set_html(regions.POSTS_FEED,
                           render.loading('Searching...' if searching else 'Loading posts...'))
        ticket = self._sequencer.next('feed')
        try:
            data = self._posts.fetch_page(filters)
        except BoardError as exc:
            if not self._sequencer.is_current('feed', ticket):
                return
            logger.error("Posts load error: %s", exc, exc_info=isinstance(exc, BoardNetworkError))
            self.page.set_html(regions.POSTS_FEED, render.empty_state(
                'Search failed' if searching else 'Failed to load posts'))
            self.page.hide(regions.POSTS_PAGINATION)
            return
        if not self._sequencer.is_current('feed', ticket):
            logger.debug("Discarding superseded feed response (ticket %d)", ticket)
            return
        self.page.set_html(regions.POSTS_FEED, render.posts_feed(data['posts']))
        self._render_pagination(data['pagination'])

    def search_posts(self, query: str = '', game_id: Any = '', tag: str = '') -> None:
        filters = self.state.filters
        filters.search_query = (query or '').strip()
        filters.game_filter = str(game_id or '')
        filters.tag_filter = tag or ''
        self.page.update_fields({
            'post_search_query': filters.search_query,
            'game_filter': filters.game_filter,
            'tag_filter': filters.tag_filter,
        })
        self.load_posts(1)

    def go_to_page(self, page: int) -> None:
        self.load_posts(page)

    def clear_search(self) -> None:
        self.state.filters.reset()
        self.page.reset_fields(('post_search_query', 'game_filter', 'tag_filter'))
        self.load_posts(1)

    def _render_pagination(self, pagination: Dict[str, Any]) -> None:
        pages = int(pagination.get('pages') or 0)
        current = int(pagination.get('page') or self.state.filters.page)
        window = gameboard.pagination_window(current, pages)
        if not window['visible']:
            self.page.hide(regions.POSTS_PAGINATION)
            self.page.set_html(regions.POSTS_PAGINATION, '')
            return
        self.page.show(regions.POSTS_PAGINATION)
        self.page.set_html(regions.POSTS_PAGINATION, render.pagination(window))

    # ------------------------------------------------------------------
    # Post detail and comments
    # ------------------------------------------------------------------

    def show_post_detail(self, post_id: int) -> None:
        selection = self.state.selection
        selection.selected_post_id = post_id
        selection.replying_to_comment_id = None
        self._comment_tree = []
        self.page.show(regions.POST_MODAL)
        self.page.set_html(regions.POST_DETAIL, render.loading('Loading...'))
        self.page.set_html(regions.COMMENTS_LIST, '')
        try:
            post = self._posts.get(post_id)
        except BoardError as exc:
            logger.error("Post detail error: %s", exc)
            self.page.set_html(regions.POST_DETAIL, render.empty_state('Failed to load post'))
            return
        self.page.set_html(regions.POST_DETAIL,
                           render.post_detail(post, self.state.session.user))
        self.load_comments(post_id)

    def hide_post_modal(self) -> None:
        self.page.hide(regions.POST_MODAL)
        self.state.selection.selected_post_id = None
        self.state.selection.replying_to_comment_id = None
        self._comment_tree = []

    def load_comments(self, post_id: int) -> None:
        try:
            self._comment_tree = self._comments_service.thread(post_id)
        except BoardError as exc:
            logger.error("Comments load error: %s", exc)
            self.page.set_html(regions.COMMENTS_LIST, render.empty_state('Failed to load comments'))
            return
        self._render_comments()

    def _render_comments(self) -> None:
        tree = self._comment_tree
        self.page.set_html(regions.COMMENTS_LIST, render.comments(
            tree,
            current_user=self.state.session.user if self.state.session.is_authenticated else None,
            open_reply_id=self.state.selection.replying_to_comment_id,
            total=count_comments(tree) if tree else None,
        ))

    def show_reply_form(self, comment_id: int) -> None:
        """Open the reply form under *comment_id*, closing any other one."""
        self.state.selection.replying_to_comment_id = comment_id
        self._render_comments()

    def hide_reply_form(self, comment_id: int) -> None:
        if self.state.selection.replying_to_comment_id == comment_id:
            self.state.selection.replying_to_comment_id = None
        self._render_comments()

    def submit_comment(self, content: str) -> bool:
        post_id = self.state.selection.selected_post_id
        self.page.set_field('comment_content', content or '')
        ok, _ = self._attempt('Failed to post comment', self._comments_service.add,
                              self.state.session, post_id, content)
        if not ok:
            return False
        self.page.reset_fields(('comment_content',))
        self.load_comments(post_id)
        return True

    def submit_reply(self, parent_id: int, content: str) -> bool:
        post_id = self.state.selection.selected_post_id
        ok, _ = self._attempt('Failed to post reply', self._comments_service.add,
                              self.state.session, post_id, content, parent_id)
        if not ok:
            return False
        self.state.selection.replying_to_comment_id = None
        self.load_comments(post_id)
        return True

    def edit_comment(self, comment_id: int, content: str) -> bool:
        ok, _ = self._attempt('Failed to edit comment', self._comments_service.edit,
                              self.state.session, comment_id, content)
        if ok and self.state.selection.selected_post_id:
            self.load_comments(self.state.selection.selected_post_id)
        return ok

    def delete_comment(self, comment_id: int) -> bool:
        if not self._confirm('Are you sure you want to delete this comment?'):
            return False
        ok, _ = self._attempt('Failed to delete comment', self._comments_service.delete,
                              self.state.session, comment_id)
        if ok and self.state.selection.selected_post_id:
            self.load_comments(self.state.selection.selected_post_id)
        return ok

    def delete_post(self, post_id: int) -> bool:
        if not self._confirm('Are you sure you want to delete this post?'):
            return False
        ok, _ = self._attempt('Failed to delete post', self._posts.delete,
                              self.state.session, post_id)
        if not ok:
            return False
        self.hide_post_modal()
        self.load_posts(self.state.filters.page)
        return True

    # ------------------------------------------------------------------
    # Game catalog, tags and external import
    # ------------------------------------------------------------------

    def load_local_games(self) -> None:
        self.page.set_html(regions.LOCAL_GAMES, render.loading('Loading games...'))
        try:
            games = self._games.local_games()
        except BoardAPIError as exc:
            logger.warning("Local games rejected: %s", exc)
            self.page.set_html(regions.LOCAL_GAMES, render.empty_state('No games found'))
            return
        except BoardNetworkError as exc:
            logger.error("Local games error: %s", exc, exc_info=True)
            self.page.set_html(regions.LOCAL_GAMES, render.empty_state('Failed to load games'))
            return
        self.page.set_html(regions.LOCAL_GAMES, render.local_games(games))
        self.page.set_options('game_filter', [(str(g.get('id')), g.get('title') or '')
                                              for g in games])

    def load_tags(self) -> None:
        try:
            tags = self._games.tags()
        except BoardError as exc:
            logger.error("Tags load error: %s", exc)
            return
        self.page.set_html(regions.TAGS_CLOUD, render.tags_cloud(tags))
        self.page.set_options('tag_filter', [(t.get('slug') or '', t.get('name') or '')
                                             for t in tags])

    def filter_by_game(self, game_id: Any) -> None:
        self.switch_tab('feed', reload=False)
        self.search_posts(self.state.filters.search_query, game_id, self.state.filters.tag_filter)

    def filter_by_tag(self, tag_slug: str) -> None:
        self.switch_tab('feed', reload=False)
        self.search_posts(self.state.filters.search_query, self.state.filters.game_filter, tag_slug)

    def browse_tag(self, tag_slug: str) -> None:
        """Show the games carrying *tag_slug* on the games tab."""
        self.switch_tab('games', reload=False)
        try:
            data = self._games.games_with_tag(tag_slug)
        except BoardAPIError as exc:
            self.page.set_html(regions.TAG_GAMES, render.empty_state(exc.message))
            return
        except BoardNetworkError as exc:
            logger.error("Tag browse error: %s", exc, exc_info=True)
            self.page.set_html(regions.TAG_GAMES, render.empty_state('Failed to load games'))
            return
        self.page.set_html(regions.TAG_GAMES, render.tag_games(data['tag'], data['games']))

    def search_rawg_games(self, query: str) -> None:
        query = (query or '').strip()
        self.page.set_field('rawg_search_query', query)
        if not query:
            self.page.alert('Please enter a search term')
            return
        self.page.set_html(regions.RAWG_RESULTS, render.loading('Searching RAWG database...'))
        ticket = self._sequencer.next('rawg')
        try:
            games = self._games.search_external(query)
        except BoardAPIError as exc:
            if self._sequencer.is_current('rawg', ticket):
                self.page.set_html(regions.RAWG_RESULTS,
                                   render.empty_state(f'Search failed: {exc.message or "Unknown error"}'))
            return
        except BoardNetworkError as exc:
            logger.error("RAWG search error: %s", exc, exc_info=True)
            if self._sequencer.is_current('rawg', ticket):
                self.page.set_html(regions.RAWG_RESULTS,
                                   render.empty_state('Search failed - check the log for details'))
            return
        if not self._sequencer.is_current('rawg', ticket):
            return
        self.page.set_html(regions.RAWG_RESULTS,
                           render.rawg_results(games, self.state.session.is_authenticated))

    def import_rawg_game(self, rawg_id: int) -> bool:
        ok, _ = self._attempt('Failed to import game', self._games.import_external,
                              self.state.session, rawg_id)
        if not ok:
            return False
        self.page.alert('Game imported successfully!')
        self.load_local_games()
        return True

    def create_local_game(self, title: str, cover_image: str = '',
                          description: str = '', tags: str = '') -> bool:
        self.page.update_fields({
            'game_title': title or '',
            'game_cover': cover_image or '',
            'game_description': description or '',
            'game_tags': tags or '',
        })
        ok, _ = self._attempt('Failed to add game', self._games.create,
                              self.state.session, title, cover_image, description, tags)
        if not ok:
            return False
        self.page.alert('Game added successfully!')
        self.page.reset_fields(_GAME_FORM_FIELDS)
        self.load_local_games()
        self.load_tags()
        return True

    # ------------------------------------------------------------------
    # Post composer
    # ------------------------------------------------------------------

    def game_search_input(self, query: str) -> None:
        """Keystroke in the composer's game search box (debounced)."""
        self.page.set_field('post_game_search', query or '')
        if len((query or '').strip()) < gameboard.MIN_SUGGESTION_QUERY:
            self._suggest.cancel()
            self._sequencer.next('suggest')
            self.page.hide(regions.GAME_SUGGESTIONS)
            return
        self._suggest(query)

    def flush_game_search(self) -> None:
        """Run a pending debounced search immediately."""
        self._suggest.flush()

    def cancel_game_search(self) -> None:
        self._suggest.cancel()

    def search_games_for_post(self, query: str) -> None:
        """Fetch and show suggestions; superseded responses are dropped."""
        query = (query or '').strip()
        ticket = self._sequencer.next('suggest')
        if len(query) < gameboard.MIN_SUGGESTION_QUERY:
            with self.lock:
                self.page.hide(regions.GAME_SUGGESTIONS)
            return
        suggestions = self._games.suggestions(query)
        with self.lock:
            if not self._sequencer.is_current('suggest', ticket):
                logger.debug("Discarding superseded suggestions for %r", query)
                return
            if not suggestions:
                self.page.hide(regions.GAME_SUGGESTIONS)
                return
            self.page.set_html(regions.GAME_SUGGESTIONS, render.game_suggestions(suggestions))
            self.page.show(regions.GAME_SUGGESTIONS)

    def select_game_for_post(self, game_id: Optional[Any], rawg_id: Optional[Any],
                             title: str, cover_image: str = '') -> bool:
        """Pick a suggestion; external games are imported first to get a local id."""
        self.page.hide(regions.GAME_SUGGESTIONS)
        self.page.set_field('post_game_search', '')
        try:
            local_id, external_id = _as_id(game_id), _as_id(rawg_id)
        except ValidationError as exc:
            logger.warning("Rejected game selection %r / %r", game_id, rawg_id)
            self.page.alert(str(exc))
            return False
        if local_id is None and external_id is not None:
            ok, game = self._attempt('Failed to import game', self._games.import_external,
                                     self.state.session, external_id)
            if not ok:
                return False
            try:
                local_id = _as_id((game or {}).get('id'))
            except ValidationError:
                local_id = None
            if local_id is None:
                self.page.alert('Failed to import game')
                return False
        if local_id is None:
            return False
        self.state.selection.selected_game_id = local_id
        self.page.set_field('selected_game_id', str(local_id))
        self.page.set_html(regions.SELECTED_GAME, render.selected_game(title, cover_image))
        self.page.show(regions.SELECTED_GAME)
        return True

    def clear_selected_game(self) -> None:
        self.state.selection.selected_game_id = None
        self.page.reset_fields(('selected_game_id',))
        self.page.hide(regions.SELECTED_GAME)

    def preview_media(self, filename: str = '', content_type: str = '', url: str = '') -> None:
        if not filename:
            self.page.hide(regions.MEDIA_PREVIEW)
            return
        self.page.set_html(regions.MEDIA_PREVIEW, render.media_preview(url, content_type))
        self.page.show(regions.MEDIA_PREVIEW)

    def create_post(self, title: str, content: str,
                    media: Optional[MediaAttachment] = None) -> bool:
        self.page.update_fields({'post_title': title or '', 'post_content': content or ''})
        ok, _ = self._attempt('Failed to create post', self._posts.create,
                              self.state.session, title, content,
                              self.state.selection.selected_game_id, media)
        if not ok:
            return False
        self.page.alert('Post created successfully!')
        self.page.reset_fields(_POST_FORM_FIELDS)
        self.clear_selected_game()
        self.page.hide(regions.MEDIA_PREVIEW)
        self.switch_tab('feed')
        return True

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------

    def load_dashboard(self) -> None:
        self.page.set_html(regions.DASHBOARD, render.loading('Loading dashboard...'))
        ok, data = self._attempt('Failed to load dashboard', self._posts.dashboard,
                                 self.state.session)
        if not ok:
            self.page.set_html(regions.DASHBOARD, render.empty_state('Dashboard unavailable'))
            return
        self.page.set_html(regions.DASHBOARD, render.dashboard(data))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _attempt(self, failure: str, func: Callable[..., Any],
                 *args: Any) -> Tuple[bool, Any]:
        """Run *func* and turn any failure into an alert.

        Returns:
            ``(True, result)`` on success, ``(False, None)`` otherwise.
        """
        try:
            return True, func(*args)
        except ValidationError as exc:
            self.page.alert(str(exc))
        except BoardAPIError as exc:
            self.page.alert(f'{failure}: {exc.message}')
        except BoardNetworkError as exc:
            logger.error("%s: %s", failure, exc, exc_info=True)
            self.page.alert(failure)
        return False, None
