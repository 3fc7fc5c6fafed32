"""
HTML fragment rendering.

Every fragment comes from a Jinja2 template loaded with autoescaping on for
all of them, so server-supplied text (titles, bodies, usernames, media
URLs) is escaped on insertion without the caller having to remember it.
Only values wrapped in :class:`markupsafe.Markup` by this module pass
through unescaped.
"""
from typing import Any, Dict, List, Optional

from jinja2 import Environment, PackageLoader
from markupsafe import Markup

import gameboard


def _build_environment() -> Environment:
    env = Environment(
        loader=PackageLoader('boardapp', 'templates'),
        autoescape=True,
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters['format_date'] = gameboard.format_date
    env.filters['rating'] = gameboard.format_rating
    env.filters['media_url'] = gameboard.safe_media_url
    env.globals['MAX_COMMENT_DEPTH'] = gameboard.MAX_COMMENT_DEPTH
    return env


_env = _build_environment()


def render(template_name: str, **context: Any) -> Markup:
    """Render *template_name* and return it as safe markup."""
    return Markup(_env.get_template(template_name).render(**context))


# ---------------------------------------------------------------------------
# Status placeholders
# ---------------------------------------------------------------------------

def loading(message: str) -> Markup:
    return render('status.html', kind='loading', message=message)


def empty_state(message: str) -> Markup:
    return render('status.html', kind='empty-state', message=message)


# ---------------------------------------------------------------------------
# Posts
# ---------------------------------------------------------------------------

def posts_feed(posts: List[Dict[str, Any]]) -> Markup:
    if not posts:
        return empty_state('No posts found')
    return render('posts_feed.html', posts=posts)


def post_detail(post: Dict[str, Any], current_user: Optional[Dict[str, Any]] = None) -> Markup:
    return render('post_detail.html', post=post, current_user=current_user)


def pagination(window: Dict[str, Any]) -> Markup:
    """Render the output of :func:`gameboard.pagination_window`."""
    if not window.get('visible'):
        return Markup('')
    return render('pagination.html', window=window)


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------

def comments(tree: List[Dict[str, Any]], current_user: Optional[Dict[str, Any]] = None,
             open_reply_id: Optional[int] = None, total: Optional[int] = None) -> Markup:
    """Render a comment tree.

    Reply buttons appear only for a logged-in user and only above
    :data:`gameboard.MAX_COMMENT_DEPTH`; delete buttons only on the
    user's own comments.  Every node carries a reply form that is hidden
    unless its id is *open_reply_id*.
    """
    if not tree:
        return empty_state('No comments yet. Be the first to comment!')
    return render('comments.html', comments=tree, current_user=current_user,
                  open_reply_id=open_reply_id, total=total)


# ---------------------------------------------------------------------------
# Games and tags
# ---------------------------------------------------------------------------

def local_games(games: List[Dict[str, Any]]) -> Markup:
    if not games:
        return empty_state('No games in the library yet. Search RAWG or add a game manually!')
    return render('local_games.html', games=games)


def rawg_results(games: List[Dict[str, Any]], can_import: bool) -> Markup:
    if not games:
        return empty_state('No games found')
    return render('rawg_results.html', games=games, can_import=can_import)


def tags_cloud(tags: List[Dict[str, Any]]) -> Markup:
    if not tags:
        return empty_state('No tags yet')
    return render('tags_cloud.html', tags=tags)


def tag_games(tag: Dict[str, Any], games: List[Dict[str, Any]]) -> Markup:
    return render('tag_games.html', tag=tag, games=games)


def game_suggestions(suggestions: List[Dict[str, Any]]) -> Markup:
    return render('game_suggestions.html', suggestions=suggestions)


def selected_game(title: str, cover_image: str = '') -> Markup:
    return render('selected_game.html', title=title, cover_image=cover_image)


def media_preview(url: str, content_type: str) -> Markup:
    return render('media_preview.html', url=url, content_type=content_type)


def dashboard(data: Dict[str, Any]) -> Markup:
    return render('dashboard.html',
                  user_stats=data.get('user_stats') or {},
                  global_stats=data.get('global_stats') or {},
                  recent_posts=data.get('recent_posts') or [])


# ---------------------------------------------------------------------------
# Whole page (web GUI)
# ---------------------------------------------------------------------------

def index_page(page: Any, alerts: List[str]) -> str:
    """Render the full document for the web GUI from a :class:`~boardapp.page.Page`."""
    return _env.get_template('index.html').render(page=page, alerts=alerts)
