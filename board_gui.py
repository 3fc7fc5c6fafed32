#!/usr/bin/env python3
"""
GameBoard Web GUI
Serves the discussion board as a server-rendered page.  Each browser
session gets its own ViewController; every form posts to an action route
that runs one controller handler and redirects back to ``/``.
"""

import argparse
import logging
import os
import threading
import time
import uuid
from collections import OrderedDict
from functools import wraps
from typing import Any, Callable, Dict, List, Optional

from colorama import init, Fore, Style
from flask import Flask, redirect, request, session

import gameboard
from board_client import BoardClient
from boardapp import render
from boardapp.controller import ViewController
from boardapp.page import Page
from boardapp.repositories import MemoryTokenRepository, TokenRepository
from boardapp.services import (
    AuthService, CommentService, GameService, MediaAttachment, PostService,
)
from boardapp.state import AppState

init(autoreset=True)

log_level = os.getenv('GAMEBOARD_LOG_LEVEL', 'INFO')
gameboard.setup_logging(log_level)
gui_logger = logging.getLogger('gameboard.gui')
gui_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
try:
    os.makedirs('logs', exist_ok=True)
    fh = logging.FileHandler('logs/board_gui.log')
    fh.setFormatter(logging.Formatter('[%(asctime)s] %(levelname)s %(name)s: %(message)s'))
    fh.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    gui_logger.addHandler(fh)
except OSError:
    gui_logger.warning('Could not create log file handler')

app = Flask(__name__)
app.secret_key = os.urandom(24)

# Active configuration; replaced by configure() from main()
config: Dict[str, Any] = dict(gameboard.DEFAULT_CONFIG)

# Keep the token in config['token_file'] instead of per-session memory
persist_token = False

# Browser sessions beyond these limits are dropped, least recently seen first
MAX_SESSIONS = 200
SESSION_IDLE_SECONDS = 30 * 60


class BrowserSession:
    """One browser's controller and the HTTP client behind it."""

    def __init__(self, controller: ViewController, client: BoardClient) -> None:
        self.controller = controller
        self.client = client
        self.last_seen = time.monotonic()

    def close(self) -> None:
        with self.controller.lock:
            self.controller.cancel_game_search()
        self.client.close()


# Browser session id -> session, least recently seen first
sessions: 'OrderedDict[str, BrowserSession]' = OrderedDict()
sessions_lock = threading.Lock()


def configure(new_config: Dict[str, Any]) -> None:
    """Install *new_config* and drop every existing browser session."""
    global config
    config = dict(new_config)
    with sessions_lock:
        dropped = list(sessions.values())
        sessions.clear()
    _close_sessions(dropped)


def confirm_from_form(message: str) -> bool:
    """Destructive actions carry ``confirmed=yes`` once the browser confirmed them."""
    approved = request.form.get('confirmed') == 'yes'
    gui_logger.debug("Confirmation %r: %s", message, 'approved' if approved else 'declined')
    return approved


def build_controller(cfg: Dict[str, Any], client: BoardClient,
                     tokens: Optional[TokenRepository] = None) -> ViewController:
    """Wire a controller to *client* and a fresh page and state."""
    tokens = tokens if tokens is not None else MemoryTokenRepository()
    return ViewController(
        page=Page(),
        state=AppState(),
        auth=AuthService(client, tokens),
        posts=PostService(client),
        comments=CommentService(client),
        games=GameService(client),
        confirm=confirm_from_form,
    )


def _evict_sessions(now: float) -> List[BrowserSession]:
    """Unlink idle sessions and any beyond MAX_SESSIONS. Caller holds sessions_lock."""
    dropped = []
    while sessions:
        sid, entry = next(iter(sessions.items()))
        if len(sessions) <= MAX_SESSIONS and now - entry.last_seen <= SESSION_IDLE_SECONDS:
            break
        del sessions[sid]
        dropped.append(entry)
    return dropped


def _close_sessions(dropped: List[BrowserSession]) -> None:
    if dropped:
        gui_logger.debug("Dropping %d board session(s)", len(dropped))
    for entry in dropped:
        entry.close()


def current_controller() -> ViewController:
    """Return the controller for this browser, creating and initializing it on first use.

    A new controller is initialized before it is published, so no other
    request can reach it half-built.
    """
    now = time.monotonic()
    with sessions_lock:
        sid = session.get('sid')
        entry = sessions.get(sid) if sid else None
        if entry is not None:
            entry.last_seen = now
            sessions.move_to_end(sid)
        dropped = _evict_sessions(now)
    _close_sessions(dropped)
    if entry is not None:
        return entry.controller

    sid = uuid.uuid4().hex
    client = BoardClient(config['api_url'], timeout=config.get('timeout', 10))
    tokens = TokenRepository(config['token_file']) if persist_token else None
    ctl = build_controller(config, client, tokens)
    with ctl.lock:
        ctl.initialize()
    gui_logger.info("New board session %s", sid[:8])

    with sessions_lock:
        sessions[sid] = BrowserSession(ctl, client)
        dropped = _evict_sessions(time.monotonic())
    _close_sessions(dropped)
    session['sid'] = sid
    return ctl


def page_action(func: Callable[..., None]) -> Callable[..., Any]:
    """Run a controller handler under the controller lock, then redirect home."""
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        ctl = current_controller()
        with ctl.lock:
            func(ctl, *args, **kwargs)
        return redirect('/')
    return wrapper


def form_value(name: str) -> str:
    return (request.form.get(name) or '').strip()


# ---------------------------------------------------------------------------
# Page
# ---------------------------------------------------------------------------

@app.route('/')
def index():
    ctl = current_controller()
    with ctl.lock:
        alerts = ctl.page.pop_alerts()
        return render.index_page(ctl.page, alerts)


@app.route('/tab/<name>', methods=['POST'])
@page_action
def switch_tab(ctl: ViewController, name: str) -> None:
    ctl.switch_tab(name)


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

@app.route('/auth/show/<form>', methods=['POST'])
@page_action
def show_auth(ctl: ViewController, form: str) -> None:
    ctl.show_auth_modal('register' if form == 'register' else 'login')


@app.route('/auth/hide', methods=['POST'])
@page_action
def hide_auth(ctl: ViewController) -> None:
    ctl.hide_auth_modal()


@app.route('/auth/login', methods=['POST'])
@page_action
def login(ctl: ViewController) -> None:
    if ctl.login(form_value('username'), request.form.get('password') or ''):
        gui_logger.info("User %s logged in", ctl.state.session.username)


@app.route('/auth/register', methods=['POST'])
@page_action
def register(ctl: ViewController) -> None:
    ctl.register(form_value('username'), form_value('email'),
                 request.form.get('password') or '',
                 request.form.get('confirm_password') or '')


@app.route('/auth/logout', methods=['POST'])
@page_action
def logout(ctl: ViewController) -> None:
    ctl.logout()


# ---------------------------------------------------------------------------
# Feed and posts
# ---------------------------------------------------------------------------

@app.route('/posts/search', methods=['POST'])
@page_action
def search_posts(ctl: ViewController) -> None:
    ctl.search_posts(form_value('q'), form_value('game_id'), form_value('tag'))


@app.route('/posts/clear', methods=['POST'])
@page_action
def clear_search(ctl: ViewController) -> None:
    ctl.clear_search()


@app.route('/feed/page/<int:number>', methods=['POST'])
@page_action
def go_to_page(ctl: ViewController, number: int) -> None:
    ctl.go_to_page(number)


@app.route('/posts/<int:post_id>/open', methods=['POST'])
@page_action
def open_post(ctl: ViewController, post_id: int) -> None:
    ctl.show_post_detail(post_id)


@app.route('/posts/close', methods=['POST'])
@page_action
def close_post(ctl: ViewController) -> None:
    ctl.hide_post_modal()


@app.route('/posts', methods=['POST'])
@page_action
def create_post(ctl: ViewController) -> None:
    media = None
    upload = request.files.get('file')
    if upload is not None and upload.filename:
        media = MediaAttachment(upload.filename, upload.stream, upload.mimetype)
    ctl.create_post(form_value('title'), form_value('content'), media)


@app.route('/posts/<int:post_id>/delete', methods=['POST'])
@page_action
def delete_post(ctl: ViewController, post_id: int) -> None:
    ctl.delete_post(post_id)


# ---------------------------------------------------------------------------
# Comments
# ---------------------------------------------------------------------------

@app.route('/comments', methods=['POST'])
@page_action
def submit_comment(ctl: ViewController) -> None:
    ctl.submit_comment(form_value('content'))


@app.route('/comments/<int:comment_id>/reply/show', methods=['POST'])
@page_action
def show_reply(ctl: ViewController, comment_id: int) -> None:
    ctl.show_reply_form(comment_id)


@app.route('/comments/<int:comment_id>/reply/hide', methods=['POST'])
@page_action
def hide_reply(ctl: ViewController, comment_id: int) -> None:
    ctl.hide_reply_form(comment_id)


@app.route('/comments/<int:comment_id>/reply', methods=['POST'])
@page_action
def submit_reply(ctl: ViewController, comment_id: int) -> None:
    ctl.submit_reply(comment_id, form_value('content'))


@app.route('/comments/<int:comment_id>/edit', methods=['POST'])
@page_action
def edit_comment(ctl: ViewController, comment_id: int) -> None:
    ctl.edit_comment(comment_id, form_value('content'))


@app.route('/comments/<int:comment_id>/delete', methods=['POST'])
@page_action
def delete_comment(ctl: ViewController, comment_id: int) -> None:
    ctl.delete_comment(comment_id)


# ---------------------------------------------------------------------------
# Games and tags
# ---------------------------------------------------------------------------

@app.route('/games/rawg/search', methods=['POST'])
@page_action
def search_rawg(ctl: ViewController) -> None:
    ctl.search_rawg_games(form_value('q'))


@app.route('/games/rawg/<int:rawg_id>/import', methods=['POST'])
@page_action
def import_rawg(ctl: ViewController, rawg_id: int) -> None:
    ctl.import_rawg_game(rawg_id)


@app.route('/games', methods=['POST'])
@page_action
def create_game(ctl: ViewController) -> None:
    ctl.create_local_game(form_value('title'), form_value('cover_image'),
                          form_value('description'), form_value('tags'))


@app.route('/games/<int:game_id>/filter', methods=['POST'])
@page_action
def filter_by_game(ctl: ViewController, game_id: int) -> None:
    ctl.filter_by_game(game_id)


@app.route('/tags/<slug>/filter', methods=['POST'])
@page_action
def filter_by_tag(ctl: ViewController, slug: str) -> None:
    ctl.filter_by_tag(slug)


@app.route('/tags/<slug>/games', methods=['POST'])
@page_action
def browse_tag(ctl: ViewController, slug: str) -> None:
    ctl.browse_tag(slug)


# ---------------------------------------------------------------------------
# Post composer
# ---------------------------------------------------------------------------

@app.route('/games/suggest', methods=['POST'])
@page_action
def suggest_games(ctl: ViewController) -> None:
    # A form submit is a finished keystroke burst; skip the debounce wait.
    ctl.game_search_input(request.form.get('q') or '')
    ctl.flush_game_search()


@app.route('/games/select', methods=['POST'])
@page_action
def select_game(ctl: ViewController) -> None:
    ctl.select_game_for_post(form_value('game_id') or None, form_value('rawg_id') or None,
                             form_value('title'), form_value('cover_image'))


@app.route('/games/selection/clear', methods=['POST'])
@page_action
def clear_selection(ctl: ViewController) -> None:
    ctl.clear_selected_game()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main():
    """Main entry point for GUI"""
    parser = argparse.ArgumentParser(description='GameBoard Web GUI')
    parser.add_argument('--config', default='config.json', help='Path to config file')
    parser.add_argument('--host', default='127.0.0.1', help='Interface to bind')
    parser.add_argument('--port', type=int, default=5000, help='Port to listen on')
    parser.add_argument('--persist-token', action='store_true',
                        help='Remember the login in the configured token file (single-user use)')
    args = parser.parse_args()

    global persist_token
    persist_token = args.persist_token

    configure(gameboard.load_config(args.config))
    gui_logger.info("Using board API at %s", config['api_url'])

    print("\n" + "=" * 60)
    print(f"{Fore.CYAN}🎮 GameBoard Web GUI is starting...")
    print("=" * 60)
    print(f"\nBoard API: {Fore.YELLOW}{config['api_url']}")
    print("Open your browser and go to:")
    print(f"  {Style.BRIGHT}http://{args.host}:{args.port}")
    print("\nPress Ctrl+C to stop the server")
    print("=" * 60 + "\n")

    try:
        app.run(host=args.host, port=args.port, debug=False)
    except KeyboardInterrupt:
        print("\n\n" + "=" * 60)
        print(f"{Fore.RED}🛑 GameBoard Web GUI stopped")
        print("=" * 60 + "\n")


if __name__ == "__main__":
    main()
