#!/usr/bin/env python3
"""
GameBoard - client for a gaming-community discussion board
Shared helpers: logging, configuration, token decoding, pagination and
game-suggestion merging used by the view controller and the web GUI.
"""

import base64
import binascii
import datetime
import json
import logging
import os
import time
from typing import Any, Dict, List, Optional

try:
    from dotenv import load_dotenv
    load_dotenv()
except Exception:
    pass

# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

def setup_logging(level: str = 'WARNING') -> logging.Logger:
    """Configure the root GameBoard logger.

    Args:
        level: Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               Defaults to WARNING so normal use is quiet.

    Returns:
        Configured logger instance.
    """
    numeric = getattr(logging, level.upper(), logging.WARNING)
    logger = logging.getLogger('gameboard')
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter('[%(levelname)s] %(name)s: %(message)s'))
        logger.addHandler(handler)
    logger.setLevel(numeric)
    return logger


logger = setup_logging(os.getenv('GAMEBOARD_LOG_LEVEL', 'WARNING'))


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

TOKEN_STORAGE_KEY = 'authToken'
POSTS_PER_PAGE = 10
LOCAL_GAMES_LIMIT = 20
SUGGESTION_LOCAL_LIMIT = 10
MAX_EXTERNAL_SUGGESTIONS = 5
MAX_SUGGESTIONS = 8
MIN_SUGGESTION_QUERY = 2
MAX_COMMENT_DEPTH = 4
PAGINATION_RADIUS = 2
DEBOUNCE_SECONDS = 0.3

DEFAULT_CONFIG: Dict[str, Any] = {
    'api_url': 'http://localhost:8080',
    'legacy_url': 'http://localhost:8082',
    'token_file': '.gameboard_token.json',
    'timeout': 10,
    'log_level': 'WARNING',
}


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

def load_config(config_path: str = 'config.json') -> Dict[str, Any]:
    """Load configuration from a JSON file with environment variable support.

    A missing file is not an error; the defaults are used instead.
    Environment variables take precedence over config file values:

    - GAMEBOARD_API_URL overrides api_url
    - GAMEBOARD_LEGACY_URL overrides legacy_url
    - GAMEBOARD_TOKEN_FILE overrides token_file
    - GAMEBOARD_TIMEOUT overrides timeout
    - GAMEBOARD_LOG_LEVEL overrides log_level
    """
    config = dict(DEFAULT_CONFIG)
    if os.path.exists(config_path):
        try:
            with open(config_path, 'r') as f:
                config.update(json.load(f))
        except (IOError, json.JSONDecodeError) as e:
            logger.warning("Could not read config %s: %s", config_path, e)
    else:
        logger.info("Config file %s not found, using defaults", config_path)

    overrides = {
        'GAMEBOARD_API_URL': 'api_url',
        'GAMEBOARD_LEGACY_URL': 'legacy_url',
        'GAMEBOARD_TOKEN_FILE': 'token_file',
        'GAMEBOARD_TIMEOUT': 'timeout',
        'GAMEBOARD_LOG_LEVEL': 'log_level',
    }
    for env_name, key in overrides.items():
        if os.getenv(env_name):
            config[key] = os.getenv(env_name)

    try:
        config['timeout'] = float(config['timeout'])
    except (TypeError, ValueError):
        logger.warning("Invalid timeout %r, falling back to %s",
                       config['timeout'], DEFAULT_CONFIG['timeout'])
        config['timeout'] = float(DEFAULT_CONFIG['timeout'])

    config['api_url'] = str(config['api_url']).rstrip('/')
    config['legacy_url'] = str(config['legacy_url']).rstrip('/')
    setup_logging(str(config.get('log_level', 'WARNING')))
    return config


# ---------------------------------------------------------------------------
# Token helpers
# ---------------------------------------------------------------------------

class TokenDecodeError(ValueError):
    """Raised when a stored token cannot be decoded into a user payload."""


def decode_token_payload(token: str, now: Optional[float] = None) -> Dict[str, Any]:
    """Decode the middle segment of a JWT-style token without verifying it.

    The result is a display hint only; the server validates the token on
    every authenticated call.

    Args:
        token: ``header.payload.signature`` string.
        now:   Current unix time, used for the ``exp`` check.

    Returns:
        The payload dict.

    Raises:
        TokenDecodeError: The token is malformed, the payload is not a JSON
            object, or its ``exp`` claim is in the past.
    """
    if not token or not isinstance(token, str):
        raise TokenDecodeError('empty token')
    parts = token.split('.')
    if len(parts) < 2 or not parts[1]:
        raise TokenDecodeError('token has no payload segment')

    segment = parts[1]
    segment += '=' * (-len(segment) % 4)
    try:
        raw = base64.urlsafe_b64decode(segment.replace('+', '-').replace('/', '_'))
        payload = json.loads(raw.decode('utf-8'))
    except (binascii.Error, ValueError, UnicodeDecodeError) as exc:
        raise TokenDecodeError(f'payload is not base64 JSON: {exc}') from exc

    if not isinstance(payload, dict):
        raise TokenDecodeError('payload is not a JSON object')

    exp = payload.get('exp')
    if exp is not None:
        if now is None:
            now = time.time()
        try:
            expired = float(exp) <= now
        except (TypeError, ValueError) as exc:
            raise TokenDecodeError(f'invalid exp claim: {exp!r}') from exc
        if expired:
            raise TokenDecodeError('token expired')
    return payload


def user_from_payload(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Extract the ``{id, username}`` display user from a token payload."""
    return {'id': payload.get('user_id'), 'username': payload.get('username')}


# ---------------------------------------------------------------------------
# Pagination
# ---------------------------------------------------------------------------

def pagination_window(page: int, pages: int, radius: int = PAGINATION_RADIUS) -> Dict[str, Any]:
    """Compute the pagination control for *page* of *pages*.

    Returns:
        ``{'visible', 'previous', 'next', 'pages'}`` where ``previous`` and
        ``next`` are page numbers or ``None`` and ``pages`` is the window
        of page numbers centred on *page*, clamped to ``[1, pages]``.
    """
    if pages <= 1:
        return {'visible': False, 'previous': None, 'next': None, 'pages': [], 'current': page}
    start = max(1, page - radius)
    end = min(pages, page + radius)
    return {
        'visible': True,
        'previous': page - 1 if page > 1 else None,
        'next': page + 1 if page < pages else None,
        'pages': list(range(start, end + 1)),
        'current': page,
    }


# ---------------------------------------------------------------------------
# Game suggestions
# ---------------------------------------------------------------------------

def merge_game_suggestions(query: str, local_games: List[Dict],
                           external_games: List[Dict]) -> List[Dict]:
    """Merge local and external games into the post-composer suggestion list.

    Local games match *query* as a case-insensitive substring of their
    title. The first :data:`MAX_EXTERNAL_SUGGESTIONS` external results are
    appended unless a suggestion with the same title (case-insensitive) is
    already present. The list is capped at :data:`MAX_SUGGESTIONS`.
    """
    needle = query.lower()
    suggestions: List[Dict] = [
        {
            'id': g.get('id'),
            'rawg_id': g.get('rawg_id'),
            'title': g.get('title') or '',
            'cover_image': g.get('cover_image') or '',
            'is_rawg': False,
        }
        for g in local_games
        if needle in (g.get('title') or '').lower()
    ]
    seen = {s['title'].lower() for s in suggestions}
    for rg in external_games[:MAX_EXTERNAL_SUGGESTIONS]:
        name = rg.get('name') or ''
        if name.lower() in seen:
            continue
        seen.add(name.lower())
        suggestions.append({
            'id': None,
            'rawg_id': rg.get('id'),
            'title': name,
            'cover_image': rg.get('background_image') or '',
            'is_rawg': True,
        })
    return suggestions[:MAX_SUGGESTIONS]


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------

def format_date(value: Optional[str]) -> str:
    """Format an ISO-8601 timestamp as e.g. ``Mar 05, 2024, 02:30 PM``.

    Unparseable values are returned unchanged; empty values give ``''``.
    """
    if not value:
        return ''
    text = value.strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        parsed = datetime.datetime.fromisoformat(text)
    except ValueError:
        return value
    return parsed.strftime('%b %d, %Y, %I:%M %p')


def format_rating(value: Any) -> str:
    """Return *value* with one decimal place, or ``''`` when falsy/invalid."""
    if not value:
        return ''
    try:
        return f"{float(value):.1f}"
    except (TypeError, ValueError):
        return ''


_SAFE_URL_PREFIXES = ('http://', 'https://', '/', 'data:image/', 'data:video/')


def safe_media_url(url: Optional[str]) -> str:
    """Return *url* if it is an http(s), site-relative or inline media URL.

    Anything else (``javascript:`` and friends) becomes ``''`` so it can
    never end up in a ``src`` attribute.
    """
    if not url:
        return ''
    candidate = str(url).strip()
    lowered = candidate.lower()
    if lowered.startswith('//'):
        return ''
    if lowered.startswith(_SAFE_URL_PREFIXES):
        return candidate
    return ''
