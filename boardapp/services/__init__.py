"""Domain services for the board: auth, posts, comments and games."""
from .validation import ValidationError
from .auth_service import AuthService
from .post_service import PostService, MediaAttachment
from .comment_service import CommentService
from .game_service import GameService

__all__ = [
    'ValidationError',
    'AuthService',
    'PostService',
    'MediaAttachment',
    'CommentService',
    'GameService',
]
