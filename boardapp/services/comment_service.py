"""Business logic for comment threads."""
from typing import Any, Dict, List, Optional

from board_client import BoardClient
from ..state import Session
from .validation import ValidationError, require


class CommentService:
    """Comment tree retrieval and mutation.

    Writes need an authenticated session and a body that is non-empty after
    trimming.
    """

    def __init__(self, client: BoardClient) -> None:
        self._client = client

    def thread(self, post_id: int) -> List[Dict[str, Any]]:
        return self._client.get_comments(post_id) or []

    def add(self, session: Session, post_id: Optional[int], content: str,
            parent_id: Optional[int] = None) -> Dict[str, Any]:
        if not session.is_authenticated or not post_id:
            raise ValidationError('Please login to comment')
        content = (content or '').strip()
        require(bool(content), 'Please enter a reply' if parent_id else 'Please enter a comment')
        return self._client.create_comment(session.token, post_id, content, parent_id=parent_id)

    def edit(self, session: Session, comment_id: int, content: str) -> Dict[str, Any]:
        require(session.is_authenticated, 'Please login to edit comments')
        content = (content or '').strip()
        require(bool(content), 'Please enter a comment')
        return self._client.update_comment(session.token, comment_id, content)

    def delete(self, session: Session, comment_id: int) -> None:
        require(session.is_authenticated, 'Please login to delete comments')
        self._client.delete_comment(session.token, comment_id)


def count_comments(comments: List[Dict[str, Any]]) -> int:
    """Count every node of a comment tree, replies included."""
    return sum(1 + count_comments(c.get('replies') or []) for c in comments)
