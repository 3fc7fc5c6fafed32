"""Business logic for signing in and out."""
import logging
from typing import Any, Dict, Optional

import gameboard
from board_client import BoardClient
from ..repositories.token_repository import TokenRepository
from ..state import Session
from .validation import require

logger = logging.getLogger('gameboard.auth')


class AuthService:
    """Owns the credential token's lifecycle.

    Rules
    -----
    * The stored token is decoded locally for display only; a decode
      failure wipes it (fail closed).
    * Login/registration validation happens before any request.
    * Logout always clears the stored token.
    """

    def __init__(self, client: BoardClient, tokens: TokenRepository) -> None:
        self._client = client
        self._tokens = tokens

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def restore(self, session: Session, now: Optional[float] = None) -> bool:
        """Populate *session* from the stored token.

        Returns:
            ``True`` when a token was found and decoded; ``False`` when there
            is none or it was discarded.
        """
        token = self._tokens.get()
        if not token:
            session.clear()
            return False
        try:
            payload = gameboard.decode_token_payload(token, now=now)
        except gameboard.TokenDecodeError as exc:
            logger.warning("Discarding stored token: %s", exc)
            self._tokens.clear()
            session.clear()
            return False
        session.token = token
        session.user = gameboard.user_from_payload(payload)
        return True

    def login(self, session: Session, username: str, password: str) -> Dict[str, Any]:
        """Authenticate and store the token.

        Raises:
            ValidationError: Missing username or password.
            BoardError:      Rejected by the server or transport failure.
        """
        require(bool(username) and bool(password), 'Please fill in all fields')
        data = self._client.login(username, password)
        self._establish(session, data)
        logger.info("Logged in as %s", session.username)
        return data

    def register(self, session: Session, username: str, email: str,
                 password: str, confirm_password: str) -> bool:
        """Create an account.

        Returns:
            ``True`` when the server also returned a token and the session is
            now authenticated; ``False`` when the user still has to log in.
        """
        require(all([username, email, password, confirm_password]), 'Please fill in all fields')
        require(password == confirm_password, 'Passwords do not match')
        data = self._client.register(username, email, password)
        if isinstance(data, dict) and data.get('token'):
            self._establish(session, data)
            return True
        return False

    def logout(self, session: Session) -> None:
        session.clear()
        self._tokens.clear()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _establish(self, session: Session, data: Dict[str, Any]) -> None:
        session.token = data.get('token')
        user = data.get('user') or {}
        session.user = {'id': user.get('id'), 'username': user.get('username')}
        if session.token:
            self._tokens.set(session.token)
