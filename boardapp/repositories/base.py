"""Repository base class: one small JSON document, optionally on disk."""
import json
import logging
import os
import tempfile
from typing import Any


class BaseRepository:
    """Holds one JSON document and, when given a path, keeps it on disk.

    An empty *file_path* makes the repository memory-only: :meth:`_load`
    returns the default and :meth:`_save` / :meth:`_remove` do nothing.
    The web GUI uses that mode so browser sessions never share a file.

    On disk, writes go to a temporary file in the same directory that is
    then renamed over the target, and the file is readable by its owner
    only since it carries a credential.
    """

    FILE_MODE = 0o600

    def __init__(self, file_path: str = '') -> None:
        self._path = file_path
        self._log = logging.getLogger(f'gameboard.repository.{type(self).__name__}')

    @property
    def path(self) -> str:
        return self._path

    @property
    def persistent(self) -> bool:
        return bool(self._path)

    def _load(self, default: Any) -> Any:
        """Return the stored document, or *default* if absent, unreadable or memory-only."""
        if not self.persistent or not os.path.exists(self._path):
            return default
        try:
            with open(self._path, 'r') as fh:
                return json.load(fh)
        except (json.JSONDecodeError, OSError) as exc:
            self._log.warning("Ignoring unreadable %s: %s", self._path, exc)
            return default

    def _save(self, data: Any) -> None:
        if not self.persistent:
            return
        dir_name = os.path.dirname(os.path.abspath(self._path))
        os.makedirs(dir_name, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=dir_name, prefix='.gameboard-', suffix='.tmp')
        try:
            with os.fdopen(fd, 'w') as fh:
                json.dump(data, fh)
            os.chmod(tmp_path, self.FILE_MODE)
            os.replace(tmp_path, self._path)
        except OSError:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise
        self._log.debug("Saved %s", self._path)

    def _remove(self) -> None:
        """Delete the backing file if there is one."""
        if not self.persistent:
            return
        try:
            os.remove(self._path)
        except FileNotFoundError:
            return
        self._log.debug("Removed %s", self._path)
