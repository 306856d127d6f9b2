"""
Session snapshot files.

Each session is stored as ``<storage>/<sanitized key>.json``, an indented
JSON object ``{key, messages, summary, created, updated}``. Writes go to a
temporary file in the same directory which is fsync'd and then atomically
renamed over the final name, so a crash never leaves a partial snapshot
visible.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Union

from pydantic import ValidationError

from chat_recall.exceptions import InvalidSessionKeyError
from chat_recall.models import Session

logger = logging.getLogger(__name__)

SNAPSHOT_SUFFIX = ".json"
SNAPSHOT_MODE = 0o644


def sanitize_filename(key: str) -> str:
    """
    Convert a session key into a cross-platform filename stem.

    Keys look like ``"telegram:123456"``; ``:`` is the drive separator on
    Windows, so it is replaced with ``_``. The original key is kept inside
    the JSON file, so loading maps back to the right key.
    """
    return key.replace(":", "_")


def validate_filename(filename: str) -> None:
    """
    Reject names that would not land directly inside the storage directory.

    Raises:
        InvalidSessionKeyError: For "", ".", "..", absolute paths, names
            containing a path separator or a NUL byte
    """
    if filename in ("", ".", ".."):
        raise InvalidSessionKeyError(f"invalid session filename: {filename!r}")
    if "/" in filename or "\\" in filename or "\x00" in filename:
        raise InvalidSessionKeyError(f"session filename contains a path separator: {filename!r}")
    if os.path.isabs(filename) or os.path.splitdrive(filename)[0]:
        raise InvalidSessionKeyError(f"session filename is not local: {filename!r}")


def snapshot_path(storage_dir: Union[str, Path], key: str) -> Path:
    """
    Path of the snapshot file for ``key``.

    Raises:
        InvalidSessionKeyError: If the key cannot be mapped to a safe filename
    """
    filename = sanitize_filename(key)
    validate_filename(filename)

    storage = Path(storage_dir)
    path = storage / f"{filename}{SNAPSHOT_SUFFIX}"
    if path.resolve().parent != storage.resolve():
        raise InvalidSessionKeyError(f"session filename escapes storage directory: {filename!r}")
    return path


def write_snapshot(storage_dir: Union[str, Path], session: Session) -> Path:
    """
    Atomically write ``session`` to its snapshot file.

    Args:
        storage_dir: Directory holding session snapshots
        session: Point-in-time copy of the session to persist

    Returns:
        Path of the written snapshot

    Raises:
        InvalidSessionKeyError: If the key cannot be mapped to a safe filename
        OSError: If the temporary file cannot be written, synced or renamed
    """
    path = snapshot_path(storage_dir, session.key)
    data = session.model_dump_json(indent=2, exclude_none=True)

    fd, tmp_path = tempfile.mkstemp(prefix="session-", suffix=".tmp", dir=str(storage_dir))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        # mkstemp creates the file 0o600
        os.chmod(tmp_path, SNAPSHOT_MODE)
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.remove(tmp_path)
        except FileNotFoundError:
            pass
        raise

    logger.debug(f"Saved session {session.key} ({len(session.messages)} messages) to {path}")
    return path


def load_snapshots(storage_dir: Union[str, Path]) -> Dict[str, Session]:
    """
    Load every snapshot in ``storage_dir``.

    Files that cannot be read or parsed are skipped.

    Returns:
        Mapping of session key to Session
    """
    sessions: Dict[str, Session] = {}
    storage = Path(storage_dir)

    for path in sorted(storage.iterdir()):
        if not path.is_file() or path.suffix != SNAPSHOT_SUFFIX:
            continue

        try:
            session = Session.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, ValidationError) as e:
            logger.debug(f"Skipping unreadable session file {path.name}: {e}")
            continue

        sessions[session.key] = session

    logger.info(f"Loaded {len(sessions)} sessions from {storage}")
    return sessions
