"""
Atomic file writer for merged documents.

Ensures that writing a merge result never leaves the target file in an
incomplete or unparseable state.
"""

from __future__ import annotations

import logging
import tempfile
from collections.abc import Callable
from pathlib import Path

from ..config import Notation

logger = logging.getLogger(__name__)


class AtomicWriter:
    """Handles atomic file writes with validation.

    Uses a two-phase commit approach:
    1. Write to a temporary file in the same directory
    2. Validate the content with the notation's parser
    3. Atomically replace the target file

    This ensures that an interrupted write operation never leaves
    the target file in an incomplete state.
    """

    def __init__(self, validators: dict[Notation, Callable[[str], None]] | None = None):
        """Initialize the atomic writer.

        Args:
            validators: Validation function per notation, raising CodeMergeError
                on invalid content. Notations without one use their merger's validate().
        """
        self._validators = dict(validators or {})

    def write(self, path: Path, content: str, notation: Notation | None = None, validate: bool = True) -> None:
        """Write content to file atomically.

        Args:
            path: Target file path
            content: Content to write
            notation: Notation used for validation; None skips validation
            validate: Whether to validate before finalizing

        Raises:
            CodeMergeError: If validation fails
            OSError: If file operations fail
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        # Same directory ensures atomic rename on the same filesystem
        temp_fd, temp_path_str = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", text=True)
        temp_path = Path(temp_path_str)

        try:
            with open(temp_fd, "w", encoding="utf-8", newline="") as f:
                f.write(content)

            if validate and notation is not None:
                self._validator(notation)(content)

            temp_path.replace(path)
            logger.debug("Wrote %s (%d characters)", path, len(content))

        except Exception:
            # Clean up temp file on any error
            if temp_path.exists():
                try:
                    temp_path.unlink()
                except OSError:
                    pass  # Best effort cleanup
            raise

    def _validator(self, notation: Notation) -> Callable[[str], None]:
        if notation not in self._validators:
            from ..bridge import get_merger

            self._validators[notation] = get_merger(notation).validate
        return self._validators[notation]
