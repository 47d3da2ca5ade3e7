"""
Undo/redo history for the drawing layer.

The undo stack always holds at least the initial snapshot. Committing a
new snapshot discards the redo stack, so history never branches.
"""
from dataclasses import dataclass
from io import BytesIO
from typing import List, Optional, Tuple

from PIL import Image

from core.constants import HistoryState
from utils.image_utils import encode_png


@dataclass(frozen=True)
class HistoryEntry:
    """Immutable PNG snapshot of the drawing layer."""
    data: bytes
    size: Tuple[int, int]

    @classmethod
    def from_image(cls, image: Image.Image) -> "HistoryEntry":
        return cls(data=encode_png(image), size=image.size)

    def to_image(self) -> Image.Image:
        """Decode the snapshot as an RGBA image."""
        img = Image.open(BytesIO(self.data))
        img.load()
        return img.convert('RGBA') if img.mode != 'RGBA' else img


class HistoryManager:
    """Linear undo/redo log of drawing layer snapshots."""

    def __init__(self, initial: HistoryEntry, limit: Optional[int] = None):
        """
        Initialize history.

        Args:
            initial: Snapshot the undo stack bottoms out at
            limit: Maximum undo stack length, at least 2 (None or 0 for unlimited)
        """
        self.limit = max(limit, 2) if limit else None
        self.undo_stack: List[HistoryEntry] = [initial]
        self.redo_stack: List[HistoryEntry] = []

    @property
    def current(self) -> HistoryEntry:
        """Snapshot that should be the active drawing layer."""
        return self.undo_stack[-1]

    @property
    def can_undo(self) -> bool:
        return len(self.undo_stack) > 1

    @property
    def can_redo(self) -> bool:
        return bool(self.redo_stack)

    @property
    def state(self) -> HistoryState:
        return HistoryState.MID_STACK if self.can_undo else HistoryState.AT_BOTTOM

    def commit(self, entry: HistoryEntry) -> None:
        """Push a new snapshot and drop the redo branch."""
        self.undo_stack.append(entry)
        self.redo_stack.clear()

        if self.limit and len(self.undo_stack) > self.limit:
            # Keep the bottom snapshot, drop the oldest ones above it
            excess = len(self.undo_stack) - self.limit
            del self.undo_stack[1:1 + excess]

    def undo(self) -> Optional[HistoryEntry]:
        """
        Step back one snapshot.

        Returns:
            The new active snapshot, or None when already at the bottom
        """
        if not self.can_undo:
            return None
        self.redo_stack.insert(0, self.undo_stack.pop())
        return self.current

    def redo(self) -> Optional[HistoryEntry]:
        """
        Re-apply the most recently undone snapshot.

        Returns:
            The new active snapshot, or None when there is nothing to redo
        """
        if not self.can_redo:
            return None
        self.undo_stack.append(self.redo_stack.pop(0))
        return self.current

    def clear(self, initial: HistoryEntry) -> None:
        """Reset to a single initial snapshot."""
        self.undo_stack = [initial]
        self.redo_stack = []

    def __len__(self) -> int:
        return len(self.undo_stack)

    def __repr__(self):
        return f"<HistoryManager(undo={len(self.undo_stack)}, redo={len(self.redo_stack)})>"
