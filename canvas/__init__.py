"""Canvas package - Layer compositing and drawing history."""

from .history import (
    HistoryEntry,
    HistoryManager,
)

from .compositor import (
    LayerCompositor,
    to_rgba,
)

__all__ = [
    'HistoryEntry',
    'HistoryManager',
    'LayerCompositor',
    'to_rgba',
]
