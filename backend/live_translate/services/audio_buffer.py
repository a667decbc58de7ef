from typing import List


class AudioBuffer:
    """
    Per-session accumulator of raw audio fragments.

    The browser streams one encoded recording in small slices, so the pending
    fragments are only meaningful as a whole: non-final passes read a
    `snapshot()` of everything so far, a final pass `drain_all()`s it.
    Size is not bounded here.
    """

    def __init__(self):
        self._chunks: List[bytes] = []
        self._size = 0
        self._appended = 0

    def append(self, fragment: bytes) -> None:
        """Append one fragment; empty fragments are ignored."""
        if not fragment:
            return
        self._chunks.append(bytes(fragment))
        self._size += len(fragment)
        self._appended += 1

    def snapshot(self) -> bytes:
        """All pending bytes, buffer left intact."""
        return b"".join(self._chunks)

    def drain_all(self) -> bytes:
        """All pending bytes; the buffer is empty afterwards."""
        data = b"".join(self._chunks)
        self.clear()
        return data

    def clear(self) -> None:
        self._chunks = []
        self._size = 0

    @property
    def size(self) -> int:
        return self._size

    @property
    def chunk_count(self) -> int:
        return len(self._chunks)

    @property
    def appended_count(self) -> int:
        """Fragments ever appended; grows monotonically, survives clear()."""
        return self._appended

    def is_empty(self) -> bool:
        return not self._chunks

    def __len__(self) -> int:
        return self._size
