from __future__ import annotations

import codecs
import logging
from typing import Iterable, Iterator

logger = logging.getLogger(__name__)

DEFAULT_ENCODING = "utf-8"
LINE_DELIMITER = "\n"


class FrameDecoder:
    """Turns raw byte chunks into complete, newline-terminated lines.

    Two things are carried between ``feed`` calls: the incremental codec state
    (a multi-byte character may be split across chunks) and the trailing text
    after the last delimiter. A trailing ``\\r`` is dropped from each line so
    CRLF framing decodes the same as LF framing. Whatever is still buffered at
    ``close`` is an unterminated record and is discarded.
    """

    def __init__(self, encoding: str = DEFAULT_ENCODING, delimiter: str = LINE_DELIMITER) -> None:
        if not delimiter:
            raise ValueError("delimiter must be non-empty")
        self.encoding = encoding
        self.delimiter = delimiter
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="strict")
        self._carry = ""

    @property
    def pending(self) -> str:
        return self._carry

    def feed(self, chunk: bytes) -> list[str]:
        if not chunk:
            return []
        self._carry += self._decoder.decode(chunk)
        if self.delimiter not in self._carry:
            return []
        parts = self._carry.split(self.delimiter)
        self._carry = parts.pop()
        return [_strip_cr(part) for part in parts]

    def close(self) -> None:
        if self._carry:
            logger.debug("Discarding %d chars of unterminated stream data", len(self._carry))
        self._carry = ""
        self._decoder.reset()


def _strip_cr(line: str) -> str:
    return line[:-1] if line.endswith("\r") else line


def iter_lines(
    chunks: Iterable[bytes],
    encoding: str = DEFAULT_ENCODING,
) -> Iterator[str]:
    decoder = FrameDecoder(encoding=encoding)
    try:
        for chunk in chunks:
            yield from decoder.feed(chunk)
    finally:
        decoder.close()
