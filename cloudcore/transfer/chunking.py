"""
Byte-range planning for resumable uploads.

Ranges are inclusive. The final chunk is planned with ``upper == total``
and sent on the wire as ``total - 1``; that is how the protocol tells the
last chunk apart from the others.
"""

import re
from dataclasses import dataclass, replace
from typing import List, Optional

from ..config.constants import FILE_UPLOAD_CHUNK_SIZE

_RANGE_HEADER = re.compile(r"^\s*bytes=(\d+)-(\d+)\s*$")


@dataclass(frozen=True)
class ChunkRange:
    """One planned PUT of a resumable session."""
    lower: int
    upper: int
    total: int
    final: bool = False

    @property
    def length(self) -> int:
        """Bytes to read from the source for this chunk."""
        if self.final:
            return self.upper - self.lower
        return self.upper - self.lower + 1

    @property
    def wire_upper(self) -> int:
        return self.total - 1 if self.final else self.upper

    @property
    def content_range(self) -> str:
        return f"bytes {self.lower}-{self.wire_upper}/{self.total}"

    @property
    def confirmed_bytes(self) -> int:
        """Cumulative bytes stored once this chunk is confirmed."""
        return self.wire_upper + 1

    def resume_from(self, confirmed_upper: int) -> "ChunkRange":
        """Same target upper bound, restarting after the server's last byte."""
        return replace(self, lower=confirmed_upper + 1)


def plan_chunks(total: int, chunk_size: int = FILE_UPLOAD_CHUNK_SIZE) -> List[ChunkRange]:
    """
    Split ``total`` bytes into fixed-size chunks and a final remainder.

    A size that is an exact multiple of ``chunk_size`` still ends on a
    final chunk. An empty source has no chunks.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    if total <= 0:
        return []

    chunks = []
    lower = 0
    while lower + chunk_size < total:
        chunks.append(ChunkRange(lower, lower + chunk_size - 1, total))
        lower += chunk_size
    chunks.append(ChunkRange(lower, total, total, final=True))
    return chunks


def parse_range_header(value: Optional[str]) -> Optional[int]:
    """
    Upper bound of a ``Range: bytes=0-N`` response header.

    Raises:
        ValueError: If the header is present but malformed
    """
    if value is None:
        return None
    match = _RANGE_HEADER.match(value)
    if not match:
        raise ValueError(f"Malformed Range header: {value!r}")
    return int(match.group(2))
