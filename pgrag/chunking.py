"""Text chunking utilities for preparing documents for embedding.

Provides:
- Chunk / ChunkMetadata: immutable chunk records with position metadata
- fixed_size_chunks: deterministic fixed-size character chunking with overlap
- md_to_text: best-effort Markdown to plain text conversion
- split_paragraphs: blank-line paragraph splitting

Chunking is pure CPU work; nothing here touches the network or the database.
Defaults come from pgrag.config.settings (CHUNK_SIZE, CHUNK_OVERLAP).
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ulid import ULID

from pgrag.config import settings
from pgrag.errors import InvalidConfiguration

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChunkMetadata:
    """Provenance of a chunk within its source document.

    Attributes:
        order: Zero-based position of the chunk in the document.
        char_offset: Offset of the chunk window in the trimmed source text.
        original_length: Length of the full trimmed source text.
        source: Optional caller-supplied label for the document.
    """
    order: int
    char_offset: int
    original_length: int
    source: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Return the JSON form stored in the rag_chunks.metadata column."""
        out: Dict[str, Any] = {}
        if self.source is not None:
            out["source"] = self.source
        out["order"] = self.order
        out["charOffset"] = self.char_offset
        out["originalLength"] = self.original_length
        return out


@dataclass(frozen=True)
class Chunk:
    """A bounded, position-tagged segment of source text.

    The id is a ULID: unique and lexicographically sortable, but not derived from
    content, so re-chunking the same text yields new ids.
    """
    content: str
    metadata: ChunkMetadata
    id: str = field(default_factory=lambda: str(ULID()))


def fixed_size_chunks(
    text: str,
    size: Optional[int] = None,
    overlap: Optional[int] = None,
    source: Optional[str] = None,
) -> List[Chunk]:
    """Split text into fixed-size character chunks with overlap.

    The input is trimmed, then a window of `size` characters walks the text with a
    step of `size - overlap`. Each window is trimmed and emitted if non-empty.
    Once the untraversed remainder is shorter than `overlap` the walk stops, so no
    near-duplicate tail chunk is produced (up to overlap - 1 trailing characters
    that were not already covered may be dropped).

    Args:
        text: Input text.
        size: Window size in characters; defaults to settings.CHUNK_SIZE.
        overlap: Overlap between consecutive windows; defaults to settings.CHUNK_OVERLAP.
        source: Optional source label copied into each chunk's metadata.

    Returns:
        List[Chunk]: Chunks in document order.

    Raises:
        InvalidConfiguration: If size <= 0 or overlap is not in [0, size).
    """
    size = settings.CHUNK_SIZE if size is None else size
    overlap = settings.CHUNK_OVERLAP if overlap is None else overlap

    if size <= 0:
        raise InvalidConfiguration("Chunk size must be positive", {"size": size})
    if overlap < 0 or overlap >= size:
        raise InvalidConfiguration(
            "Overlap must be non-negative and less than chunk size",
            {"size": size, "overlap": overlap},
        )

    trimmed = text.strip()
    n = len(trimmed)
    if n == 0:
        return []

    chunks: List[Chunk] = []
    step = size - overlap
    order = 0
    position = 0

    while position < n:
        content = trimmed[position:position + size].strip()
        if content:
            chunks.append(
                Chunk(
                    content=content,
                    metadata=ChunkMetadata(
                        order=order,
                        char_offset=position,
                        original_length=n,
                        source=source,
                    ),
                )
            )
            order += 1

        position += step

        # Remainder shorter than the overlap is already (mostly) in the last chunk
        if position < n and n - position < overlap:
            break

    logger.debug("Chunked %d chars into %d chunks (size=%d, overlap=%d)", n, len(chunks), size, overlap)
    return chunks


_CODE_BLOCK = re.compile(r"```[\s\S]*?```")
_CODE_FENCE = re.compile(r"```\w*\n?")
_INLINE_CODE = re.compile(r"`([^`]+)`")
_HEADING = re.compile(r"^#{1,6}[ \t]+", re.M)
_BLOCKQUOTE = re.compile(r"^>[ \t]?", re.M)
_HORIZONTAL_RULE = re.compile(r"^[ \t]*([-*_])(?:[ \t]*\1){2,}[ \t]*$", re.M)
_BULLET = re.compile(r"^[ \t]*[-*+][ \t]+", re.M)
_NUMBERED = re.compile(r"^[ \t]*\d+\.[ \t]+", re.M)
_BOLD_STARS = re.compile(r"\*\*([^*\n]+)\*\*")
_ITALIC_STAR = re.compile(r"\*([^*\n]+)\*")
_BOLD_UNDERSCORES = re.compile(r"(?<!\w)__([^_\n]+)__(?!\w)")
_ITALIC_UNDERSCORE = re.compile(r"(?<!\w)_([^_\n]+)_(?!\w)")
_IMAGE = re.compile(r"!\[([^\]]*)\]\([^)]+\)")
_LINK = re.compile(r"\[([^\]]+)\]\([^)]+\)")
_BLANK_RUNS = re.compile(r"\n{3,}")


def _unfence(match: "re.Match[str]") -> str:
    return _CODE_FENCE.sub("", match.group(0)).replace("```", "").strip()


def md_to_text(markdown: str) -> str:
    """Convert Markdown to plain text for embedding.

    Strips common, well-formed Markdown syntax while keeping the text: code fences
    (content kept), inline code, headings, bold/italic, images (alt kept), links
    (label kept), blockquotes, horizontal rules and list markers. Runs of three or
    more newlines collapse to one blank line. Nested or malformed markup is not
    handled.

    Args:
        markdown: Markdown source.

    Returns:
        str: Plain text.
    """
    text = _CODE_BLOCK.sub(_unfence, markdown)
    text = _INLINE_CODE.sub(r"\1", text)
    text = _HEADING.sub("", text)
    text = _BLOCKQUOTE.sub("", text)
    # line markers go first so "* item" bullets are not read as emphasis
    text = _HORIZONTAL_RULE.sub("", text)
    text = _BULLET.sub("", text)
    text = _NUMBERED.sub("", text)
    text = _BOLD_STARS.sub(r"\1", text)
    text = _ITALIC_STAR.sub(r"\1", text)
    text = _BOLD_UNDERSCORES.sub(r"\1", text)
    text = _ITALIC_UNDERSCORE.sub(r"\1", text)
    text = _IMAGE.sub(r"\1", text)
    text = _LINK.sub(r"\1", text)
    text = _BLANK_RUNS.sub("\n\n", text)
    return text.strip()


def split_paragraphs(text: str) -> List[str]:
    """Split text on blank-line boundaries.

    Args:
        text: Input text.

    Returns:
        List[str]: Trimmed, non-empty paragraphs.
    """
    return [p.strip() for p in re.split(r"\n\s*\n", text) if p.strip()]
