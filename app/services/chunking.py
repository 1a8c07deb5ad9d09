from typing import List

from app.models.models import TextChunk
from app.utils.config import CHUNK_SIZE, CHUNK_OVERLAP
from app.utils.exceptions import ValidationError

SENTENCE_CUT = 0.7
WORD_CUT = 0.8


def chunk_text(text: str, size: int = CHUNK_SIZE, overlap: int = CHUNK_OVERLAP) -> List[TextChunk]:
    """
    Split text into overlapping windows of at most `size` characters.

    A window that stops short of the end of the text is cut after its last
    '.' past 70% of `size`, otherwise at its last space past 80% of `size`.
    Offsets point into `text` and describe the untrimmed window; the chunk
    text itself is stripped. Each step advances by window length - overlap.
    """
    if size <= 0:
        raise ValidationError("Chunk size must be positive", field="size", value=size)
    if overlap < 0 or overlap >= size:
        raise ValidationError("Chunk overlap must be in [0, size)", field="overlap", value=overlap)

    chunks: List[TextChunk] = []
    length = len(text)
    start = 0

    while start < length:
        end = min(start + size, length)
        window = text[start:end]

        if end < length:
            last_sentence = window.rfind(".")
            last_word = window.rfind(" ")
            if last_sentence > size * SENTENCE_CUT:
                window = window[:last_sentence + 1]
            elif last_word > size * WORD_CUT:
                window = window[:last_word]

        chunks.append(TextChunk(
            text=window.strip(),
            start_offset=start,
            end_offset=start + len(window),
        ))

        if start + len(window) >= length:
            break
        # a boundary cut can leave a window shorter than the overlap
        start += max(1, len(window) - overlap)

    return chunks
