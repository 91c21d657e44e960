"""Port for turning uploaded documents into plain text."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class TextExtractor(Protocol):
    """Callable port for OCR / PDF text extraction.

    Implementations raise ``TextExtractionError`` when no text can be produced.
    """

    async def __call__(self, source: object) -> str: ...


__all__ = ["TextExtractor"]
