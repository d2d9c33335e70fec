"""
OCR Result Data Classes.

This module defines data structures for OCR output. Stamps carry very
little text, so only words and their confidences are kept; the parser
works on the joined text.

Classes:
    OCRWord: Individual recognized word
    OCRResult: Complete OCR output for one image
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass
class OCRWord:
    """
    Represents a single word/token recognized by OCR.

    Attributes:
        text: The recognized text content
        confidence: OCR confidence score (0-100)
        line_index: Index of the line this word belongs to
    """
    text: str
    confidence: float = 0.0
    line_index: int = 0

    def __repr__(self) -> str:
        return f"OCRWord('{self.text}', conf={self.confidence:.1f})"


@dataclass
class OCRResult:
    """
    Complete OCR output for a single image.

    Attributes:
        words: Recognized words in reading order
        engine: Name of the OCR backend
        processing_time: Seconds spent recognizing
        metadata: Backend-specific details
    """
    words: List[OCRWord] = field(default_factory=list)
    engine: str = "unknown"
    processing_time: float = 0.0
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def text(self) -> str:
        """Words joined line by line."""
        lines: Dict[int, List[str]] = {}
        for word in self.words:
            lines.setdefault(word.line_index, []).append(word.text)
        return "\n".join(" ".join(lines[index]) for index in sorted(lines))

    @property
    def word_count(self) -> int:
        return len(self.words)

    @property
    def average_confidence(self) -> float:
        """Mean word confidence (0-100), 0 when nothing was recognized."""
        if not self.words:
            return 0.0
        return sum(word.confidence for word in self.words) / len(self.words)
