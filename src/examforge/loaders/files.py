"""Text extraction from study documents.

Supported formats:
    - ``.txt`` and ``.md``: read as UTF-8
    - ``.docx``: paragraphs via python-docx (``pip install examforge[docx]``)

Legacy ``.doc`` and ``.pdf`` files are rejected with a conversion hint.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from examforge.core.exceptions import ExtractionError
from examforge.core.types import ExtractedText, SourceFile

logger = logging.getLogger(__name__)

TEXT_EXTENSIONS = frozenset({".txt", ".md"})
SUPPORTED_EXTENSIONS = TEXT_EXTENSIONS | {".docx"}

_MANY_NEWLINES = re.compile(r"\n{3,}")
_RUNS_OF_BLANKS = re.compile(r"[ \t]+")


def clean_text(text: str) -> str:
    """Normalize extracted text.

    Converts CRLF and CR line endings to LF, collapses three or more
    newlines to two, collapses runs of spaces and tabs to one space, and
    strips the result.
    """
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    text = _MANY_NEWLINES.sub("\n\n", text)
    text = _RUNS_OF_BLANKS.sub(" ", text)
    return text.strip()


def count_words(text: str) -> int:
    """Count whitespace-separated words."""
    return len(text.split())


def _read_docx(path: Path) -> str:
    try:
        import docx
    except ImportError as e:
        msg = "python-docx is not installed. Install it with: pip install examforge[docx]"
        raise ExtractionError(msg) from e

    try:
        document = docx.Document(str(path))
    except Exception as e:
        msg = f"Failed to read Word document {path.name}: {e}"
        raise ExtractionError(msg) from e

    return "\n".join(paragraph.text for paragraph in document.paragraphs)


class FileTextExtractor:
    """Extracts cleaned text from source files.

    Implements TextExtractorProtocol.

    Example:
        >>> extractor = FileTextExtractor()
        >>> extracted = extractor.extract(SourceFile(path="notes.txt"))
        >>> extracted.word_count
        1234
    """

    def extract(self, source: SourceFile) -> ExtractedText:
        """Extract text from a source file.

        Args:
            source: The file to read.

        Returns:
            ExtractedText with cleaned text, word and character counts.

        Raises:
            ExtractionError: If the file is missing, unsupported, unreadable or empty.
        """
        path = Path(source.path)
        if not path.is_file():
            msg = f"File not found: {path}"
            raise ExtractionError(msg)

        ext = path.suffix.lower()
        if ext == ".doc":
            msg = "Legacy .doc format not supported. Please convert to .docx or .txt"
            raise ExtractionError(msg)
        if ext == ".pdf":
            msg = "PDF format not supported. Please convert to .docx or .txt"
            raise ExtractionError(msg)
        if ext not in SUPPORTED_EXTENSIONS:
            supported = ", ".join(sorted(SUPPORTED_EXTENSIONS))
            msg = f"Unsupported file type: {ext or '(none)'}. Supported formats: {supported}"
            raise ExtractionError(msg)

        if ext == ".docx":
            raw = _read_docx(path)
        else:
            try:
                raw = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                msg = f"Failed to read {path.name}: {e}"
                raise ExtractionError(msg) from e

        text = clean_text(raw)
        if not text:
            msg = f"File {source.name} appears to be empty"
            raise ExtractionError(msg)

        logger.debug(f"Extracted {len(text)} chars from {source.name}")
        return ExtractedText(
            text=text,
            word_count=count_words(text),
            file_type=ext.lstrip("."),
            char_count=len(text),
        )
