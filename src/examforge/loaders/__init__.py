"""Document loaders for examforge."""

from examforge.loaders.files import FileTextExtractor, clean_text, count_words

__all__ = [
    "FileTextExtractor",
    "clean_text",
    "count_words",
]
