"""Utility helpers for working with files."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Iterator

SUPPORTED_EXTENSIONS = frozenset({".pdf", ".txt", ".docx"})


def file_extension(name: str | Path) -> str:
    return Path(name).suffix.lower()


def is_supported(name: str | Path) -> bool:
    return file_extension(name) in SUPPORTED_EXTENSIONS


def iter_document_paths(inputs: Iterable[Path]) -> Iterator[Path]:
    """Yield supported document paths, descending into directories."""
    for item in inputs:
        if item.is_dir():
            yield from iter_document_paths(
                sorted(child for child in item.rglob("*") if child.is_file() and is_supported(child))
            )
        elif item.is_file() and is_supported(item):
            yield item
