"""Conversion strategy interface."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional


class ConversionStrategy(ABC):
    """One way of turning DOCX bytes into PDF bytes."""

    name: str = "strategy"

    def is_available(self) -> bool:
        """Cheap pre-check; unavailable strategies are skipped without logging a failure."""
        return True

    @abstractmethod
    def convert(self, docx_bytes: bytes) -> Optional[bytes]:
        """
        Convert a filled DOCX.

        Returns:
            PDF bytes, or None when this strategy failed. Implementations do
            not raise for conversion problems.
        """
        raise NotImplementedError
