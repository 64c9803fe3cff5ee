"""
Translator Adapter — optional translation of normalized segment text.

A failing or missing translation never fails the segment: the adapter
returns None and the segment keeps translated_text=None.
"""

import logging
from typing import Optional

from .interfaces import Translator

logger = logging.getLogger(__name__)


class TranslatorAdapter:

    def __init__(self, translator: Optional[Translator], config=None):
        self.translator = translator
        self.enabled = getattr(config, "enabled", False)
        self.target_language = getattr(config, "target_language", "en")

    @property
    def active(self) -> bool:
        return self.enabled and self.translator is not None

    def translate(self, text: str, source_language: str) -> Optional[str]:
        """Translate into the target language, or None when not applicable."""
        if not self.active or not text:
            return None
        if source_language == self.target_language:
            return None

        try:
            translated = self.translator.translate(text, source_language, self.target_language)
        except Exception as e:
            logger.warning(
                f"Translation {source_language}->{self.target_language} failed "
                f"for '{text[:40]}': {e}"
            )
            return None

        if translated is None:
            return None
        translated = translated.strip()
        return translated or None
