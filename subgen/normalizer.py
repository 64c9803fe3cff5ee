"""
Text Normalizer — restores punctuation and capitalization on raw ASR text.

Steps, in order:
  1. Collapse whitespace
  2. Insert a sentence break before coordinating conjunctions
     (or delegate punctuation to an optional PunctuationModel)
  3. Ensure terminal sentence punctuation
  4. Capitalize the first letter of each sentence

The heuristic path is idempotent: normalizing normalized text returns it
unchanged.
"""

import re
import logging
from typing import Optional

from .interfaces import PunctuationModel

logger = logging.getLogger(__name__)

CONJUNCTIONS = ("and", "but", "so", "then", "now")

_WHITESPACE = re.compile(r"\s+")
_CONJ = "|".join(CONJUNCTIONS)
# A word that is not itself a conjunction (any case), then a lowercase conjunction.
# "home and then" breaks once: "home. and then".
_CONJUNCTION_BREAK = re.compile(r"\b(?!(?i:%s)\b)(\w+)\s+(?=(?:%s)\s)" % (_CONJ, _CONJ))
_TERMINAL = re.compile(r"[.!?]$")
_SENTENCE_START = re.compile(r"(^|[.!?]\s+)([a-z])")


class TextNormalizer:
    """Deterministic punctuation and capitalization restorer."""

    def __init__(self, config=None, punctuation_model: Optional[PunctuationModel] = None):
        self.enable_punctuation = getattr(config, "enable_punctuation", True)
        self.enable_capitalization = getattr(config, "enable_capitalization", True)
        self.punctuation_model = punctuation_model

    def normalize(self, text: str) -> str:
        text = _WHITESPACE.sub(" ", text or "").strip()
        if not text:
            return ""

        if self.enable_punctuation:
            text = self._punctuate(text)
        if self.enable_capitalization:
            text = self.capitalize(text)
        return text

    def _punctuate(self, text: str) -> str:
        if self.punctuation_model is not None:
            try:
                restored = _WHITESPACE.sub(" ", self.punctuation_model.restore(text) or "").strip()
            except Exception as e:
                logger.warning(f"Punctuation model failed, using heuristic: {e}")
            else:
                if restored:
                    return self.ensure_terminal(restored)
        return self.ensure_terminal(_CONJUNCTION_BREAK.sub(r"\1. ", text))

    @staticmethod
    def ensure_terminal(text: str) -> str:
        if _TERMINAL.search(text):
            return text
        return text + "."

    @staticmethod
    def capitalize(text: str) -> str:
        return _SENTENCE_START.sub(lambda m: m.group(1) + m.group(2).upper(), text)
