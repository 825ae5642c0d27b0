"""
Lead extraction: pattern rules plus optional AI-assisted custom fields
"""

from .engine import ExtractionEngine, budget_range, extract_contacts
from .ai import AIExtractionCache, AIFieldExtractor, OpenAICompletionProvider, TextCompletionProvider

__all__ = [
    "ExtractionEngine",
    "budget_range",
    "extract_contacts",
    "AIExtractionCache",
    "AIFieldExtractor",
    "OpenAICompletionProvider",
    "TextCompletionProvider",
]
