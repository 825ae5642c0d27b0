"""
Search keyword expansion
"""

from typing import Dict, List

MAX_EXPANDED_KEYWORDS = 25

SYNONYMS: Dict[str, List[str]] = {
    # Hospitality
    "hotel": ["boutique hotel", "luxury hotel", "business hotel", "resort hotel", "hotel brand"],
    "boutique": ["boutique hotel", "lifestyle hotel", "designer hotel"],
    "luxury": ["luxury hotel", "upscale hotel", "five-star hotel"],
    "resort": ["resort hotel", "beach resort", "spa resort"],

    # Development
    "development": ["real estate development", "property development", "construction project"],
    "construction": ["construction project", "building construction", "renovation project"],
    "project": ["development project", "construction project", "real estate project"],
    "building": ["building project", "new construction", "building development"],

    # Business
    "business": ["business development", "commercial development", "business expansion"],
    "expansion": ["business expansion", "facility expansion", "expansion plans"],
    "investment": ["capital investment", "development investment", "property investment"],

    # Real estate
    "real estate": ["property development", "commercial real estate", "mixed-use development"],
    "property": ["property development", "commercial property", "investment property"],
    "commercial": ["commercial real estate", "office development", "retail development"],
    "apartment": ["apartment complex", "multifamily development", "residential development"],

    # Announcements
    "announcement": ["project announcement", "development announcement", "opening announcement"],
    "opening": ["grand opening", "hotel opening", "facility opening"],
    "renovation": ["hotel renovation", "building renovation", "property renovation"],
    "infrastructure": ["infrastructure project", "public infrastructure", "urban infrastructure"],
}

ACTION_TERMS = ["plans", "announces", "proposes", "breaks ground"]


def expand_keywords(keywords: List[str], limit: int = MAX_EXPANDED_KEYWORDS) -> List[str]:
    """Original keywords first, then synonyms and action phrases, capped at limit"""
    expanded: List[str] = []

    def add(term: str):
        term = term.strip().lower()
        if term and term not in expanded and len(expanded) < limit:
            expanded.append(term)

    for keyword in keywords:
        add(keyword)

    for keyword in keywords:
        lowered = keyword.strip().lower()
        for key, synonyms in SYNONYMS.items():
            if key == lowered or key in lowered.split() or (" " in key and key in lowered):
                for synonym in synonyms:
                    add(synonym)

    for keyword in keywords:
        for action in ACTION_TERMS:
            add(f"{keyword} {action}")

    return expanded
