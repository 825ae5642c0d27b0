"""
Extraction engine: derives structured lead fields from fetched content
"""

import logging
import re
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..errors import CompletionError, ExtractionDegraded
from ..models import BudgetRange, ContactCandidate, CustomFieldSpec, ExtractedFields, FetchedContent
from ..utils import (
    EMAIL_PATTERN, PHONE_PATTERN, SKIPPED_EMAIL_PATTERNS, format_phone, normalize_company_name,
    normalize_whitespace, split_sentences
)
from . import patterns
from .ai import AIFieldExtractor, coerce_value

logger = logging.getLogger(__name__)

COMPANY_SUFFIX_WORDS = {suffix.replace("\\", "").lower() for suffix in patterns.COMPANY_SUFFIXES}

_INDUSTRY_RULES = [
    (category, [re.compile(rf"\b{re.escape(keyword)}s?\b") for keyword in keywords])
    for category, keywords in patterns.INDUSTRY_KEYWORDS
]

_STOP_WORDS = {
    "the", "a", "an", "and", "or", "of", "to", "in", "on", "for", "with", "by", "at", "from",
    "this", "that", "is", "are", "was", "be", "any", "its", "their", "value", "field", "information",
}


# Field validity filters

def _clean_company(raw: str) -> Optional[str]:
    words = raw.strip(" .,;:").split()
    while words and words[0].lower() in patterns.COMPANY_LEADING_NOISE:
        words.pop(0)

    name = " ".join(words)
    if not 2 <= len(name) <= 60:
        return None

    lowered = [word.lower().strip(".,") for word in words]
    if name.lower() in patterns.COMMON_WORDS or "$" in name:
        return None
    if re.fullmatch(r"[\d\s,.%]+", name):
        return None
    if any(word in patterns.MONTHS or word in patterns.WEEKDAYS for word in lowered):
        return None
    if lowered[0] in patterns.LOCATION_WORDS:
        return None
    if all(word in patterns.COMMON_WORDS or word in COMPANY_SUFFIX_WORDS for word in lowered):
        return None
    return name


def _clean_location(raw: str) -> Optional[str]:
    words = raw.strip(" .,;:").split()
    if words and words[0].lower() == "the":
        words.pop(0)

    location = " ".join(words)
    if not 2 <= len(location) <= 60 or not re.search(r"[A-Za-z]", location):
        return None

    lowered = [word.lower().strip(".,") for word in words]
    if location.lower() in patterns.COMMON_WORDS:
        return None
    if lowered[0] in patterns.MONTHS or lowered[0] in patterns.WEEKDAYS:
        return None
    if any(word in COMPANY_SUFFIX_WORDS for word in lowered):
        return None
    return location


def _clean_name(raw: str) -> Optional[str]:
    words = raw.split()
    while words and words[0].lower() in patterns.NON_NAME_WORDS:
        words.pop(0)

    if not 2 <= len(words) <= 4:
        return None
    if any(word.lower() in patterns.NON_NAME_WORDS for word in words):
        return None
    return " ".join(words)


# Field extractors. Each returns None (or an empty collection) when nothing matches.

def extract_company(text: str) -> Optional[str]:
    for rule in patterns.COMPANY_RULES:
        for match in rule.finditer(text):
            company = _clean_company(match.group(1))
            if company:
                return company
    return None


def extract_location(text: str) -> Optional[str]:
    for rule in patterns.LOCATION_RULES:
        for match in rule.finditer(text):
            location = _clean_location(match.group(1))
            if location:
                return location
    return None


def extract_project_type(text: str) -> Optional[str]:
    for project_type, rule in patterns.PROJECT_TYPE_RULES:
        if rule.search(text):
            return project_type
    return None


def extract_budget(text: str) -> Optional[float]:
    """First plausible budget amount, scaled by its thousand/million/billion cue"""
    for rule in patterns.BUDGET_RULES:
        for match in rule.finditer(text):
            groups = match.groupdict()
            raw_amount = groups["amount"]
            unit = (groups.get("unit") or "").lower()
            has_dollar = "$" in match.group(0)

            amount = float(raw_amount.replace(",", ""))
            if not unit and not has_dollar:
                # Bare numbers after "cost"/"budget" need a thousands separator to count
                if "," not in raw_amount:
                    continue
            if unit:
                amount *= patterns.BUDGET_MULTIPLIERS[unit]
            if amount > 0:
                return amount
    return None


def budget_range(amount: Optional[float]) -> BudgetRange:
    """Bucket for a budget amount; each bucket includes its lower bound"""
    if amount is None:
        return BudgetRange.NOT_SPECIFIED
    for upper, bucket in patterns.BUDGET_BUCKETS:
        if amount < upper:
            return BudgetRange(bucket)
    return BudgetRange.OVER_10M


def extract_timeline(text: str, current_year: int) -> Optional[int]:
    """Completion year within [current_year, current_year + 10]; other years are discarded"""
    latest = current_year + patterns.TIMELINE_HORIZON_YEARS
    for rule in patterns.TIMELINE_RULES:
        for match in rule.finditer(text):
            year = int(match.group(1))
            if current_year <= year <= latest:
                return year
    return None


def _first_count(rules, text: str, upper: float, scale_rules: bool = False) -> Optional[int]:
    for entry in rules:
        rule, scale = entry if scale_rules else (entry, 1.0)
        for match in rule.finditer(text):
            value = int(round(int(match.group(1).replace(",", "")) * scale))
            if 0 < value < upper:
                return value
    return None


def extract_room_count(text: str) -> Optional[int]:
    return _first_count(patterns.ROOM_COUNT_RULES, text, patterns.ROOM_COUNT_MAX)


def extract_square_footage(text: str) -> Optional[int]:
    return _first_count(patterns.SQUARE_FOOTAGE_RULES, text, patterns.SQUARE_FOOTAGE_MAX, scale_rules=True)


def extract_employee_count(text: str) -> Optional[int]:
    return _first_count(patterns.EMPLOYEE_RULES, text, patterns.EMPLOYEE_MAX)


def calculate_contact_confidence(
    name: Optional[str] = None,
    email: Optional[str] = None,
    phone: Optional[str] = None,
    title: Optional[str] = None,
) -> int:
    weights = patterns.CONTACT_WEIGHTS
    score = 0
    if name:
        score += weights["name"]
    if email:
        score += weights["email"]
    if phone:
        score += weights["phone"]
    if title:
        score += weights["title"]
    if sum(1 for value in (name, email, phone) if value) >= 2:
        score += weights["multi_channel_bonus"]
    return min(score, 100)


def _nearest_name(text: str, position: int) -> Optional[Tuple[str, int]]:
    """Closest personal name ending before position, with its end offset"""
    start = max(0, position - patterns.NAME_WINDOW)
    window = text[start:position]

    nearest = None
    for match in patterns.NAME_PATTERN.finditer(window):
        name = _clean_name(match.group(1))
        if name:
            nearest = (name, start + match.end())
    return nearest


def _contact_title(text: str, name_end: int) -> Optional[str]:
    match = patterns.TITLE_PATTERN.search(text[name_end:name_end + patterns.TITLE_WINDOW])
    return normalize_whitespace(match.group(1)) if match else None


def _contact_company(text: str, name_end: int, email: Optional[str], lead_company: Optional[str]) -> Optional[str]:
    match = patterns.CONTACT_COMPANY_PATTERN.match(text[name_end:name_end + 80])
    if match:
        company = _clean_company(match.group(1))
        if company:
            return company
    return _company_from_email(email, lead_company)


def _company_from_email(email: Optional[str], lead_company: Optional[str]) -> Optional[str]:
    if not email or not lead_company or "@" not in email:
        return None
    labels = email.split("@")[1].split(".")
    if len(labels) < 2:
        return None
    label = labels[-2]
    if len(label) >= 3 and label in normalize_company_name(lead_company).replace(" ", ""):
        return lead_company
    return None


def extract_contacts(text: str, lead_company: Optional[str] = None) -> List[ContactCandidate]:
    """Harvest emails and phones, then attach each to the nearest preceding name"""
    if not text:
        return []

    items = []
    for match in EMAIL_PATTERN.finditer(text):
        email = match.group(0).lower()
        if not any(skip in email for skip in SKIPPED_EMAIL_PATTERNS):
            items.append((match.start(), "email", email))
    for match in PHONE_PATTERN.finditer(text):
        items.append((match.start(), "phone", format_phone(match.group(0))))
    items.sort(key=lambda item: item[0])

    entries: List[Dict[str, Any]] = []
    by_name: Dict[str, Dict[str, Any]] = {}
    seen = set()

    for position, kind, value in items:
        if value in seen:
            continue
        seen.add(value)

        nearest = _nearest_name(text, position)
        if nearest:
            name, name_end = nearest
            entry = by_name.get(name)
            if entry is None:
                entry = {"name": name, "name_end": name_end}
                by_name[name] = entry
                entries.append(entry)
            if entry.get(kind) is None:
                entry[kind] = value
                continue

        entries.append({kind: value, "unmatched": True})

    for match in patterns.SPOKESPERSON_PATTERN.finditer(text):
        name = _clean_name(match.group(1))
        if not name:
            continue
        entry = by_name.get(name)
        if entry is None:
            entry = {"name": name, "name_end": match.end(1)}
            by_name[name] = entry
            entries.append(entry)
        entry.setdefault("title", normalize_whitespace(match.group(2)))

    contacts = []
    for entry in entries[:patterns.MAX_CONTACTS]:
        email = entry.get("email")
        phone = entry.get("phone")

        if entry.get("unmatched"):
            contact = ContactCandidate(
                email=email,
                phone=phone,
                company=_company_from_email(email, lead_company),
                confidence=patterns.UNMATCHED_CONTACT_CONFIDENCE,
            )
        else:
            name = entry["name"]
            title = entry.get("title") or _contact_title(text, entry["name_end"])
            contact = ContactCandidate(
                name=name,
                title=title,
                company=_contact_company(text, entry["name_end"], email, lead_company),
                email=email,
                phone=phone,
                confidence=calculate_contact_confidence(name, email, phone, title),
            )

        if contact.has_channel():
            contacts.append(contact)

    return contacts


def classify_industry(text: str) -> Optional[str]:
    if not text or not text.strip():
        return None
    lowered = text.lower()
    for category, rules in _INDUSTRY_RULES:
        if any(rule.search(lowered) for rule in rules):
            return category
    return patterns.DEFAULT_INDUSTRY


def extract_keywords(text: str) -> List[str]:
    if not text:
        return []

    lowered = text.lower()
    keywords: List[str] = []
    for term in patterns.BUSINESS_KEYWORDS + patterns.INDUSTRY_TERMS + patterns.LOCATION_TERMS:
        if term in lowered and term not in keywords:
            keywords.append(term)

    for match in patterns.PROPER_NOUN_PATTERN.finditer(text):
        term = match.group(0).lower()
        if term.split()[0] in patterns.NON_NAME_WORDS or term in _STOP_WORDS:
            continue
        if term not in keywords:
            keywords.append(term)

    return keywords[:patterns.MAX_KEYWORDS]


def extract_description(text: str) -> Optional[str]:
    sentences = [s for s in split_sentences(text) if len(s) >= patterns.MIN_DESCRIPTION_LENGTH]
    if not sentences:
        return None

    for sentence in sentences:
        lowered = sentence.lower()
        if any(keyword in lowered for keyword in patterns.DESCRIPTION_KEYWORDS):
            return sentence[:patterns.MAX_DESCRIPTION_LENGTH]
    return sentences[0][:patterns.MAX_DESCRIPTION_LENGTH]


def calculate_pattern_confidence(fields: Dict[str, Any], text_length: int) -> int:
    """Weighted completeness score in [0, 100]"""
    score = 0
    if fields.get("company"):
        score += 20
    if fields.get("location"):
        score += 15
    if fields.get("budget_amount") is not None:
        score += 20
    if fields.get("contacts"):
        score += 15

    details = ("project_type", "timeline_year", "room_count", "square_footage")
    known = sum(1 for key in details if fields.get(key) is not None)
    score += round(20 * known / len(details))

    if text_length > 500:
        score += 10
    elif text_length > 200:
        score += 5

    return max(0, min(100, score))


def match_custom_field(text: str, field: CustomFieldSpec) -> Any:
    """Deterministic custom-field lookup: the sentence sharing most words with the field description"""
    cue_words = {
        word for word in re.findall(r"[a-z]{4,}", f"{field.display_name} {field.description}".lower())
        if word not in _STOP_WORDS
    }
    if not cue_words:
        return None

    best_sentence, best_score = None, 0
    for sentence in split_sentences(text):
        words = set(re.findall(r"[a-z]{4,}", sentence.lower()))
        score = len(cue_words & words)
        if score > best_score:
            best_sentence, best_score = sentence, score

    if best_sentence is None:
        return None
    return coerce_value(best_sentence, field.data_type)


def analysis_text(content: FetchedContent) -> str:
    """Text analysed for a candidate: page text when fetched, else title and snippet"""
    candidate = content.candidate
    if content.fetch_succeeded and content.raw_text:
        title = content.title or candidate.title
        body = content.raw_text
        if content.meta_description and content.meta_description not in body:
            body = f"{content.meta_description} {body}"
    else:
        title = candidate.title
        body = candidate.snippet

    parts = [normalize_whitespace(part).rstrip(".!? ") for part in (title, body) if part and part.strip()]
    if not parts:
        return ""
    if len(parts) == 2 and parts[1].startswith(parts[0]):
        parts = parts[1:]
    return ". ".join(parts) + "."


class ExtractionEngine:
    """Pattern extraction with an optional AI path for custom fields.

    The AI answer cache and the call counters are owned by this instance.
    """

    def __init__(self, ai_extractor: Optional[AIFieldExtractor] = None, current_year: Optional[int] = None):
        self.ai_extractor = ai_extractor
        self.current_year = current_year
        self.stats = {
            "extractions": 0,
            "ai_fields_requested": 0,
            "ai_fields_resolved": 0,
            "ai_degraded": 0,
        }

    def _year(self) -> int:
        return self.current_year or datetime.now().year

    def extract_from_text(self, text: str, **source) -> ExtractedFields:
        """Pattern-only extraction over plain text"""
        text = normalize_whitespace(text)
        if not text:
            return ExtractedFields.unknown(**source)

        company = extract_company(text)
        budget_amount = extract_budget(text)
        fields = {
            "company": company,
            "location": extract_location(text),
            "project_type": extract_project_type(text),
            "industry_type": classify_industry(text),
            "budget_amount": budget_amount,
            "budget_range": budget_range(budget_amount),
            "timeline_year": extract_timeline(text, self._year()),
            "room_count": extract_room_count(text),
            "square_footage": extract_square_footage(text),
            "employee_count": extract_employee_count(text),
            "contacts": extract_contacts(text, company),
            "description": extract_description(text),
            "keywords": extract_keywords(text),
        }
        fields["pattern_confidence"] = calculate_pattern_confidence(fields, len(text))
        return ExtractedFields(**fields, **source)

    def extract_patterns(self, content: FetchedContent) -> ExtractedFields:
        """Pattern-only extraction for fetched content"""
        self.stats["extractions"] += 1
        candidate = content.candidate
        return self.extract_from_text(
            analysis_text(content),
            source_url=candidate.url,
            source_title=content.title or candidate.title,
            source_snippet=candidate.snippet,
            fetch_succeeded=content.fetch_succeeded,
        )

    async def extract(
        self,
        content: FetchedContent,
        custom_fields: Sequence[CustomFieldSpec] = (),
        use_ai: bool = False,
    ) -> ExtractedFields:
        """Pattern fields plus custom field values for one candidate"""
        extracted = self.extract_patterns(content)
        visible = [field for field in custom_fields if field.visible]
        if not visible:
            return extracted

        text = analysis_text(content)
        if not text:
            return extracted

        if use_ai and self.ai_extractor is not None:
            custom_values = await self._extract_custom_with_ai(text, visible)
        elif use_ai:
            logger.debug("AI extraction requested but no completion provider configured")
            custom_values = {}
        else:
            custom_values = {}
            for field in visible:
                value = match_custom_field(text, field)
                if value is not None:
                    custom_values[field.key] = value

        if not custom_values:
            return extracted
        return extracted.model_copy(update={"custom_values": custom_values})

    async def _extract_custom_with_ai(self, text: str, fields: List[CustomFieldSpec]) -> Dict[str, Any]:
        values = {}
        for field in fields:
            self.stats["ai_fields_requested"] += 1
            try:
                answer = await self.ai_extractor.extract_field(field, text)
            except CompletionError as e:
                degraded = ExtractionDegraded(field.key, e)
                self.stats["ai_degraded"] += 1
                logger.warning(str(degraded))
                continue

            value = coerce_value(answer, field.data_type)
            if value is not None:
                values[field.key] = value
                self.stats["ai_fields_resolved"] += 1
        return values

    def get_stats(self) -> Dict[str, int]:
        stats = dict(self.stats)
        if self.ai_extractor is not None:
            stats["ai_api_calls"] = self.ai_extractor.api_calls
            stats["ai_cache_hits"] = self.ai_extractor.cache_hits
            stats["ai_cache_size"] = len(self.ai_extractor.cache)
        return stats
