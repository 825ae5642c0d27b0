"""
Rule tables for pattern-based lead extraction.

Each field has an ordered list of rules; the first match that passes the
field's validity filter wins.
"""

import re

# Capitalized word sequences ("Acme Construction", "Hilton Hotels & Resorts")
_CAP_WORD = r"[A-Z][A-Za-z0-9&'\-]*(?:\.[A-Za-z]+)*"
_CAP_SEQ = rf"{_CAP_WORD}(?:\s+(?:&\s+)?{_CAP_WORD}){{0,5}}"

COMPANY_SUFFIXES = [
    "Inc", "LLC", "L\\.L\\.C", "Corp", "Corporation", "Group", "Holdings", "Enterprises",
    "Partners", "Associates", "Company", "Co", "Ltd", "Limited", "LP", "LLP", "PLC",
    "Realty", "Properties", "Developers", "Development", "Construction", "Builders",
    "Contractors", "Hospitality", "Hotels", "Resorts", "Capital", "Ventures", "Investments",
]
_SUFFIX = "|".join(COMPANY_SUFFIXES)

_ANNOUNCE_VERBS = (
    r"announces|announced|launches|launched|unveils|unveiled|plans|planned|proposes|proposed|"
    r"is developing|will build|will develop|breaks ground|broke ground|opens|opened|"
    r"expands|expanded|acquires|acquired|files|filed|submits|submitted"
)

COMPANY_RULES = [
    re.compile(rf"\b({_CAP_SEQ}\s+(?:{_SUFFIX}))\b\.?"),
    re.compile(rf"\b({_CAP_SEQ})\s+(?:{_ANNOUNCE_VERBS})\b"),
    re.compile(rf"\b(?:announced|developed|constructed|launched|planned|proposed|built|owned|led|backed) by\s+(?:the\s+)?({_CAP_SEQ})"),
    re.compile(rf"\b(?:developer|company|firm|contractor|owner|builder)\s*[:\-]\s*({_CAP_SEQ})"),
]

# Leading words that are swallowed by capitalized-sequence matching
COMPANY_LEADING_NOISE = {
    "the", "a", "an", "today", "yesterday", "recently", "meanwhile", "however", "also",
    "in", "on", "at", "by", "for", "from", "with", "and", "but", "as", "after", "when",
    "contact", "email", "phone", "call", "reach", "developer", "company", "firm", "local", "new",
}

COMMON_WORDS = {
    "the", "this", "that", "these", "those", "and", "or", "but", "with", "for", "from", "into",
    "new", "project", "projects", "development", "construction", "company", "group", "business",
    "city", "county", "state", "news", "report", "today", "contact", "email", "phone",
    "hotel", "office", "apartment", "building", "inc", "llc", "corp", "ltd", "co",
}

MONTHS = {
    "january", "february", "march", "april", "may", "june", "july", "august",
    "september", "october", "november", "december",
    "jan", "feb", "mar", "apr", "jun", "jul", "aug", "sep", "sept", "oct", "nov", "dec",
}

WEEKDAYS = {"monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"}

LOCATION_WORDS = {"downtown", "uptown", "midtown", "north", "south", "east", "west", "central"}

_PLACE = r"[A-Z][a-z]+(?:[\s\-][A-Z][a-z]+){0,2}"
STREET_TYPES = r"Street|St|Avenue|Ave|Road|Rd|Boulevard|Blvd|Drive|Dr|Lane|Ln|Way|Place|Pl|Court|Ct|Parkway|Pkwy|Highway|Hwy"

LOCATION_RULES = [
    re.compile(rf"\b({_PLACE},\s*[A-Z]{{2}})\b"),
    re.compile(rf"\b(\d{{1,6}}\s+(?:[A-Z][a-z]+\s+){{1,3}}(?:{STREET_TYPES}))\b\.?"),
    re.compile(rf"\b((?i:downtown|uptown|midtown|greater|central|north|south|east|west)\s+{_PLACE})\b"),
    re.compile(rf"\b({_PLACE}\s+(?:County|City|District|Borough|Region|Parish|Township))\b"),
    re.compile(rf"\b(?:in|near|within|located in|based in)\s+({_PLACE})\b"),
]

PROJECT_TYPES = [
    "hotel", "resort", "apartment", "condominium", "condo", "office", "retail", "industrial",
    "warehouse", "restaurant", "entertainment", "healthcare", "hospital", "education", "school",
    "residential", "mixed-use", "commercial", "hospitality", "tourism", "infrastructure",
]

PROJECT_TYPE_RULES = [
    (project_type, re.compile(rf"\b{re.escape(project_type)}s?\b", re.IGNORECASE))
    for project_type in PROJECT_TYPES
]

# Budget amounts: digits with optional thousands separators and decimals
_AMOUNT = r"(?P<amount>\d{1,3}(?:,\d{3})+(?:\.\d+)?|\d+(?:\.\d+)?)"
_UNIT = r"(?P<unit>thousand|million|billion|bn|mn|[kKmMbB])\b"

BUDGET_RULES = [
    re.compile(rf"\$\s?{_AMOUNT}\s*{_UNIT}", re.IGNORECASE),
    re.compile(
        rf"\b(?:budget|cost|costs|investment|valued at|worth|price tag|funding|financing|"
        rf"spend|invest|investing)\s*(?:of|is|was|at|:|about|around|approximately|nearly|over)?\s*"
        rf"(?:about|around|approximately|nearly|over)?\s*(?P<dollar>\$)?\s?{_AMOUNT}\s*(?:{_UNIT})?",
        re.IGNORECASE,
    ),
    re.compile(rf"\b{_AMOUNT}\s*(?P<unit>thousand|million|billion)\s*(?:dollars?|USD)\b", re.IGNORECASE),
    re.compile(rf"\$\s?{_AMOUNT}(?![\d,])"),
]

BUDGET_MULTIPLIERS = {
    "k": 1_000, "thousand": 1_000,
    "m": 1_000_000, "mn": 1_000_000, "million": 1_000_000,
    "b": 1_000_000_000, "bn": 1_000_000_000, "billion": 1_000_000_000,
}

# (upper bound exclusive, bucket value)
BUDGET_BUCKETS = [
    (10_000, "under_10k"),
    (50_000, "10k_50k"),
    (100_000, "50k_100k"),
    (500_000, "100k_500k"),
    (1_000_000, "500k_1m"),
    (5_000_000, "1m_5m"),
    (10_000_000, "5m_10m"),
]

_YEAR = r"((?:19|20)\d{2})"
_QUARTER = r"(?:Q[1-4]|(?:first|second|third|fourth) quarter(?: of)?|early|mid|late|spring|summer|fall|autumn|winter)"

TIMELINE_RULES = [
    re.compile(
        rf"\b(?:complete[sd]?|completion|completing|finish(?:es|ed)?|open(?:s|ing)?|deliver(?:s|y)?|"
        rf"launch(?:es|ing)?|ready)\s+(?:in|by|during|before|around)\s+(?:the\s+)?(?:{_QUARTER}\s+)?{_YEAR}\b",
        re.IGNORECASE,
    ),
    re.compile(
        rf"\b(?:expected|scheduled|planned|targeted|slated|set)\s+(?:for\s+)?(?:completion|opening|delivery|launch)?\s*"
        rf"(?:in|by|during|for)\s+(?:{_QUARTER}\s+)?{_YEAR}\b",
        re.IGNORECASE,
    ),
    re.compile(rf"\b{_YEAR}\s+(?:completion|opening|delivery|launch|target)\b", re.IGNORECASE),
    re.compile(rf"\b(?:Q[1-4]|H[12])\s+{_YEAR}\b"),
]

TIMELINE_HORIZON_YEARS = 10

_COUNT = r"(\d{1,3}(?:,\d{3})+|\d+)"

ROOM_COUNT_RULES = [
    re.compile(rf"\b{_COUNT}[\s\-]+(?:guest\s+|hotel\s+|luxury\s+|residential\s+)?(?:rooms?|suites?|keys|units?|apartments?|condos?|beds?)\b", re.IGNORECASE),
    re.compile(rf"\b(?:rooms?|suites?|keys|units?)\s*:\s*{_COUNT}\b", re.IGNORECASE),
]
ROOM_COUNT_MAX = 10_000

SQUARE_FOOTAGE_RULES = [
    (re.compile(rf"\b{_COUNT}[\s\-]*(?:sq\.?\s*ft\.?|square[\s\-]+f(?:ee|oo)t|sf\b|ft²)", re.IGNORECASE), 1.0),
    (re.compile(rf"\b(?:sq\.?\s*ft\.?|square\s+feet)\s*:?\s*{_COUNT}\b", re.IGNORECASE), 1.0),
    (re.compile(rf"\b{_COUNT}[\s\-]*(?:sq\.?\s*m\b|square[\s\-]+met(?:er|re)s?|m²)", re.IGNORECASE), 10.7639),
]
SQUARE_FOOTAGE_MAX = 100_000_000

EMPLOYEE_RULES = [
    re.compile(rf"\b{_COUNT}\s+(?:new\s+|full-time\s+|permanent\s+|local\s+)?(?:employees|staff|workers|jobs|positions|hires)\b", re.IGNORECASE),
    re.compile(rf"\b(?:employees|staff|workforce|headcount)\s*(?:of|:)\s*{_COUNT}\b", re.IGNORECASE),
]
EMPLOYEE_MAX = 10_000_000

# Personal names: 2 to 4 capitalized words
NAME_PATTERN = re.compile(r"\b([A-Z][a-z]+(?:[ \t]+[A-Z][a-z'\-]+){1,3})\b")
NAME_WINDOW = 100

NON_NAME_WORDS = {
    "contact", "contacts", "email", "phone", "tel", "call", "media", "press", "inquiries", "for", "more",
    "information", "info", "the", "and", "or", "at", "by", "to", "of", "in", "on", "mr", "mrs", "ms", "dr",
    "inc", "llc", "corp", "corporation", "group", "company", "ltd", "limited", "holdings", "partners",
    "street", "avenue", "road", "boulevard", "suite", "floor", "city", "county", "downtown",
    "construction", "development", "developers", "realty", "properties", "hotel", "hotels", "resort",
    "towers", "tower", "plaza", "center", "centre", "news", "project", "director", "manager", "president",
    "officer", "chief", "executive", "senior", "vice", "general",
} | MONTHS | WEEKDAYS

_TITLES = (
    r"(?:Chief\s+[A-Z][a-z]+\s+Officer|CEO|CTO|CFO|COO|CMO|Co-Founder|Founder|"
    r"(?:Senior\s+)?Vice\s+President(?:\s+of\s+[A-Z][a-z]+)?|President|VP(?:\s+of\s+[A-Z][a-z]+)?|"
    r"(?:Managing|Executive|Development|Project|Regional|General|Sales|Marketing)\s+(?:Director|Manager|Partner)|"
    r"Director(?:\s+of\s+[A-Z][a-z]+)?|Project\s+Manager|General\s+Manager|Manager|"
    r"Principal|Partner|Owner|Spokesperson|Spokeswoman|Spokesman)"
)
TITLE_PATTERN = re.compile(rf"\b({_TITLES})\b")
TITLE_WINDOW = 60

# "said Jane Doe, CEO of Acme" style mentions without a contact channel
SPOKESPERSON_PATTERN = re.compile(
    r"\b(?:said|says|according to|stated|noted)\s+([A-Z][a-z]+(?:\s+[A-Z][a-z'\-]+){1,3}),\s+(?:the\s+)?"
    rf"({_TITLES})\b"
)

CONTACT_COMPANY_PATTERN = re.compile(rf"^\s*,?\s*(?:[^,.]{{0,40}}?\s)?(?:of|at|with)\s+({_CAP_SEQ})")

MAX_CONTACTS = 15
UNMATCHED_CONTACT_CONFIDENCE = 20

CONTACT_WEIGHTS = {
    "name": 40,
    "email": 35,
    "phone": 25,
    "title": 15,
    "multi_channel_bonus": 20,
}

# Industry categories in priority order; first category with a keyword hit wins
INDUSTRY_KEYWORDS = [
    ("healthcare", ["hospital", "medical", "clinic", "healthcare", "health care", "senior living", "assisted living", "nursing"]),
    ("education", ["school", "university", "college", "campus", "education", "student housing", "academy"]),
    ("hospitality", ["hotel", "resort", "hospitality", "inn", "motel", "lodging", "boutique hotel", "suites"]),
    ("residential", ["apartment", "condominium", "condo", "residential", "housing", "homes", "townhome", "multifamily", "multi-family"]),
    ("commercial", ["office", "commercial", "headquarters", "business park", "coworking", "corporate campus"]),
    ("retail", ["retail", "shopping", "mall", "store", "outlet", "restaurant", "grocery"]),
    ("industrial", ["industrial", "warehouse", "manufacturing", "factory", "distribution center", "logistics", "plant"]),
    ("infrastructure", ["infrastructure", "bridge", "highway", "transit", "airport", "railway", "utility", "water treatment"]),
]
DEFAULT_INDUSTRY = "mixed_use"

BUSINESS_KEYWORDS = [
    "development", "construction", "investment", "expansion", "renovation", "acquisition",
    "groundbreaking", "announcement", "project", "partnership", "opening", "financing",
]
INDUSTRY_TERMS = [
    "hotel", "resort", "hospitality", "apartment", "residential", "office", "retail", "industrial",
    "warehouse", "mixed-use", "healthcare", "education", "infrastructure", "real estate",
]
LOCATION_TERMS = ["downtown", "uptown", "midtown", "waterfront", "suburban", "urban", "district"]
PROPER_NOUN_PATTERN = re.compile(r"\b[A-Z][a-z]{3,}(?:\s+[A-Z][a-z]{3,})?\b")
MAX_KEYWORDS = 10

DESCRIPTION_KEYWORDS = [
    "announce", "plan", "develop", "build", "construct", "open", "launch", "propose",
    "invest", "expand", "renovat", "project",
]
MAX_DESCRIPTION_LENGTH = 500
MIN_DESCRIPTION_LENGTH = 20
