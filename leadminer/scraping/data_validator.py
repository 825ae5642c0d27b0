"""
Lead verification: cross-validates extracted fields and scores final confidence
"""

import re
import logging
from typing import Dict, Any, List, Tuple

from .models import ContactCandidate, ExtractedFields, VerifiedLead
from .utils import is_valid_email, is_valid_phone, normalize_company_name

logger = logging.getLogger(__name__)

VERIFIED_THRESHOLD = 70

COMPANY_BONUS = 15
CONTACT_BONUS = 20
LOCATION_BONUS = 10
PROJECT_BONUS = 15
CROSS_REFERENCE_BONUS = 10
ISSUE_PENALTY = 5
RECOMMENDATION_BONUS = 2

# (minimum, maximum) plausible budget per project type
BUDGET_RANGES = {
    "hotel": (1_000_000, 500_000_000),
    "resort": (1_000_000, 500_000_000),
    "office": (500_000, 100_000_000),
}
DEFAULT_BUDGET_RANGE = (100_000, 100_000_000)

ROOM_COUNT_RANGES = {
    "hotel": (10, 5_000),
    "resort": (10, 5_000),
}

# Company naming cues compatible with each project type
PROJECT_COMPANY_CUES = {
    "hotel": ["hotel", "hospitality", "resort", "inn", "lodging"],
    "resort": ["hotel", "hospitality", "resort", "lodging"],
    "office": ["realty", "properties", "office", "commercial"],
    "apartment": ["residential", "living", "homes", "properties", "realty", "housing"],
    "condominium": ["residential", "living", "homes", "properties", "realty"],
    "condo": ["residential", "living", "homes", "properties", "realty"],
    "residential": ["residential", "living", "homes", "properties", "housing"],
    "retail": ["retail", "properties", "realty", "shopping"],
    "industrial": ["industrial", "logistics", "properties"],
    "warehouse": ["industrial", "logistics", "warehouse", "properties"],
    "healthcare": ["health", "medical", "care"],
    "hospital": ["health", "medical", "hospital", "care"],
    "education": ["education", "school", "university", "learning"],
    "school": ["education", "school", "learning"],
}
# Builders and developers are compatible with any project type
GENERAL_BUILDER_CUES = ["construction", "builders", "development", "developers", "contractors", "partners"]


class LeadVerificationEngine:
    """Verifies extracted lead fields and computes the final confidence"""

    def __init__(self):
        self.business_terms = [
            'inc', 'llc', 'corp', 'corporation', 'group', 'company', 'co', 'ltd', 'limited',
            'enterprises', 'holdings', 'partners', 'associates', 'lp', 'llp', 'plc',
        ]
        self.placeholder_patterns = [
            'lorem ipsum', 'test company', 'example corp', 'sample business', 'acme test',
        ]
        self.placeholder_names = {'test', 'example', 'sample', 'demo', 'unknown', 'n/a', 'none'}
        self.geographic_terms = [
            'downtown', 'uptown', 'midtown', 'district', 'area', 'county', 'city', 'state',
            'province', 'town', 'region', 'borough', 'parish', 'township', 'village', 'metro',
        ]
        self.location_patterns = [
            re.compile(r'^[A-Z][a-zA-Z\s\-]+,\s*[A-Z]{2}$'),
            re.compile(r'\d+\s+[A-Za-z\s]+(?:Street|St|Avenue|Ave|Road|Rd|Boulevard|Blvd|Drive|Dr|Lane|Ln|Way)\b'),
        ]

        self.stats = {
            "total_verified": 0,
            "verified_leads": 0,
            "total_confidence": 0,
        }

    def verify(self, extracted: ExtractedFields) -> VerifiedLead:
        """
        Run every plausibility check and score the lead

        Args:
            extracted: fields produced by the extraction engine

        Returns:
            VerifiedLead with final confidence, issues and recommendations
        """
        confidence = extracted.pattern_confidence
        issues: List[str] = []
        recommendations: List[str] = []
        details: Dict[str, Any] = {}

        checks = [
            ("company", self._verify_company),
            ("contacts", self._verify_contacts),
            ("location", self._verify_location),
            ("project", self._verify_project),
            ("cross_reference", self._verify_cross_reference),
        ]
        for name, check in checks:
            score, check_issues, check_recommendations, check_details = check(extracted)
            confidence += score
            issues.extend(check_issues)
            recommendations.extend(check_recommendations)
            details[name] = check_details

        if not extracted.fetch_succeeded:
            issues.append("Source content unavailable; fields derived from search snippet")

        final_confidence = round(confidence - ISSUE_PENALTY * len(issues) + RECOMMENDATION_BONUS * len(recommendations))
        final_confidence = max(0, min(100, final_confidence))
        verified = final_confidence >= VERIFIED_THRESHOLD

        self.stats["total_verified"] += 1
        self.stats["total_confidence"] += final_confidence
        if verified:
            self.stats["verified_leads"] += 1

        return VerifiedLead(
            extracted=extracted,
            source_url=extracted.source_url or "",
            final_confidence=final_confidence,
            verified=verified,
            issues=issues,
            recommendations=recommendations,
            details=details,
        )

    def _verify_company(self, extracted: ExtractedFields) -> Tuple[int, List[str], List[str], Dict[str, Any]]:
        """Company name format, placeholder tokens and business-entity cue"""
        company = extracted.company
        if not company:
            return 0, ["No company information to verify"], [], {"checked": False}

        valid_format = self._valid_company_format(company)
        has_business_term = self._has_business_term(company)
        details = {
            "checked": True,
            "valid_format": valid_format,
            "has_business_term": has_business_term,
        }

        if valid_format and has_business_term:
            return COMPANY_BONUS, [], ["Company name appears valid"], details
        return 0, ["Company name may be invalid or incomplete"], [], details

    def _valid_company_format(self, company: str) -> bool:
        company = company.strip()
        if not 2 <= len(company) <= 100 or not re.search(r'[A-Za-z]', company):
            return False
        lowered = company.lower()
        if lowered in self.placeholder_names:
            return False
        return not any(pattern in lowered for pattern in self.placeholder_patterns)

    def _has_business_term(self, company: str) -> bool:
        words = re.findall(r"[a-z]+", company.lower())
        return any(term in words for term in self.business_terms)

    def _verify_contacts(self, extracted: ExtractedFields) -> Tuple[float, List[str], List[str], Dict[str, Any]]:
        """Per-contact email, phone and name shape checks"""
        contacts = extracted.contacts
        if not contacts:
            return 0, ["No contact information to verify"], [], {"checked": False}

        valid_contacts = 0
        contact_problems = []
        for contact in contacts:
            problems = self._contact_problems(contact)
            if problems:
                contact_problems.append({"contact": contact.name or contact.email or contact.phone, "problems": problems})
            else:
                valid_contacts += 1

        score = CONTACT_BONUS * valid_contacts / len(contacts)
        recommendations = [f"{valid_contacts} valid contact(s) found"] if valid_contacts else []
        details = {
            "checked": True,
            "total": len(contacts),
            "valid": valid_contacts,
            "problems": contact_problems,
        }
        return score, [], recommendations, details

    def _contact_problems(self, contact: ContactCandidate) -> List[str]:
        problems = []
        if not contact.has_channel():
            problems.append("No name, email or phone")
        if contact.email and not is_valid_email(contact.email):
            problems.append("Invalid email format")
        if contact.phone and not is_valid_phone(contact.phone):
            problems.append("Invalid phone number")
        if contact.name and not self._valid_name_shape(contact.name):
            problems.append("Name does not look like a person")
        return problems

    @staticmethod
    def _valid_name_shape(name: str) -> bool:
        if not 2 <= len(name) <= 50 or ' ' not in name.strip():
            return False
        if not re.fullmatch(r'[A-Za-z\s]+', name):
            return False
        return all(word[0].isupper() for word in name.split())

    def _verify_location(self, extracted: ExtractedFields) -> Tuple[int, List[str], List[str], Dict[str, Any]]:
        """Location format and geographic cue"""
        location = extracted.location
        if not location:
            return 0, ["No location information to verify"], [], {"checked": False}

        valid_format = 2 <= len(location.strip()) <= 100 and bool(re.search(r'[A-Za-z]', location))
        words = re.findall(r"[a-z]+", location.lower())
        has_geo_term = any(term in words for term in self.geographic_terms)
        matches_pattern = any(pattern.search(location) for pattern in self.location_patterns)
        details = {
            "checked": True,
            "valid_format": valid_format,
            "has_geographic_term": has_geo_term,
            "matches_pattern": matches_pattern,
        }

        if valid_format and (has_geo_term or matches_pattern):
            return LOCATION_BONUS, [], ["Location appears valid"], details
        return 0, ["Location may be invalid or incomplete"], [], details

    def _verify_project(self, extracted: ExtractedFields) -> Tuple[int, List[str], List[str], Dict[str, Any]]:
        """Project type present, budget and room count within type-specific bands"""
        project_type = extracted.project_type
        issues = []
        details: Dict[str, Any] = {"checked": True, "project_type": project_type}

        if not project_type:
            issues.append("Project type could not be determined")

        if extracted.budget_amount is not None:
            low, high = BUDGET_RANGES.get(project_type or "", DEFAULT_BUDGET_RANGE)
            reasonable = low <= extracted.budget_amount <= high
            details["budget_reasonable"] = reasonable
            if not reasonable:
                issues.append(
                    f"Budget ${extracted.budget_amount:,.0f} is outside the expected "
                    f"${low:,.0f}-${high:,.0f} range for {project_type or 'this'} projects"
                )

        room_range = ROOM_COUNT_RANGES.get(project_type or "")
        if extracted.room_count is not None and room_range:
            low, high = room_range
            reasonable = low <= extracted.room_count <= high
            details["room_count_reasonable"] = reasonable
            if not reasonable:
                issues.append(f"Room count {extracted.room_count} is unusual for a {project_type}")

        if issues:
            return 0, issues, [], details
        return PROJECT_BONUS, [], ["Project details appear reasonable"], details

    def _verify_cross_reference(self, extracted: ExtractedFields) -> Tuple[int, List[str], List[str], Dict[str, Any]]:
        """Consistency between company, source text, project type and contacts"""
        company = (extracted.company or "").lower()
        source_text = f"{extracted.source_title or ''} {extracted.source_snippet or ''}".lower()

        company_in_source = bool(company) and company in source_text

        project_matches_company = False
        if company and extracted.project_type:
            cues = PROJECT_COMPANY_CUES.get(extracted.project_type, []) + GENERAL_BUILDER_CUES
            company_words = re.findall(r"[a-z]+", company)
            project_matches_company = any(cue in company_words for cue in cues)

        contact_matches_company = False
        if company:
            prefix = normalize_company_name(company)[:10]
            contact_matches_company = any(
                contact.company and prefix and prefix in normalize_company_name(contact.company)
                for contact in extracted.contacts
            )

        passed = sum([company_in_source, project_matches_company, contact_matches_company])
        details = {
            "company_in_source": company_in_source,
            "project_matches_company": project_matches_company,
            "contact_matches_company": contact_matches_company,
            "passed": passed,
        }

        if passed >= 2:
            return CROSS_REFERENCE_BONUS, [], ["Lead information is internally consistent"], details
        return 0, ["Lead information may be inconsistent"], [], details

    def get_stats(self) -> Dict[str, float]:
        total = self.stats["total_verified"]
        return {
            "total_verified": total,
            "verified_leads": self.stats["verified_leads"],
            "verification_rate": round(self.stats["verified_leads"] / total * 100, 2) if total else 0.0,
            "average_confidence": round(self.stats["total_confidence"] / total, 2) if total else 0.0,
        }
