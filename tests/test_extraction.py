"""
Unit tests for pattern-based lead extraction
"""

import asyncio

import pytest

from leadminer.scraping.extraction.engine import (
    ExtractionEngine, budget_range, calculate_contact_confidence, calculate_pattern_confidence,
    classify_industry, extract_budget, extract_company, extract_contacts, extract_employee_count,
    extract_location, extract_room_count, extract_square_footage, extract_timeline, match_custom_field
)
from leadminer.scraping.models import (
    BudgetRange, CustomFieldSpec, DataType, FetchedContent, SearchCandidate
)

SCENARIO_TEXT = (
    "Acme Construction Corp announced a $45 million luxury apartment complex, Skyline Towers, "
    "in downtown Manhattan, completing Q4 2025. Contact: Sarah Johnson, sarah.johnson@acme.com, "
    "(555) 123-4567."
)


@pytest.fixture
def engine():
    return ExtractionEngine(current_year=2025)


def make_content(raw_text="", title="", snippet="", fetch_succeeded=True):
    candidate = SearchCandidate(
        title=title,
        url="https://news.example.com/story",
        snippet=snippet,
        source_id="google_news",
    )
    return FetchedContent(candidate=candidate, raw_text=raw_text, fetch_succeeded=fetch_succeeded)


class TestScenario:
    """Test the reference announcement end to end"""

    def test_reference_announcement(self, engine):
        """Test every field of the reference text"""
        fields = engine.extract_from_text(SCENARIO_TEXT)

        assert fields.company == "Acme Construction Corp"
        assert fields.budget_amount == 45_000_000
        assert fields.budget_range == BudgetRange.OVER_10M
        assert fields.timeline_year == 2025
        assert fields.location == "downtown Manhattan"
        assert fields.project_type == "apartment"
        assert fields.industry_type == "residential"

        assert len(fields.contacts) == 1
        contact = fields.contacts[0]
        assert contact.name == "Sarah Johnson"
        assert contact.email == "sarah.johnson@acme.com"
        assert contact.phone == "(555) 123-4567"
        assert contact.confidence >= 80
        assert contact.company == "Acme Construction Corp"

        assert fields.pattern_confidence == 80

    def test_timeline_outside_horizon_is_unknown(self):
        """Test the same text read in a later year drops the timeline"""
        fields = ExtractionEngine(current_year=2026).extract_from_text(SCENARIO_TEXT)
        assert fields.timeline_year is None
        assert fields.company == "Acme Construction Corp"


class TestUnknownSentinels:
    """Test empty input never produces errors"""

    def test_empty_text_is_all_unknown(self, engine):
        """Test extraction on empty content returns the unknown set"""
        fields = engine.extract_from_text("")

        assert fields.company is None
        assert fields.location is None
        assert fields.project_type is None
        assert fields.industry_type is None
        assert fields.budget_amount is None
        assert fields.budget_range == BudgetRange.NOT_SPECIFIED
        assert fields.timeline_year is None
        assert fields.room_count is None
        assert fields.square_footage is None
        assert fields.employee_count is None
        assert fields.contacts == []
        assert fields.keywords == []
        assert fields.custom_values == {}
        assert fields.pattern_confidence == 0

    def test_failed_fetch_without_snippet(self, engine):
        """Test a timed-out fetch with no title or snippet is all unknown"""
        content = make_content(fetch_succeeded=False)
        fields = asyncio.run(engine.extract(content))

        assert fields.fetch_succeeded is False
        assert fields.company is None
        assert fields.pattern_confidence == 0
        assert fields.source_url == "https://news.example.com/story"

    def test_failed_fetch_uses_title_and_snippet(self, engine):
        """Test failed fetches are analysed from the search result"""
        content = make_content(
            title="Acme Construction Corp plans 250-room hotel",
            snippet="The $80 million project opens in 2027.",
            fetch_succeeded=False,
        )
        fields = asyncio.run(engine.extract(content))

        assert fields.fetch_succeeded is False
        assert fields.company == "Acme Construction Corp"
        assert fields.room_count == 250
        assert fields.budget_amount == 80_000_000
        assert fields.timeline_year == 2027


class TestBudget:
    """Test budget extraction and bucketing"""

    @pytest.mark.parametrize("amount,bucket", [
        (9_999, BudgetRange.UNDER_10K),
        (10_000, BudgetRange.FROM_10K_TO_50K),
        (49_999, BudgetRange.FROM_10K_TO_50K),
        (50_000, BudgetRange.FROM_50K_TO_100K),
        (500_000, BudgetRange.FROM_500K_TO_1M),
        (1_000_000, BudgetRange.FROM_1M_TO_5M),
        (9_999_999, BudgetRange.FROM_5M_TO_10M),
        (10_000_000, BudgetRange.OVER_10M),
        (45_000_000, BudgetRange.OVER_10M),
        (None, BudgetRange.NOT_SPECIFIED),
    ])
    def test_bucket_boundaries(self, amount, bucket):
        """Test buckets include their lower bound"""
        assert budget_range(amount) == bucket

    def test_unit_multipliers(self):
        """Test thousand/million/billion cues scale the amount"""
        assert extract_budget("The resort will cost $2.5 billion.") == 2_500_000_000
        assert extract_budget("A $500K renovation is planned.") == 500_000
        assert extract_budget("Funding of 12 million dollars was approved.") == 12_000_000

    def test_plain_amounts(self):
        """Test separators are required for bare budget numbers"""
        assert extract_budget("The project has a budget of 750,000 for design.") == 750_000
        assert extract_budget("The cost of 2025 upgrades is unclear.") is None
        assert extract_budget("No money mentioned here.") is None


class TestTimeline:
    """Test completion year bounds"""

    def test_year_within_horizon(self):
        """Test current year through current year + 10 are accepted"""
        assert extract_timeline("The hotel is scheduled to open in 2031.", 2025) == 2031
        assert extract_timeline("Completion expected in 2035.", 2025) == 2035

    def test_year_outside_horizon(self):
        """Test past and far-future years are discarded"""
        assert extract_timeline("Completion expected in 2024.", 2025) is None
        assert extract_timeline("The tower opens in 2036.", 2025) is None


class TestProjectDetails:
    """Test counts and areas"""

    def test_room_count(self):
        """Test rooms, keys and units"""
        assert extract_room_count("a 250-room hotel") == 250
        assert extract_room_count("with 1,200 units of housing") == 1200
        assert extract_room_count("no rooms listed") is None

    def test_square_footage(self):
        """Test square feet and metric conversion"""
        assert extract_square_footage("a 120,000 square feet office") == 120_000
        assert extract_square_footage("spanning 1,000 square meters") == 10_764

    def test_employee_count(self):
        """Test job creation figures"""
        assert extract_employee_count("The plant will create 300 new jobs.") == 300
        assert extract_employee_count("No hiring plans.") is None


class TestCompanyAndLocation:
    """Test company and location rules"""

    def test_company_with_suffix(self):
        """Test the longest suffix-terminated name wins"""
        assert extract_company("Skyline Development Group plans a new tower.") == "Skyline Development Group"

    def test_company_strips_leading_article(self):
        """Test sentence-initial noise is removed"""
        assert extract_company("The Marriott Hotels plans a resort.") == "Marriott Hotels"

    def test_no_company(self):
        """Test lowercase text has no company"""
        assert extract_company("a new building is going up soon") is None

    def test_locations(self):
        """Test city/state and street address rules"""
        assert extract_location("The site is in Austin, TX near the river.") == "Austin, TX"
        assert extract_location("located at 123 Main Street downtown") == "123 Main Street"


class TestIndustry:
    """Test industry classification priority"""

    def test_priority_order(self):
        """Test the first matching category wins"""
        assert classify_industry("A new 200-bed hospital campus") == "healthcare"
        assert classify_industry("luxury hotel and office tower") == "hospitality"

    def test_default_and_unknown(self):
        """Test fallback category and empty text"""
        assert classify_industry("Something unrelated happened") == "mixed_use"
        assert classify_industry("") is None


class TestContacts:
    """Test contact harvesting"""

    def test_confidence_weights(self):
        """Test weighted sum with multi-channel bonus and cap"""
        assert calculate_contact_confidence(name="A B") == 40
        assert calculate_contact_confidence(name="A B", email="a@b.com") == 95
        assert calculate_contact_confidence(name="A B", email="a@b.com", phone="1", title="CEO") == 100
        assert calculate_contact_confidence(phone="1") == 25

    def test_nearest_preceding_name(self):
        """Test each channel attaches to the closest name before it"""
        text = "Contact John Smith at john@builder.com or Mary Jones at (555) 987-6543."
        contacts = extract_contacts(text)

        assert [contact.name for contact in contacts] == ["John Smith", "Mary Jones"]
        assert contacts[0].email == "john@builder.com"
        assert contacts[0].confidence == 95
        assert contacts[1].phone == "(555) 987-6543"
        assert contacts[1].confidence == 85

    def test_unmatched_channel_is_low_confidence(self):
        """Test emails without a nearby name are kept"""
        contacts = extract_contacts("Email press@acme.com for details.")

        assert len(contacts) == 1
        assert contacts[0].name is None
        assert contacts[0].email == "press@acme.com"
        assert contacts[0].confidence == 20

    def test_spokesperson_mention(self):
        """Test named sources with a title become contacts"""
        contacts = extract_contacts("The tower will rise fast, said Jane Doe, CEO of the firm.")

        assert len(contacts) == 1
        assert contacts[0].name == "Jane Doe"
        assert contacts[0].title == "CEO"
        assert contacts[0].confidence == 55

    def test_no_contacts(self):
        """Test text without channels"""
        assert extract_contacts("") == []
        assert extract_contacts("nothing to see here") == []


class TestConfidence:
    """Test completeness scoring"""

    def test_partial_and_full(self):
        """Test weights and the length bonus"""
        assert calculate_pattern_confidence({"company": "Acme"}, 0) == 20
        full = {
            "company": "Acme", "location": "Austin, TX", "budget_amount": 1.0, "contacts": ["x"],
            "project_type": "hotel", "timeline_year": 2027, "room_count": 10, "square_footage": 100,
        }
        assert calculate_pattern_confidence(full, 1000) == 100
        assert calculate_pattern_confidence({}, 300) == 5


class TestCustomFieldsWithoutAI:
    """Test the deterministic custom-field heuristic"""

    def test_description_matching(self):
        """Test the sentence sharing most description words is used"""
        field = CustomFieldSpec(
            key="architect",
            display_name="Architect",
            description="architecture firm that designed the building",
        )
        text = "The tower was designed by Foster Architects. Completion is set for 2027."
        assert "Foster Architects" in match_custom_field(text, field)

    def test_engine_fills_custom_values(self, engine):
        """Test custom fields are filled when AI is off"""
        field = CustomFieldSpec(
            key="investment",
            display_name="Investment",
            description="total investment amount",
            data_type=DataType.CURRENCY,
        )
        content = make_content(raw_text="Officials praised the plan. The total investment is $3 million.")
        fields = asyncio.run(engine.extract(content, [field]))

        assert fields.custom_values == {"investment": 3_000_000}

    def test_hidden_fields_are_skipped(self, engine):
        """Test invisible custom fields are not extracted"""
        field = CustomFieldSpec(key="investment", display_name="Investment", visible=False)
        content = make_content(raw_text="The total investment is $3 million.")
        assert asyncio.run(engine.extract(content, [field])).custom_values == {}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
