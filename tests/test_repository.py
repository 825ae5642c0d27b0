"""
Tests for lead persistence
"""

from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from leadminer.database.models import Base, Lead, LeadContact
from leadminer.database.repository import LeadRepository
from leadminer.scraping.models import BudgetRange, ContactCandidate, ExtractedFields, VerifiedLead


@pytest.fixture
def db():
    engine = create_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine)()
    yield session
    session.close()
    engine.dispose()


def make_lead(url="https://news.example.com/acme?utm_source=feed", **overrides):
    fields = dict(
        company="Acme Construction Corp",
        location="downtown Manhattan",
        project_type="apartment",
        industry_type="residential",
        budget_amount=45_000_000,
        budget_range=BudgetRange.OVER_10M,
        timeline_year=2027,
        contacts=[ContactCandidate(name="Sarah Johnson", email="sarah.johnson@acme.com", confidence=95)],
        custom_values={"architect": "Foster Architects"},
        keywords=["apartment", "downtown"],
        source_url=url,
        source_title="Acme announces towers",
        pattern_confidence=80,
    )
    fields.update(overrides)
    return VerifiedLead(
        extracted=ExtractedFields(**fields),
        source_url=url,
        final_confidence=92,
        verified=True,
        issues=[],
        recommendations=["Company name appears valid"],
    )


class TestLeadRepository:
    """Test saving leads and URL lookups"""

    def test_save_lead_with_contacts(self, db):
        """Test all lead columns and contacts are stored"""
        repository = LeadRepository(db)
        lead_id = repository.save(make_lead(), config_id=3, user_id=7)

        stored = db.query(Lead).filter(Lead.id == lead_id).one()
        assert stored.company == "Acme Construction Corp"
        assert stored.industry == "residential"
        assert stored.budget_range == "over_10m"
        assert stored.custom_fields == {"architect": "Foster Architects"}
        assert stored.normalized_url == "https://news.example.com/acme"
        assert stored.score == 92
        assert stored.verified is True
        assert stored.user_id == 7
        assert stored.config_id == 3

        assert len(stored.contacts) == 1
        assert stored.contacts[0].email == "sarah.johnson@acme.com"
        assert db.query(LeadContact).count() == 1

    def test_exists_by_url_uses_normalized_form(self, db):
        """Test equivalent URLs are recognized per user"""
        repository = LeadRepository(db)
        repository.save(make_lead(), user_id=7)

        assert repository.exists_by_url("http://news.example.com/acme/", user_id=7) is True
        assert repository.exists_by_url("https://news.example.com/acme", user_id=8) is False
        assert repository.exists_by_url("https://news.example.com/acme") is True
        assert repository.exists_by_url("https://news.example.com/other", user_id=7) is False

    def test_save_failure_rolls_back(self):
        """Test database errors roll back and propagate"""
        db = MagicMock()
        db.commit.side_effect = OperationalError("INSERT", {}, Exception("disk I/O error"))
        repository = LeadRepository(db)

        with pytest.raises(OperationalError):
            repository.save(make_lead())
        db.rollback.assert_called_once()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
