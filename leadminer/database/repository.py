"""
Persistence boundary for verified leads
"""
import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..scraping.dedup import normalize_url
from ..scraping.models import VerifiedLead
from .models import Lead, LeadContact

logger = logging.getLogger(__name__)


class LeadRepository:
    """Stores verified leads and answers already-seen URL queries"""

    def __init__(self, db: Session):
        self.db = db

    def save(self, lead: VerifiedLead, config_id: Optional[int] = None, user_id: Optional[int] = None) -> int:
        """Persist a verified lead with its contacts and return its id"""
        extracted = lead.extracted
        data = extracted.model_dump(mode="json")

        record = Lead(
            user_id=user_id,
            config_id=config_id,
            company=extracted.company,
            location=extracted.location,
            description=extracted.description,
            keywords=list(extracted.keywords),
            project_type=extracted.project_type,
            industry=extracted.industry_type,
            budget_amount=extracted.budget_amount,
            budget_range=extracted.budget_range.value,
            timeline_year=extracted.timeline_year,
            room_count=extracted.room_count,
            square_footage=extracted.square_footage,
            employee_count=extracted.employee_count,
            custom_fields=data["custom_values"],
            source_url=lead.source_url,
            normalized_url=normalize_url(lead.source_url),
            source_title=extracted.source_title,
            score=lead.final_confidence,
            verified=lead.verified,
            issues=list(lead.issues),
            recommendations=list(lead.recommendations),
        )
        record.contacts = [
            LeadContact(
                name=contact.name,
                title=contact.title,
                company=contact.company,
                email=contact.email,
                phone=contact.phone,
                confidence=contact.confidence,
            )
            for contact in extracted.contacts
        ]

        try:
            self.db.add(record)
            self.db.commit()
            self.db.refresh(record)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to save lead {lead.source_url}: {e}")
            raise

        logger.debug(f"Saved lead {record.id} from {lead.source_url}")
        return record.id

    def exists_by_url(self, url: str, user_id: Optional[int] = None) -> bool:
        """Whether a lead with an equivalent URL was already stored for the user"""
        query = self.db.query(Lead.id).filter(Lead.normalized_url == normalize_url(url))
        if user_id is not None:
            query = query.filter(Lead.user_id == user_id)
        return query.first() is not None
