from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON, Text, Float, Boolean, Index
from sqlalchemy.orm import declarative_base
from sqlalchemy.orm import relationship
from datetime import datetime

Base = declarative_base()


class Lead(Base):
    __tablename__ = "leads"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, index=True)
    config_id = Column(Integer)

    # Basic lead information
    company = Column(String(255))
    location = Column(String(255))
    description = Column(Text)
    keywords = Column(JSON, default=list)

    # Project details
    project_type = Column(String(100))
    industry = Column(String(100))
    budget_amount = Column(Float)
    budget_range = Column(String(50), default="not_specified")
    timeline_year = Column(Integer)
    room_count = Column(Integer)
    square_footage = Column(Integer)
    employee_count = Column(Integer)
    custom_fields = Column(JSON, default=dict)

    # Source
    source_url = Column(String(2048), nullable=False)
    normalized_url = Column(String(2048), nullable=False)
    source_title = Column(String(512))

    # Scoring
    score = Column(Integer, default=0)
    verified = Column(Boolean, default=False)
    issues = Column(JSON, default=list)
    recommendations = Column(JSON, default=list)
    status = Column(String(50), default="new")

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    contacts = relationship("LeadContact", back_populates="lead", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_leads_user_normalized_url", "user_id", "normalized_url"),
    )


class LeadContact(Base):
    __tablename__ = "lead_contacts"

    id = Column(Integer, primary_key=True)
    lead_id = Column(Integer, ForeignKey("leads.id"), nullable=False)

    name = Column(String(255))
    title = Column(String(255))
    company = Column(String(255))
    email = Column(String(255))
    phone = Column(String(50))
    confidence = Column(Integer, default=0)

    created_at = Column(DateTime, default=datetime.utcnow)

    lead = relationship("Lead", back_populates="contacts")
