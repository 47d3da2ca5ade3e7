"""
Database models for form storage.

Stores each form's base image, composited output, drawing layer and
detected blank areas.
"""
import uuid
from datetime import datetime

from sqlalchemy import Column, String, Integer, Text, DateTime, JSON
from sqlalchemy.orm import declarative_base

from utils.bbox_utils import areas_from_dicts

Base = declarative_base()


def generate_uuid():
    """Generate UUID string for primary keys."""
    return str(uuid.uuid4())


class FormDocument(Base):
    """A stored form with its layers."""

    __tablename__ = 'forms'

    id = Column(String, primary_key=True, default=generate_uuid)

    # Base64 PNG images
    base_image = Column(Text, nullable=False)
    composited_image = Column(Text)
    drawing_layer = Column(Text)

    # List of {"x", "y", "width", "height"}
    blank_areas = Column(JSON)

    timestamp = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    size = Column(Integer, nullable=False, default=0)

    def __repr__(self):
        return f"<FormDocument(id={self.id}, size={self.size}, areas={len(self.blank_areas or [])})>"

    def get_blank_areas(self):
        """Parse stored blank areas."""
        return areas_from_dicts(self.blank_areas)

    def to_dict(self):
        """Convert to dictionary for API responses."""
        return {
            'id': self.id,
            'base_image': self.base_image,
            'composited_image': self.composited_image,
            'drawing_layer': self.drawing_layer,
            'blank_areas': self.blank_areas or [],
            'timestamp': self.timestamp.isoformat() if self.timestamp else None,
            'size': self.size
        }
