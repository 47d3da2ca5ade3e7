"""
Repository pattern for data access.

Provides clean separation between data access and business logic.
"""
from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from data.db_models import FormDocument

# Columns callers may change through update()
UPDATABLE_FIELDS = ('base_image', 'composited_image', 'drawing_layer', 'blank_areas', 'size')


class FormRepository:
    """Repository for FormDocument operations."""

    def __init__(self, session: Session):
        self.session = session

    def create(
        self,
        base_image: str,
        blank_areas: Optional[List[dict]] = None,
        size: int = 0,
        form_id: Optional[str] = None
    ) -> FormDocument:
        """Create a new form."""
        form = FormDocument(
            base_image=base_image,
            blank_areas=blank_areas,
            size=size,
            timestamp=datetime.utcnow()
        )
        if form_id:
            form.id = form_id
        self.session.add(form)
        self.session.commit()
        self.session.refresh(form)
        return form

    def get_by_id(self, form_id: str) -> Optional[FormDocument]:
        """Get form by ID."""
        return self.session.query(FormDocument).filter(
            FormDocument.id == form_id
        ).first()

    def list_all(self, limit: int = 50, offset: int = 0) -> List[FormDocument]:
        """List forms, newest first."""
        return self.session.query(FormDocument)\
            .order_by(FormDocument.timestamp.desc())\
            .limit(limit)\
            .offset(offset)\
            .all()

    def update(self, form_id: str, **fields) -> Optional[FormDocument]:
        """
        Update stored fields of a form and refresh its timestamp.

        Args:
            form_id: Form to update
            **fields: Any of UPDATABLE_FIELDS

        Returns:
            Updated form, or None when it does not exist
        """
        unknown = set(fields) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update fields: {sorted(unknown)}")

        form = self.get_by_id(form_id)
        if form is None:
            return None

        for name, value in fields.items():
            setattr(form, name, value)
        form.timestamp = datetime.utcnow()

        self.session.commit()
        self.session.refresh(form)
        return form

    def delete(self, form_id: str) -> bool:
        """Delete a form."""
        form = self.get_by_id(form_id)
        if form:
            self.session.delete(form)
            self.session.commit()
            return True
        return False
