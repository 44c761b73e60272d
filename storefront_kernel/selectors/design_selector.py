"""
Module: storefront_kernel.selectors.design_selector
Responsibility: Read-only access to designs for the review queue and the
    customer's design gallery.
Architecture position: Kernel > Selectors.
"""

from uuid import UUID

from sqlalchemy import select

from storefront_kernel.domain.dtos import DesignRecord
from storefront_kernel.domain.lifecycle import DesignStatus
from storefront_kernel.models.design import Design
from storefront_kernel.selectors.base import BaseSelector


class DesignSelector(BaseSelector):
    """Selector for design queries."""

    def get_design(self, design_id: UUID) -> DesignRecord | None:
        design = self.session.get(Design, design_id)
        return design.to_dto() if design is not None else None

    def list_designs(
        self,
        status: DesignStatus | str | None = None,
        owner_id: UUID | None = None,
    ) -> list[DesignRecord]:
        """Designs newest first, optionally filtered."""
        query = select(Design)
        if status is not None:
            query = query.where(Design.status == DesignStatus(status).value)
        if owner_id is not None:
            query = query.where(Design.owner_id == owner_id)
        query = query.order_by(Design.created_at.desc(), Design.name)
        return [d.to_dto() for d in self.session.execute(query).scalars()]
