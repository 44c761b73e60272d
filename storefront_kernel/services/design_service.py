"""
DesignService -- AI design creation and admin review.

Responsibility:
    Saves generated design artifacts as drafts and applies admin review
    decisions.  Image generation itself is an opaque collaborator
    (``ImageGenerator``); this service only validates what goes in and what
    comes back.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/.

Invariants enforced:
    - Every design starts in DRAFT.
    - Review is DRAFT -> APPROVED or DRAFT -> REJECTED, applied with a
      conditional UPDATE guarded on ``status = 'draft'``, so two reviewers
      racing on one design cannot both win.
    - Approved and rejected designs never change again.  Repeating the
      decision already taken is a no-op; the opposite decision is an
      InvalidTransitionError.

Failure modes:
    - ValidationFailedError: blank name, short prompt, unknown product
      type, bad image URL, unknown decision.
    - DesignGenerationError: the generator raised or returned garbage.
    - UnauthorizedError: reviewer is not an admin.
    - DesignNotFoundError, InvalidTransitionError: review.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select, update

from storefront_kernel.domain.dtos import DesignRecord
from storefront_kernel.domain.image_generation import ImageGenerator
from storefront_kernel.domain.lifecycle import (
    DesignStatus,
    ReviewDecision,
    can_transition_design,
)
from storefront_kernel.domain.validation import (
    is_valid_url,
    validate_design_input,
    validate_image_url,
)
from storefront_kernel.domain.values import Principal, ProductCategory
from storefront_kernel.exceptions import (
    DesignGenerationError,
    DesignNotFoundError,
    InvalidTransitionError,
    StorefrontError,
    ValidationFailedError,
)
from storefront_kernel.logging_config import LogContext, get_logger
from storefront_kernel.models.design import Design
from storefront_kernel.services.base import BaseService, translate_store_errors

logger = get_logger("services.design")


class DesignService(BaseService):
    """Creates draft designs and records review decisions."""

    def generate_design(
        self,
        owner_id: UUID,
        name: str,
        prompt: str,
        product_type: ProductCategory | str,
        generator: ImageGenerator,
    ) -> DesignRecord:
        """
        Generate an image for ``prompt`` and save it as a draft.

        The generator is called once.  Retrying a failed generation is the
        caller's decision.

        Raises:
            ValidationFailedError: Bad input (generator not called).
            DesignGenerationError: Generator failed or returned an
                unusable URL (nothing saved).
        """
        category = validate_design_input(name, prompt, product_type)
        prompt = prompt.strip()

        try:
            image_url = generator(prompt, category)
        except StorefrontError:
            raise
        except Exception as exc:
            logger.error(
                "design_generation_failed",
                extra={"product_type": category.value, "error": str(exc)},
            )
            raise DesignGenerationError(category.value, str(exc)) from exc

        if not isinstance(image_url, str) or not is_valid_url(image_url, allow_data=True):
            logger.error(
                "design_generation_invalid_url",
                extra={"product_type": category.value},
            )
            raise DesignGenerationError(
                category.value, "generator returned an invalid image URL",
            )

        return self._insert(owner_id, name.strip(), prompt, category, image_url)

    def save_design(
        self,
        owner_id: UUID,
        name: str,
        prompt: str,
        product_type: ProductCategory | str,
        image_url: str,
    ) -> DesignRecord:
        """Persist an already generated image as a draft design."""
        category = validate_design_input(name, prompt, product_type)
        validate_image_url(image_url)
        return self._insert(owner_id, name.strip(), prompt.strip(), category, image_url)

    def _insert(
        self,
        owner_id: UUID,
        name: str,
        prompt: str,
        category: ProductCategory,
        image_url: str,
    ) -> DesignRecord:
        now = self._clock.now()
        with translate_store_errors("save_design"):
            design = Design(
                owner_id=owner_id,
                name=name,
                prompt=prompt,
                product_type=category.value,
                image_url=image_url,
                status=DesignStatus.DRAFT.value,
                created_at=now,
                updated_at=now,
                created_by_id=owner_id,
            )
            self.session.add(design)
            self.session.flush()

        with LogContext.bind(design_id=design.id, actor_id=owner_id):
            logger.info(
                "design_saved",
                extra={"product_type": category.value, "status": design.status},
            )
        return design.to_dto()

    def review(
        self,
        principal: Principal,
        design_id: UUID,
        decision: ReviewDecision | str,
        reason: str | None = None,
    ) -> DesignRecord:
        """
        Approve or reject a draft design (admin only).

        Args:
            principal: The reviewer.
            design_id: Design to review.
            decision: APPROVE or REJECT.
            reason: Optional note, typically why a design was rejected.

        Returns:
            The design as stored after the review.
        """
        self._require_admin(principal, "review design")
        try:
            decision = ReviewDecision(decision)
        except ValueError:
            raise ValidationFailedError.single(
                "decision", f"Unknown review decision: {decision!r}"
            ) from None
        target = decision.target_status
        note = (reason or "").strip() or None
        now = self._clock.now()

        with LogContext.bind(actor_id=principal.actor_id, design_id=design_id):
            with translate_store_errors("review_design"):
                result = self.session.execute(
                    update(Design)
                    .where(
                        Design.id == design_id,
                        Design.status == DesignStatus.DRAFT.value,
                    )
                    .values(
                        status=target.value,
                        reviewed_by_id=principal.actor_id,
                        reviewed_at=now,
                        review_reason=note,
                        updated_at=now,
                        updated_by_id=principal.actor_id,
                    )
                    .execution_options(synchronize_session=False)
                )

                if result.rowcount == 0:
                    self._check_already_reviewed(design_id, target)
                else:
                    logger.info(
                        "design_reviewed",
                        extra={"decision": decision.value, "status": target.value},
                    )

                design = self.session.execute(
                    select(Design)
                    .where(Design.id == design_id)
                    .execution_options(populate_existing=True)
                ).scalar_one()
        return design.to_dto()

    def _check_already_reviewed(self, design_id: UUID, target: DesignStatus) -> None:
        current = self.session.execute(
            select(Design.status).where(Design.id == design_id)
        ).scalar_one_or_none()
        if current is None:
            raise DesignNotFoundError(str(design_id))

        current = DesignStatus(current)
        if current is target:
            logger.info(
                "design_review_repeated",
                extra={"status": current.value},
            )
            return
        if not can_transition_design(current, target):
            logger.warning(
                "design_transition_rejected",
                extra={"from_status": current.value, "to_status": target.value},
            )
            raise InvalidTransitionError(
                entity_type="Design",
                entity_id=str(design_id),
                from_status=current.value,
                to_status=target.value,
            )
