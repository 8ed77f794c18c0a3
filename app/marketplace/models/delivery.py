"""
Delivery and Review models.

Both are one-to-one with an order: a provider delivers coverage once, and a
writer reviews an order once. The one-to-one constraint is the database-level
guarantee behind `review_already_exists`.
"""

from __future__ import annotations

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class Delivery(UUIDPrimaryKeyMixin, BaseModel):
    """
    Written coverage delivered for an order.

    Fields:
        order: The delivered order
        summary/strengths/weaknesses/recommendations: Coverage text
        score: Overall score 0-100, optional
        file_key/file_name: Uploaded PDF report in object storage, optional
    """

    order = models.OneToOneField(
        "marketplace.Order",
        on_delete=models.PROTECT,
        related_name="delivery",
        help_text="Order this coverage was delivered for",
    )

    summary = models.TextField(
        blank=True,
        default="",
        help_text="Synopsis and overall assessment",
    )

    strengths = models.TextField(
        blank=True,
        default="",
        help_text="What works in the script",
    )

    weaknesses = models.TextField(
        blank=True,
        default="",
        help_text="What does not work",
    )

    recommendations = models.TextField(
        blank=True,
        default="",
        help_text="Suggested next steps",
    )

    score = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(0), MaxValueValidator(100)],
        help_text="Overall score (0-100)",
    )

    file_key = models.CharField(
        max_length=512,
        blank=True,
        default="",
        help_text="Object storage key of the uploaded report",
    )

    file_name = models.CharField(
        max_length=255,
        blank=True,
        default="",
        help_text="Original file name of the uploaded report",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Delivery"
        verbose_name_plural = "Deliveries"
        constraints = [
            models.CheckConstraint(
                condition=models.Q(score__isnull=True) | models.Q(score__lte=100),
                name="coverage_delivery_score_range",
            ),
        ]

    def __str__(self) -> str:
        return f"Delivery({self.order_id})"


class Review(UUIDPrimaryKeyMixin, BaseModel):
    """Writer's rating of a delivered order."""

    order = models.OneToOneField(
        "marketplace.Order",
        on_delete=models.PROTECT,
        related_name="review",
        help_text="Reviewed order",
    )

    writer_user_id = models.CharField(
        max_length=255,
        help_text="Writer who left the review",
    )

    provider = models.ForeignKey(
        "marketplace.Provider",
        on_delete=models.PROTECT,
        related_name="reviews",
        help_text="Provider being rated",
    )

    rating = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(5)],
        help_text="Rating from 1 to 5",
    )

    comment = models.TextField(
        blank=True,
        default="",
        help_text="Optional free-form comment",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Review"
        verbose_name_plural = "Reviews"
        indexes = [
            models.Index(fields=["provider", "created_at"], name="cov_review_provider_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(rating__gte=1, rating__lte=5),
                name="coverage_review_rating_range",
            ),
        ]

    def __str__(self) -> str:
        return f"Review({self.order_id}, {self.rating})"
