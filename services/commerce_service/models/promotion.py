"""Storefront promotions: banners and cards shown within a date window."""

import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.commerce_service.models.enums import PromotionType, enum_values
from sqlalchemy import Boolean, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column


class Promotion(Base):
    """Promotional banner or card.

    ``start_date``/``end_date`` bound when the promotion is shown; a missing
    end date means it never expires.
    """

    __tablename__ = "promotions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    subtitle: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    type: Mapped[PromotionType] = mapped_column(
        SAEnum(PromotionType, values_callable=enum_values, name="promotion_type_enum"),
        nullable=False,
        default=PromotionType.CARD,
    )

    # Presentation
    image_url: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    image_alt: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    icon: Mapped[str] = mapped_column(String(50), default="Gift")
    eco_icon: Mapped[str] = mapped_column(String(50), default="Leaf")
    badge: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    cta_text: Mapped[str] = mapped_column(String(100), default="Shop Now")
    cta_link: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)
    bg_color: Mapped[str] = mapped_column(String(100), default="bg-eco-gradient")
    text_color: Mapped[str] = mapped_column(String(100), default="text-eco-900")

    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)
    display_order: Mapped[int] = mapped_column(Integer, default=0)

    start_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=True
    )
    end_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        Index("ix_promotions_type_active", "type", "is_active"),
        Index("ix_promotions_featured_active", "is_featured", "is_active"),
        Index("ix_promotions_display_order", "display_order"),
    )

    def __repr__(self):
        return f"<Promotion {self.title!r} type={self.type}>"
