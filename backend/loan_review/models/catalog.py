"""Credit product catalog: which documents a product requires."""

from datetime import datetime

from sqlalchemy import String, Boolean, DateTime, JSON, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from loan_review.database import Base


class CreditProduct(Base):
    __tablename__ = "credit_products"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    product_type: Mapped[str] = mapped_column(String(50), nullable=False)
    # Ordered list of document type codes, e.g. ["INE_FRONT", "INE_BACK", "SIGNATURE"]
    required_documents: Mapped[list | None] = mapped_column(JSON, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    loan_applications = relationship("LoanApplication", back_populates="credit_product")
