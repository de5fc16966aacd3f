"""Exchange rate model."""
from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String
from sqlalchemy.sql import func

from cambio.database import Base
from cambio.models.base import generate_id


class ExchangeRate(Base):
    """
    Quote for one ordered currency pair.

    ``our_rate`` is what customers get; it is always kept equal to
    ``provider_rate * (1 + profit_margin)`` by the rate service.
    """

    __tablename__ = "exchange_rates"

    id = Column(String, primary_key=True, default=lambda: generate_id("xrate"))
    currency_pair = Column(String, unique=True, nullable=False, index=True)  # "USDT/MXN"
    provider_rate = Column(Numeric(precision=20, scale=8), nullable=False)
    profit_margin = Column(Numeric(precision=12, scale=8), nullable=False, default=0)
    our_rate = Column(Numeric(precision=20, scale=8), nullable=False)
    updated_by = Column(String, ForeignKey("profiles.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @property
    def from_currency(self) -> str:
        return self.currency_pair.split("/")[0]

    @property
    def to_currency(self) -> str:
        return self.currency_pair.split("/")[1]
