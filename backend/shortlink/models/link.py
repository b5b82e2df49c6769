from sqlalchemy import (
    Column, Integer, String, DateTime, Boolean, JSON, ForeignKey, Index, CheckConstraint
)
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.clock import utcnow


DEFAULT_TITLE = "Untitled Link"


class Link(Base):
    """Short link model"""
    __tablename__ = "links"

    id = Column(Integer, primary_key=True, index=True)
    # Holds the custom slug as well when one was chosen, so this unique
    # index covers both namespaces
    short_code = Column(String(50), unique=True, index=True, nullable=False)
    custom_slug = Column(String(50), unique=True, nullable=True)
    original_url = Column(String(2048), nullable=False)
    title = Column(String(200), nullable=False, default=DEFAULT_TITLE)
    description = Column(String(500), nullable=True)
    owner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    clicks_count = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    expires_at = Column(DateTime, nullable=True)
    last_clicked_at = Column(DateTime, nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    owner = relationship("User", back_populates="links")
    clicks = relationship(
        "Click",
        back_populates="link",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Click.id",
    )

    __table_args__ = (
        Index('idx_links_owner_created', 'owner_id', 'created_at'),
        CheckConstraint('clicks_count >= 0', name='ck_links_clicks_non_negative'),
    )

    @property
    def code(self) -> str:
        """Public code: custom slug when set, otherwise the generated short code"""
        return self.custom_slug or self.short_code

    def is_resolvable(self, now) -> bool:
        return bool(self.is_active) and (self.expires_at is None or self.expires_at > now)

    def __repr__(self):
        return f"<Link {self.code} -> {self.original_url}>"
