from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.clock import utcnow


class Click(Base):
    """Click event model. Ordered by id, which is arrival order."""
    __tablename__ = "clicks"

    id = Column(Integer, primary_key=True, index=True)
    link_id = Column(Integer, ForeignKey("links.id", ondelete="CASCADE"), nullable=False)
    clicked_at = Column(DateTime, default=utcnow, nullable=False)
    ip_address = Column(String(45), nullable=False, default="unknown")  # IPv4 or IPv6
    user_agent = Column(String(512), nullable=False, default="")
    referer = Column(String(512), nullable=False, default="")
    country = Column(String(100), nullable=False, default="")
    city = Column(String(100), nullable=False, default="")

    # Relationship with link
    link = relationship("Link", back_populates="clicks")

    __table_args__ = (
        Index('idx_clicks_link_id', 'link_id', 'id'),
    )

    def __repr__(self):
        return f"<Click {self.id} for link {self.link_id}>"
