from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from channel_order.database import Base


class Channel(Base):
    __tablename__ = "channels"

    id = Column(Integer, primary_key=True, index=True)
    # Names must be unique within a server, enforced by unique_channel_per_server.
    name = Column(String(50), nullable=False)
    topic = Column(String(500), nullable=True)
    server_id = Column(Integer, ForeignKey("servers.id", ondelete="CASCADE"), nullable=False)
    # NULL means the channel lives in the server's uncategorized bucket.
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)
    # Dense 0..n-1 within the channel's container (category or uncategorized).
    position = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    server = relationship("Server", back_populates="channels")
    category = relationship("Category", back_populates="channels")

    __table_args__ = (UniqueConstraint("server_id", "name", name="unique_channel_per_server"),)
