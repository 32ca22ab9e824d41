from sqlalchemy import Column, String, Integer, Float, ForeignKey

from vidcom.database import Base


class Pair(Base):
    __tablename__ = "pairs"

    id = Column(String, primary_key=True)
    experience_id = Column(String, ForeignKey("experiences.id"), nullable=False, index=True)
    image_asset_id = Column(String, ForeignKey("assets.id"), nullable=False)
    video_asset_id = Column(String, ForeignKey("assets.id"), nullable=False)
    image_fingerprint = Column(String, nullable=False)
    threshold = Column(Float, nullable=False)
    priority = Column(Integer, nullable=False, default=0)
    is_active = Column(Integer, nullable=False, default=1)
    mind_asset_id = Column(String, ForeignKey("assets.id"), nullable=True)
    mind_target_status = Column(String, nullable=False, default="pending")
    mind_target_error = Column(String, nullable=True)
    mind_target_requested_at = Column(String, nullable=True)
    mind_target_completed_at = Column(String, nullable=True)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)
