from sqlalchemy import Column, String, Integer

from vidcom.database import Base


class Experience(Base):
    __tablename__ = "experiences"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    # Not unique: several experiences may deliberately share one code.
    qr_id = Column(String, nullable=False, index=True)
    is_active = Column(Integer, nullable=False, default=1)
    created_at = Column(String, nullable=False)
    updated_at = Column(String, nullable=False)
