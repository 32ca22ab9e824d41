from sqlalchemy import Column, String, Integer

from vidcom.database import Base


class Asset(Base):
    __tablename__ = "assets"

    id = Column(String, primary_key=True)
    kind = Column(String, nullable=False)
    storage_key = Column(String, nullable=False)
    mime = Column(String, nullable=False)
    size = Column(Integer, nullable=False)
    filename = Column(String, nullable=True)
    created_at = Column(String, nullable=False)
