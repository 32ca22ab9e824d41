from sqlalchemy import Column, String, Integer

from vidcom.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    email = Column(String, nullable=False, unique=True)
    password_hash = Column(String, nullable=False)
    role = Column(String, nullable=False, default="admin")
    is_active = Column(Integer, nullable=False, default=1)
    created_at = Column(String, nullable=False)
