from vidcom.models.user import User
from vidcom.models.session import Session
from vidcom.models.experience import Experience
from vidcom.models.asset import Asset
from vidcom.models.pair import Pair

__all__ = ["User", "Session", "Experience", "Asset", "Pair"]
