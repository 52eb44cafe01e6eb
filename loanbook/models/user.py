from sqlalchemy import Boolean, Column, DateTime, Integer, String, func

from loanbook.db.base import Base


class User(Base):
    """Staff directory row; owned by the identity service, read here for actor names."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True)
    full_name = Column(String(255), nullable=False)
    role_name = Column(String(50), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
