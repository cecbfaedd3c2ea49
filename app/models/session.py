"""ORM model for login sessions (at most one valid row per user)."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, func, text

from app.models.base import Base


class UserSession(Base):
    """
    One login of one user. Invalidated on logout or when a newer login supersedes it.

    Invalidated rows are kept until the retention job purges them.
    """

    __tablename__ = "user_sessions"
    __table_args__ = (
        Index(
            "uq_user_sessions_one_valid",
            "user_id",
            unique=True,
            postgresql_where=text("valid"),
            sqlite_where=text("valid"),
        ),
    )

    id = Column(String(64), primary_key=True)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    valid = Column(Boolean, nullable=False, default=True)
    invalidated_at = Column(DateTime(timezone=True), nullable=True)
