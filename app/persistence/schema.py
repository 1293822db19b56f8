"""Database schema definition and ORM models.

This module defines SQLAlchemy ORM models for the tables the matching engine
reads (users, skills, temporary addresses, posts, and moderation state) and
conversions from ORM rows to domain models. Timestamps are stored as
fixed-width ISO 8601 UTC strings so string comparison in SQL is chronological.
"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy import (
    Boolean,
    Column,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    inspect,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

from app.domain.models import (
    Block,
    CandidatePost,
    PostMedium,
    PostStatus,
    Report,
    Swipe,
    SwipeType,
)
from app.utils.timestamps import parse_timestamp

logger = logging.getLogger(__name__)

Base = declarative_base()


class UserModel(Base):
    """ORM model for users table. Only the fields matching needs."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    # Account-level moderation block (set by the reporting subsystem)
    is_blocked = Column(Boolean, nullable=False, default=False)
    created_at = Column(String(50), nullable=False)


class WorkProfileModel(Base):
    """ORM model for work_profiles table."""

    __tablename__ = "work_profiles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(255), nullable=True)

    __table_args__ = (Index("idx_work_profiles_user", "user_id"),)


class UserSkillModel(Base):
    """ORM model for user_skills table (skills declared on a work profile)."""

    __tablename__ = "user_skills"

    id = Column(Integer, primary_key=True, autoincrement=True)
    work_profile_id = Column(
        Integer, ForeignKey("work_profiles.id", ondelete="CASCADE"), nullable=False
    )
    skill_id = Column(Integer, nullable=False)
    sub_skill_id = Column(Integer, nullable=True)

    __table_args__ = (Index("idx_user_skills_profile", "work_profile_id"),)


class TempAddressModel(Base):
    """ORM model for temp_addresses table."""

    __tablename__ = "temp_addresses"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    pincode = Column(String(6), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    expires_at = Column(String(50), nullable=True)
    created_at = Column(String(50), nullable=False)

    __table_args__ = (Index("idx_temp_addresses_user_active", "user_id", "is_active"),)


class PostModel(Base):
    """ORM model for posts table."""

    __tablename__ = "posts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    required_skill_id = Column(Integer, nullable=True)
    required_sub_skill_id = Column(Integer, nullable=True)
    medium = Column(String(20), nullable=False, default=PostMedium.ONLINE.value)
    status = Column(String(20), nullable=False, default=PostStatus.ACTIVE.value)
    # ISO date (YYYY-MM-DD)
    deadline = Column(String(10), nullable=True)
    created_at = Column(String(50), nullable=False)
    updated_at = Column(String(50), nullable=False)

    __table_args__ = (
        Index("idx_posts_status_medium", "status", "medium"),
        Index("idx_posts_user", "user_id"),
        Index("idx_posts_created_at", "created_at"),
    )

    def to_domain(
        self,
        owner_active_pincode: Optional[str] = None,
        owner_suspended: bool = False,
        owner_name: Optional[str] = None,
    ) -> CandidatePost:
        """Convert ORM row to a CandidatePost with owner data resolved by the caller."""
        return CandidatePost(
            id=self.id,
            owner_id=self.user_id,
            status=PostStatus(self.status),
            medium=PostMedium(self.medium),
            required_skill_id=self.required_skill_id,
            required_sub_skill_id=self.required_sub_skill_id,
            owner_active_pincode=owner_active_pincode,
            owner_suspended=bool(owner_suspended),
            owner_name=owner_name,
            title=self.title,
            description=self.description,
            deadline=date.fromisoformat(self.deadline) if self.deadline else None,
            created_at=parse_timestamp(self.created_at),
        )


class PostSwipeModel(Base):
    """ORM model for post_swipes table. One row per (user, post) pair."""

    __tablename__ = "post_swipes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    post_id = Column(Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False)
    swipe_type = Column(String(10), nullable=False)
    created_at = Column(String(50), nullable=False)
    # Null for right swipes (permanent)
    expires_at = Column(String(50), nullable=True)
    updated_at = Column(String(50), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "post_id", name="unique_user_post_swipe"),
        Index("idx_post_swipes_user_expires", "user_id", "expires_at"),
    )

    def to_domain(self) -> Swipe:
        return Swipe(
            user_id=self.user_id,
            post_id=self.post_id,
            swipe_type=SwipeType(self.swipe_type),
            created_at=parse_timestamp(self.created_at),
            expires_at=parse_timestamp(self.expires_at),
        )


class UserBlockModel(Base):
    """ORM model for user_blocks table."""

    __tablename__ = "user_blocks"

    id = Column(Integer, primary_key=True, autoincrement=True)
    blocker_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    blocked_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    reason = Column(Text, nullable=True)
    created_at = Column(String(50), nullable=False)

    __table_args__ = (
        UniqueConstraint("blocker_id", "blocked_id", name="unique_user_block"),
        Index("idx_user_blocks_blocked", "blocked_id"),
    )

    def to_domain(self) -> Block:
        return Block(blocker_id=self.blocker_id, blocked_id=self.blocked_id, reason=self.reason)


class PostReportModel(Base):
    """ORM model for post_reports table."""

    __tablename__ = "post_reports"

    id = Column(Integer, primary_key=True, autoincrement=True)
    post_id = Column(Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False)
    reported_by = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    reason = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="pending")
    created_at = Column(String(50), nullable=False)

    __table_args__ = (
        UniqueConstraint("post_id", "reported_by", name="unique_post_report"),
        Index("idx_post_reports_reporter", "reported_by"),
    )

    def to_domain(self) -> Report:
        return Report(post_id=self.post_id, reported_by=self.reported_by, reason=self.reason)


def create_schema(engine: Engine) -> None:
    """Create all tables and indexes if they don't exist (idempotent).

    Args:
        engine: SQLAlchemy engine instance
    """
    logger.info("Creating database schema if not exists")

    try:
        Base.metadata.create_all(engine, checkfirst=True)
        tables = inspect(engine).get_table_names()
        logger.info(f"Database schema ready. Tables: {', '.join(tables)}")
    except Exception as e:
        logger.error(f"Failed to create database schema: {e}", exc_info=True)
        raise
