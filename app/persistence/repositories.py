"""Data access layer (repositories) for persistence operations.

Repositories wrap one Session each, return domain models or plain id sets,
and raise PersistenceError subclasses. They cover the reads the matching
engine needs plus the writes used to seed users, posts and moderation state.
"""

import logging
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Set, Tuple

from pydantic import ValidationError
from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.models import (
    Block,
    CandidatePost,
    PostMedium,
    PostStatus,
    Report,
    Swipe,
    SwipeType,
    TempAddress,
)
from app.utils.timestamps import add_seconds, format_timestamp, utc_now

from .exceptions import DataIntegrityError, PersistenceError, RecordNotFoundError
from .schema import (
    PostModel,
    PostReportModel,
    PostSwipeModel,
    TempAddressModel,
    UserBlockModel,
    UserModel,
    UserSkillModel,
    WorkProfileModel,
)

logger = logging.getLogger(__name__)


def _current_address_clause(now_str: str):
    return and_(
        TempAddressModel.is_active.is_(True),
        func.trim(TempAddressModel.pincode) != "",
        or_(TempAddressModel.expires_at.is_(None), TempAddressModel.expires_at > now_str),
    )


class UserRepository:
    """Repository for user records."""

    def __init__(self, session: Session):
        self.session = session

    def add(
        self,
        name: str,
        user_id: Optional[int] = None,
        suspended: bool = False,
        created_at: Optional[datetime] = None,
    ) -> int:
        """Insert a user and return its id.

        Raises:
            DataIntegrityError: If user_id is already taken
            PersistenceError: If database error occurs
        """
        try:
            model = UserModel(
                id=user_id,
                name=name,
                is_blocked=suspended,
                created_at=format_timestamp(created_at or utc_now()),
            )
            self.session.add(model)
            self.session.flush()
            return model.id

        except IntegrityError as e:
            logger.error(f"Integrity error adding user {name}: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to add user due to constraint violation: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error adding user {name}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to add user: {e}") from e

    def exists(self, user_id: int) -> bool:
        try:
            stmt = select(UserModel.id).where(UserModel.id == user_id)
            return self.session.execute(stmt).scalar_one_or_none() is not None

        except SQLAlchemyError as e:
            logger.error(f"Error checking user {user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to check user: {e}") from e

    def set_suspended(self, user_id: int, suspended: bool) -> None:
        """Set or clear the account-level moderation block.

        Raises:
            RecordNotFoundError: If the user doesn't exist
            PersistenceError: If database error occurs
        """
        try:
            stmt = update(UserModel).where(UserModel.id == user_id).values(is_blocked=suspended)
            result = self.session.execute(stmt)
            self.session.flush()

            if result.rowcount == 0:
                raise RecordNotFoundError(f"User {user_id} not found")

        except RecordNotFoundError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Error updating suspension for user {user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to update user: {e}") from e


class SkillRepository:
    """Repository for work profiles and the skills declared on them."""

    def __init__(self, session: Session):
        self.session = session

    def add_work_profile(self, user_id: int, title: Optional[str] = None) -> int:
        """Create a work profile for a user and return its id."""
        try:
            model = WorkProfileModel(user_id=user_id, title=title)
            self.session.add(model)
            self.session.flush()
            return model.id

        except IntegrityError as e:
            logger.error(f"Integrity error adding work profile for {user_id}: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to add work profile: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error adding work profile for {user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to add work profile: {e}") from e

    def add_user_skill(
        self, work_profile_id: int, skill_id: int, sub_skill_id: Optional[int] = None
    ) -> None:
        try:
            self.session.add(
                UserSkillModel(
                    work_profile_id=work_profile_id,
                    skill_id=skill_id,
                    sub_skill_id=sub_skill_id,
                )
            )
            self.session.flush()

        except IntegrityError as e:
            logger.error(f"Integrity error adding skill {skill_id}: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to add user skill: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error adding skill {skill_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to add user skill: {e}") from e

    def get_skill_sets(self, user_id: int) -> Tuple[Set[int], Set[int]]:
        """Return (skill_ids, sub_skill_ids) across all of the user's work profiles.

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            stmt = (
                select(UserSkillModel.skill_id, UserSkillModel.sub_skill_id)
                .join(WorkProfileModel, WorkProfileModel.id == UserSkillModel.work_profile_id)
                .where(WorkProfileModel.user_id == user_id)
            )
            skill_ids: Set[int] = set()
            sub_skill_ids: Set[int] = set()
            for skill_id, sub_skill_id in self.session.execute(stmt):
                skill_ids.add(skill_id)
                if sub_skill_id is not None:
                    sub_skill_ids.add(sub_skill_id)
            return skill_ids, sub_skill_ids

        except SQLAlchemyError as e:
            logger.error(f"Error retrieving skills for user {user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve skills: {e}") from e


class AddressRepository:
    """Repository for temporary addresses."""

    def __init__(self, session: Session):
        self.session = session

    def add(
        self,
        user_id: int,
        pincode: str,
        is_active: bool = True,
        expires_at: Optional[datetime] = None,
        created_at: Optional[datetime] = None,
    ) -> int:
        """Insert a temporary address with a whitespace-trimmed pincode.

        Raises:
            DataIntegrityError: If the pincode is blank or too long, or the user doesn't exist
            PersistenceError: If database error occurs
        """
        try:
            address = TempAddress(
                user_id=user_id,
                pincode=pincode,
                is_active=is_active,
                expires_at=expires_at,
                created_at=created_at or utc_now(),
            )
        except ValidationError as e:
            raise DataIntegrityError(f"Invalid address for user {user_id}: {e}") from e

        try:
            model = TempAddressModel(
                user_id=address.user_id,
                pincode=address.pincode,
                is_active=address.is_active,
                expires_at=format_timestamp(address.expires_at),
                created_at=format_timestamp(address.created_at),
            )
            self.session.add(model)
            self.session.flush()
            return model.id

        except IntegrityError as e:
            logger.error(f"Integrity error adding address for {user_id}: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to add address: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error adding address for {user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to add address: {e}") from e

    def get_active_pincode(self, user_id: int, now: datetime) -> Optional[str]:
        """Return the pincode of the user's current address, or None.

        When several rows qualify the most recently created one wins.
        """
        return self.get_active_pincodes([user_id], now).get(user_id)

    def get_active_pincodes(self, user_ids: Iterable[int], now: datetime) -> Dict[int, str]:
        """Resolve the current pincode for many users in one query.

        Raises:
            PersistenceError: If database error occurs
        """
        ids = set(user_ids)
        if not ids:
            return {}

        try:
            stmt = (
                select(TempAddressModel.user_id, TempAddressModel.pincode)
                .where(
                    TempAddressModel.user_id.in_(ids),
                    _current_address_clause(format_timestamp(now)),
                )
                .order_by(TempAddressModel.created_at.desc(), TempAddressModel.id.desc())
            )
            pincodes: Dict[int, str] = {}
            for user_id, pincode in self.session.execute(stmt):
                pincodes.setdefault(user_id, pincode.strip())
            return pincodes

        except SQLAlchemyError as e:
            logger.error(f"Error retrieving active addresses: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve addresses: {e}") from e


class PostRepository:
    """Repository for posts."""

    def __init__(self, session: Session):
        self.session = session

    def add(
        self,
        user_id: int,
        title: Optional[str] = None,
        description: Optional[str] = None,
        required_skill_id: Optional[int] = None,
        required_sub_skill_id: Optional[int] = None,
        medium: PostMedium = PostMedium.ONLINE,
        status: PostStatus = PostStatus.ACTIVE,
        deadline: Optional[date] = None,
        created_at: Optional[datetime] = None,
        post_id: Optional[int] = None,
    ) -> int:
        """Insert a post and return its id.

        Raises:
            DataIntegrityError: If the owner doesn't exist or post_id is taken
            PersistenceError: If database error occurs
        """
        created = format_timestamp(created_at or utc_now())
        try:
            model = PostModel(
                id=post_id,
                user_id=user_id,
                title=title,
                description=description,
                required_skill_id=required_skill_id,
                required_sub_skill_id=required_sub_skill_id,
                medium=PostMedium(medium).value,
                status=PostStatus(status).value,
                deadline=deadline.isoformat() if deadline else None,
                created_at=created,
                updated_at=created,
            )
            self.session.add(model)
            self.session.flush()
            return model.id

        except IntegrityError as e:
            logger.error(f"Integrity error adding post for user {user_id}: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to add post due to constraint violation: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error adding post for user {user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to add post: {e}") from e

    def fetch_candidates(
        self,
        viewer_id: int,
        status: PostStatus,
        medium: Optional[PostMedium],
        now: datetime,
    ) -> List[CandidatePost]:
        """Return non-deleted posts with the given status (and medium) not owned by the viewer.

        Each post carries its owner's name, suspension flag and current pincode.

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            stmt = (
                select(PostModel, UserModel.is_blocked, UserModel.name)
                .join(UserModel, UserModel.id == PostModel.user_id)
                .where(
                    PostModel.user_id != viewer_id,
                    PostModel.status == PostStatus(status).value,
                    PostModel.status != PostStatus.DELETED.value,
                )
                .order_by(PostModel.created_at.desc(), PostModel.id.desc())
            )
            if medium is not None:
                stmt = stmt.where(PostModel.medium == PostMedium(medium).value)

            rows = self.session.execute(stmt).all()
            pincodes = AddressRepository(self.session).get_active_pincodes(
                (post.user_id for post, _, _ in rows), now
            )

            return [
                post.to_domain(
                    owner_active_pincode=pincodes.get(post.user_id),
                    owner_suspended=owner_blocked,
                    owner_name=owner_name,
                )
                for post, owner_blocked, owner_name in rows
            ]

        except PersistenceError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving candidates for viewer {viewer_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve candidate posts: {e}") from e

    def set_status(self, post_id: int, status: PostStatus, now: Optional[datetime] = None) -> None:
        """Change a post's lifecycle state.

        Raises:
            RecordNotFoundError: If the post doesn't exist
            PersistenceError: If database error occurs
        """
        try:
            stmt = (
                update(PostModel)
                .where(PostModel.id == post_id)
                .values(
                    status=PostStatus(status).value,
                    updated_at=format_timestamp(now or utc_now()),
                )
            )
            result = self.session.execute(stmt)
            self.session.flush()

            if result.rowcount == 0:
                raise RecordNotFoundError(f"Post {post_id} not found")

        except RecordNotFoundError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Error updating status for post {post_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to update post status: {e}") from e


class SwipeRepository:
    """Repository for post swipes. At most one row per (user, post) pair."""

    def __init__(self, session: Session):
        self.session = session

    def record_swipe(
        self,
        user_id: int,
        post_id: int,
        swipe_type: SwipeType,
        hide_seconds: int,
        now: Optional[datetime] = None,
    ) -> Swipe:
        """Create or replace the user's swipe on a post.

        A left swipe hides the post for hide_seconds; a right swipe has no
        expiry. Swiping again overwrites the previous direction and expiry.

        Raises:
            DataIntegrityError: If the user or post doesn't exist
            PersistenceError: If database error occurs
        """
        swipe_type = SwipeType(swipe_type)
        now = now or utc_now()
        expires_at = add_seconds(now, hide_seconds) if swipe_type == SwipeType.LEFT else None
        values = {
            "swipe_type": swipe_type.value,
            "expires_at": format_timestamp(expires_at),
            "updated_at": format_timestamp(now),
        }

        try:
            existing = self._get_model(user_id, post_id)
            if existing is None:
                try:
                    with self.session.begin_nested():
                        existing = PostSwipeModel(
                            user_id=user_id,
                            post_id=post_id,
                            created_at=format_timestamp(now),
                            **values,
                        )
                        self.session.add(existing)
                except IntegrityError:
                    # Lost a race with a concurrent insert for the same pair
                    existing = self._get_model(user_id, post_id)
                    if existing is None:
                        raise

            for key, value in values.items():
                setattr(existing, key, value)
            self.session.flush()
            return existing.to_domain()

        except IntegrityError as e:
            logger.error(f"Integrity error recording swipe {user_id}->{post_id}: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to record swipe: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error recording swipe {user_id}->{post_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to record swipe: {e}") from e

    def get(self, user_id: int, post_id: int) -> Optional[Swipe]:
        try:
            model = self._get_model(user_id, post_id)
            return model.to_domain() if model else None

        except SQLAlchemyError as e:
            logger.error(f"Error retrieving swipe {user_id}->{post_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve swipe: {e}") from e

    def hidden_post_ids(self, viewer_id: int, now: datetime) -> Set[int]:
        """Posts hidden from the viewer by a right swipe or an unexpired left swipe."""
        try:
            stmt = select(PostSwipeModel.post_id).where(
                PostSwipeModel.user_id == viewer_id,
                or_(
                    PostSwipeModel.swipe_type == SwipeType.RIGHT.value,
                    PostSwipeModel.expires_at > format_timestamp(now),
                ),
            )
            return set(self.session.execute(stmt).scalars().all())

        except SQLAlchemyError as e:
            logger.error(f"Error retrieving swipes for viewer {viewer_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve swipes: {e}") from e

    def _get_model(self, user_id: int, post_id: int) -> Optional[PostSwipeModel]:
        stmt = select(PostSwipeModel).where(
            PostSwipeModel.user_id == user_id, PostSwipeModel.post_id == post_id
        )
        return self.session.execute(stmt).scalar_one_or_none()


class ModerationRepository:
    """Repository for user blocks and post reports."""

    def __init__(self, session: Session):
        self.session = session

    def add_block(
        self, blocker_id: int, blocked_id: int, reason: Optional[str] = None
    ) -> Block:
        """Record that blocker_id blocked blocked_id.

        Raises:
            DataIntegrityError: If the pair is already blocked or a user is missing
            PersistenceError: If database error occurs
        """
        try:
            model = UserBlockModel(
                blocker_id=blocker_id,
                blocked_id=blocked_id,
                reason=reason,
                created_at=format_timestamp(utc_now()),
            )
            self.session.add(model)
            self.session.flush()
            return model.to_domain()

        except IntegrityError as e:
            logger.error(f"Integrity error blocking {blocker_id}->{blocked_id}: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to add block: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error blocking {blocker_id}->{blocked_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to add block: {e}") from e

    def blocked_user_ids(self, viewer_id: int) -> Set[int]:
        """Users the viewer blocked plus users who blocked the viewer."""
        try:
            stmt = select(UserBlockModel.blocker_id, UserBlockModel.blocked_id).where(
                or_(
                    UserBlockModel.blocker_id == viewer_id,
                    UserBlockModel.blocked_id == viewer_id,
                )
            )
            blocked: Set[int] = set()
            for blocker_id, blocked_id in self.session.execute(stmt):
                blocked.add(blocked_id if blocker_id == viewer_id else blocker_id)
            return blocked

        except SQLAlchemyError as e:
            logger.error(f"Error retrieving blocks for viewer {viewer_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve blocks: {e}") from e

    def add_report(self, post_id: int, reported_by: int, reason: Optional[str] = None) -> Report:
        """Record a report against a post.

        Raises:
            DataIntegrityError: If the user already reported this post
            PersistenceError: If database error occurs
        """
        try:
            model = PostReportModel(
                post_id=post_id,
                reported_by=reported_by,
                reason=reason,
                created_at=format_timestamp(utc_now()),
            )
            self.session.add(model)
            self.session.flush()
            return model.to_domain()

        except IntegrityError as e:
            logger.error(f"Integrity error reporting post {post_id}: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to add report: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error reporting post {post_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to add report: {e}") from e

    def reported_post_ids(self, viewer_id: int) -> Set[int]:
        try:
            stmt = select(PostReportModel.post_id).where(PostReportModel.reported_by == viewer_id)
            return set(self.session.execute(stmt).scalars().all())

        except SQLAlchemyError as e:
            logger.error(f"Error retrieving reports for viewer {viewer_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve reports: {e}") from e
