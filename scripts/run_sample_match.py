#!/usr/bin/env python3
"""Sample matching harness for end-to-end validation.

Seeds a small dataset (viewer, post owners, posts, a swipe, a block and a
report) into a database and runs one matching request through the same
pipeline the CLI uses, without running pytest.

Usage:
    # In-memory database (default)
    python scripts/run_sample_match.py

    # Threshold and axis toggles
    python scripts/run_sample_match.py --min-match-score 50 --no-location

    # Persist the seeded data for inspection
    python scripts/run_sample_match.py --database sqlite:////tmp/sample_matching.db
"""

import argparse
import json
import sys
from datetime import date, timedelta
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

from app.config.loader import load_config
from app.domain.models import PostMedium, PostStatus, SwipeType
from app.logging.config import configure_logging
from app.persistence.database import close_database, get_session, init_database
from app.persistence.repositories import (
    AddressRepository,
    ModerationRepository,
    PostRepository,
    SkillRepository,
    UserRepository,
)
from app.pipeline import MatchingPipeline
from app.utils.timestamps import utc_now

PLUMBING, ELECTRICAL = 1, 2
PIPE_FITTING, WIRING = 10, 20
VIEWER_ID = 1


def print_header(title: str):
    """Print a formatted section header."""
    width = 80
    print("\n" + "=" * width)
    print(f" {title}")
    print("=" * width + "\n")


def seed_sample_data() -> dict:
    """Insert the sample dataset and return ids worth mentioning in the summary."""
    now = utc_now()

    with get_session() as session:
        users = UserRepository(session)
        skills = SkillRepository(session)
        addresses = AddressRepository(session)
        posts = PostRepository(session)
        moderation = ModerationRepository(session)

        users.add("Viewer", user_id=VIEWER_ID)
        owner_near = users.add("Nearby plumber client")
        owner_far = users.add("Remote electrician client")
        owner_blocked = users.add("Blocked owner")
        owner_suspended = users.add("Suspended owner", suspended=True)

        profile_id = skills.add_work_profile(VIEWER_ID, title="Plumber")
        skills.add_user_skill(profile_id, PLUMBING, PIPE_FITTING)

        addresses.add(VIEWER_ID, "361004", expires_at=now + timedelta(days=30))
        addresses.add(owner_near, "361004")
        addresses.add(owner_far, "400001")

        full_match = posts.add(
            owner_near,
            title="Fix kitchen pipes",
            required_skill_id=PLUMBING,
            required_sub_skill_id=PIPE_FITTING,
            medium=PostMedium.OFFLINE,
            created_at=now - timedelta(hours=3),
        )
        partial_match = posts.add(
            owner_far,
            title="Bathroom plumbing consult",
            required_skill_id=PLUMBING,
            medium=PostMedium.ONLINE,
            created_at=now - timedelta(hours=2),
        )
        posts.add(
            owner_far,
            title="Rewire the office",
            required_skill_id=ELECTRICAL,
            required_sub_skill_id=WIRING,
            created_at=now - timedelta(hours=1),
        )
        swiped = posts.add(owner_near, title="Already swiped", required_skill_id=PLUMBING)
        reported = posts.add(owner_far, title="Reported post", required_skill_id=PLUMBING)
        posts.add(owner_blocked, title="From a blocked user", required_skill_id=PLUMBING)
        posts.add(owner_suspended, title="From a suspended user", required_skill_id=PLUMBING)
        posts.add(
            owner_near,
            title="Expired job",
            required_skill_id=PLUMBING,
            deadline=date.today() - timedelta(days=1),
        )
        posts.add(
            owner_near,
            title="Deleted job",
            required_skill_id=PLUMBING,
            status=PostStatus.DELETED,
        )

        moderation.add_block(VIEWER_ID, owner_blocked, reason="spam")
        moderation.add_report(reported, VIEWER_ID, reason="misleading")

    return {"full_match": full_match, "partial_match": partial_match, "swiped": swiped}


def main():
    """Main entry point for the sample matching harness."""
    parser = argparse.ArgumentParser(description="Run a sample matching request")
    parser.add_argument("--config", type=Path, default=None, help="Path to configuration file")
    parser.add_argument(
        "--database",
        default="sqlite:///:memory:",
        help="Database URL (default: in-memory SQLite)",
    )
    parser.add_argument("--min-match-score", default=None, help="Minimum match percentage")
    parser.add_argument("--no-location", action="store_true", help="Disable the location axis")
    parser.add_argument("--log-level", default="WARNING", help="Log level (default: WARNING)")
    args = parser.parse_args()

    load_dotenv()
    app_config, _ = load_config(args.config)
    configure_logging(level=args.log_level, format_type=app_config.logging.format)

    print_header("Seeding Sample Data")
    init_database(args.database)

    try:
        ids = seed_sample_data()
        pipeline = MatchingPipeline.from_config(app_config)
        pipeline.record_swipe(VIEWER_ID, ids["swiped"], SwipeType.LEFT)
        print(f"Viewer {VIEWER_ID} swiped left on post {ids['swiped']}")

        print_header("Matching Response")
        result = pipeline.run(
            VIEWER_ID,
            {
                "min_match_score": args.min_match_score,
                "match_location": not args.no_location,
            },
        )
        print(json.dumps(result.body, indent=2))

        print_header("Run Summary")
        print(f"Status code:     {result.status_code}")
        print(f"Candidates read: {result.candidate_count}")
        print(f"Excluded:        {result.excluded_count}")
        print(f"Matching posts:  {result.total_items}")
        print(f"Duration:        {result.duration_seconds:.3f}s")
        return 0 if result.succeeded else 1
    finally:
        close_database()


if __name__ == "__main__":
    sys.exit(main())
