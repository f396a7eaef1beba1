#!/usr/bin/env python3
"""
Development Seeding Script for Tubely Ingest.

Creates draft video records owned by a user and prints a bearer access token
for that user, so the upload endpoints can be exercised by hand:

    python scripts/seed_video.py --count 2
    curl -H "Authorization: Bearer $TOKEN" \\
         -F "thumbnail=@cover.png;type=image/png" \\
         http://localhost:8091/api/thumbnail_upload/$VIDEO_ID

Usage:
    python seed_video.py [options]

Options:
    --user-id UUID  Owner of the created videos (random if omitted)
    --count INT     Number of videos to create (default: 1)
    --clean         Delete every video owned by the user first
    --seed INT      Random seed for reproducible titles
    --verbose       Display detailed operation logs

Connection and signing settings are read the same way the service reads them
(environment variables and ``.env``): MONGODB_URI, MONGODB_DB_NAME, JWT_SECRET.
"""

import argparse
import sys
import uuid
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from faker import Faker
from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import ConnectionFailure, PyMongoError, ServerSelectionTimeoutError

from app.config import get_settings
from app.core.auth import make_jwt
from app.core.database import VIDEOS_COLLECTION
from app.models.video import Video

CONNECTION_TIMEOUT_MS = 5000


class VideoSeeder:
    """Inserts draft video records for local development."""

    def __init__(self, seed: Optional[int] = None, verbose: bool = False):
        self.verbose = verbose
        self.settings = get_settings()
        self.client: Optional[MongoClient] = None
        self.db: Optional[Database] = None

        self.fake = Faker()
        if seed is not None:
            Faker.seed(seed)

    def log(self, message: str, level: str = "INFO") -> None:
        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")
        if level == "DEBUG" and not self.verbose:
            return
        print(f"[{timestamp}] [{level}] {message}")

    def connect(self) -> bool:
        """
        Connect to MongoDB and verify with a ping.

        Returns:
            True if connection successful, False otherwise.
        """
        self.log(f"Connecting to MongoDB at {self._mask_uri(self.settings.mongodb_uri)}...")

        try:
            self.client = MongoClient(
                self.settings.mongodb_uri,
                serverSelectionTimeoutMS=CONNECTION_TIMEOUT_MS,
                connectTimeoutMS=CONNECTION_TIMEOUT_MS,
                tz_aware=True,
            )
            self.client.admin.command("ping")
        except (ConnectionFailure, ServerSelectionTimeoutError) as e:
            self.log(f"Connection failed: {e}", "ERROR")
            self.log("Ensure MongoDB is running and accessible at the configured URI.", "ERROR")
            return False

        self.db = self.client[self.settings.mongodb_db_name]
        self.log(f"Using database: {self.settings.mongodb_db_name}", "DEBUG")
        return True

    def _mask_uri(self, uri: str) -> str:
        """Mask credentials in a MongoDB URI for logging."""
        if "@" in uri:
            protocol_end = uri.find("://") + 3
            at_pos = uri.find("@")
            return f"{uri[:protocol_end]}***:***{uri[at_pos:]}"
        return uri

    def clean(self, user_id: uuid.UUID) -> int:
        result = self.db[VIDEOS_COLLECTION].delete_many({"user_id": str(user_id)})
        self.log(f"Deleted {result.deleted_count} videos owned by {user_id}", "WARNING")
        return result.deleted_count

    def create_videos(self, user_id: uuid.UUID, count: int) -> List[Video]:
        videos = [
            Video(
                id=uuid.uuid4(),
                user_id=user_id,
                title=self.fake.sentence(nb_words=4).rstrip("."),
                description=self.fake.paragraph(nb_sentences=2),
            )
            for _ in range(count)
        ]
        self.db[VIDEOS_COLLECTION].insert_many([v.to_document() for v in videos])
        for video in videos:
            self.log(f"Created video {video.id}: {video.title}", "DEBUG")
        return videos

    def close(self) -> None:
        if self.client is not None:
            self.client.close()


def parse_arguments() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Seed draft video records for Tubely Ingest",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python seed_video.py                       # One video for a new user
    python seed_video.py --count 5             # Five videos
    python seed_video.py --user-id <uuid>      # Videos for an existing user
        """,
    )
    parser.add_argument("--user-id", type=uuid.UUID, default=None, help="Owner user ID")
    parser.add_argument("--count", type=int, default=1, help="Number of videos (default: 1)")
    parser.add_argument(
        "--clean", action="store_true", help="Delete the user's existing videos first"
    )
    parser.add_argument("--seed", type=int, default=None, help="Random seed for titles")
    parser.add_argument("--verbose", action="store_true", help="Display detailed operation logs")
    return parser.parse_args()


def main() -> int:
    args = parse_arguments()
    user_id = args.user_id or uuid.uuid4()

    seeder = VideoSeeder(seed=args.seed, verbose=args.verbose)

    try:
        if not seeder.connect():
            return 1

        if args.clean:
            seeder.clean(user_id)

        videos = seeder.create_videos(user_id, args.count)

        settings = seeder.settings
        token = make_jwt(
            user_id,
            settings.jwt_secret,
            expires_in=timedelta(hours=settings.jwt_expiration_hours),
            issuer=settings.jwt_issuer,
        )

        print("\n" + "=" * 60)
        print(f"USER_ID={user_id}")
        for video in videos:
            print(f"VIDEO_ID={video.id}")
        print(f"TOKEN={token}")
        print("=" * 60 + "\n")
        return 0

    except KeyboardInterrupt:
        seeder.log("Operation cancelled by user", "WARNING")
        return 130

    except PyMongoError as e:
        seeder.log(f"MongoDB error: {e}", "ERROR")
        return 1

    finally:
        seeder.close()


if __name__ == "__main__":
    sys.exit(main())
