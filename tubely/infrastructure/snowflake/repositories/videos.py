"""
Snowflake repository for video records.

The repository:
1. Translates between VideoRecord and rows of the videos table
2. Encapsulates all SQL
3. Raises VideoNotFound for unknown ids so callers never inspect rowcounts

video_url is stored exactly as the pipeline hands it over, i.e. the
"<bucket>,<key>" reference string; signing happens at read time.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Protocol
from uuid import UUID, uuid4

from ....core.media.errors import VideoNotFound
from ....core.media.models import CreateVideoParams, VideoRecord

logger = logging.getLogger(__name__)


class SnowflakeConnection(Protocol):
    """
    Protocol for Snowflake connections.

    Using a protocol means tests can provide a mock without
    importing the actual snowflake-connector-python.
    """

    def cursor(self): ...
    def commit(self) -> None: ...


@dataclass
class SnowflakeConfig:
    """Configuration for Snowflake connection."""
    account: str
    user: str
    password: Optional[str] = None
    private_key_path: Optional[str] = None
    database: str = "TUBELY"
    schema: str = "MEDIA"
    warehouse: str = "COMPUTE_WH"
    role: Optional[str] = None


VIDEO_COLUMNS = (
    "video_id",
    "user_id",
    "title",
    "description",
    "thumbnail_url",
    "video_url",
    "created_at",
    "updated_at",
)

_SELECT_COLUMNS = ", ".join(VIDEO_COLUMNS)

CREATE_VIDEOS_TABLE = """
    CREATE TABLE IF NOT EXISTS videos (
        video_id VARCHAR(36) PRIMARY KEY,
        user_id VARCHAR(36) NOT NULL,
        title VARCHAR NOT NULL,
        description VARCHAR,
        thumbnail_url VARCHAR,
        video_url VARCHAR,
        created_at TIMESTAMP_TZ NOT NULL,
        updated_at TIMESTAMP_TZ NOT NULL
    )
"""


class VideoRepository:
    """
    Repository for video record persistence.

    Each method is one statement followed by a commit; there are no
    multi-statement transactions.
    """

    def __init__(self, connection: SnowflakeConnection) -> None:
        self._conn = connection

    def create_video(self, params: CreateVideoParams, user_id: UUID) -> VideoRecord:
        now = datetime.now(timezone.utc)
        video = VideoRecord(
            id=uuid4(),
            user_id=user_id,
            title=params.title,
            description=params.description,
            created_at=now,
            updated_at=now,
        )

        cursor = self._conn.cursor()
        try:
            cursor.execute(f"""
                INSERT INTO videos ({_SELECT_COLUMNS})
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            """, self._to_row(video))
            self._conn.commit()
        finally:
            cursor.close()

        return video

    def get_video(self, video_id: UUID) -> VideoRecord:
        cursor = self._conn.cursor()
        try:
            cursor.execute(f"""
                SELECT {_SELECT_COLUMNS}
                FROM videos
                WHERE video_id = %s
            """, (str(video_id),))
            row = cursor.fetchone()
        finally:
            cursor.close()

        if not row:
            raise VideoNotFound(f"Video {video_id} not found")
        return self._from_row(row)

    def list_videos(self, user_id: UUID) -> list[VideoRecord]:
        """All videos owned by user_id, newest first."""
        cursor = self._conn.cursor()
        try:
            cursor.execute(f"""
                SELECT {_SELECT_COLUMNS}
                FROM videos
                WHERE user_id = %s
                ORDER BY created_at DESC
            """, (str(user_id),))
            rows = cursor.fetchall()
        finally:
            cursor.close()

        return [self._from_row(row) for row in rows]

    def update_video(self, video: VideoRecord) -> None:
        cursor = self._conn.cursor()
        try:
            cursor.execute("""
                UPDATE videos
                SET title = %s,
                    description = %s,
                    thumbnail_url = %s,
                    video_url = %s,
                    updated_at = %s
                WHERE video_id = %s
            """, (
                video.title,
                video.description,
                video.thumbnail_url,
                video.video_url,
                video.updated_at,
                str(video.id),
            ))
            updated = cursor.rowcount
            self._conn.commit()
        finally:
            cursor.close()

        if not updated:
            raise VideoNotFound(f"Video {video.id} not found")

    def delete_video(self, video_id: UUID) -> None:
        cursor = self._conn.cursor()
        try:
            cursor.execute("""
                DELETE FROM videos
                WHERE video_id = %s
            """, (str(video_id),))
            deleted = cursor.rowcount
            self._conn.commit()
        finally:
            cursor.close()

        if not deleted:
            raise VideoNotFound(f"Video {video_id} not found")

    def ping(self) -> None:
        """Run a trivial query; raises if the database is unreachable."""
        cursor = self._conn.cursor()
        try:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        finally:
            cursor.close()

    @staticmethod
    def _to_row(video: VideoRecord) -> tuple:
        return (
            str(video.id),
            str(video.user_id),
            video.title,
            video.description,
            video.thumbnail_url,
            video.video_url,
            video.created_at,
            video.updated_at,
        )

    @staticmethod
    def _from_row(row: tuple) -> VideoRecord:
        (
            video_id,
            user_id,
            title,
            description,
            thumbnail_url,
            video_url,
            created_at,
            updated_at,
        ) = row
        return VideoRecord(
            id=UUID(str(video_id)),
            user_id=UUID(str(user_id)),
            title=title,
            description=description or "",
            thumbnail_url=thumbnail_url,
            video_url=video_url,
            created_at=created_at,
            updated_at=updated_at,
        )
