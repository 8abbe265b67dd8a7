"""
Video metadata API endpoints.

Create, read, list and delete video records. Reads return a copy of the
record whose video_url is a presigned link that expires after an hour;
the stored "<bucket>,<key>" reference never leaves the server.
"""

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Response, status
from pydantic import BaseModel, Field

from ...core.media.models import CreateVideoParams, VideoRecord
from ..dependencies import CurrentUser, VideoCatalogDep, VideoID

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class CreateVideoRequest(BaseModel):
    """Metadata supplied when creating a video."""
    title: str = Field(
        description="Video title",
        min_length=1,
        max_length=200,
    )
    description: str = Field(
        default="",
        description="Video description",
        max_length=5000,
    )


class VideoResponse(BaseModel):
    """A video record as returned to clients."""
    id: UUID = Field(description="Video identifier")
    user_id: UUID = Field(description="Owner of the video")
    title: str = Field(description="Video title")
    description: str = Field(description="Video description")
    created_at: datetime = Field(description="When the record was created")
    updated_at: datetime = Field(description="Last update time")
    thumbnail_url: Optional[str] = Field(None, description="Thumbnail URL, once uploaded")
    video_url: Optional[str] = Field(None, description="Presigned video URL, once uploaded")

    @classmethod
    def from_record(cls, video: VideoRecord) -> "VideoResponse":
        return cls(
            id=video.id,
            user_id=video.user_id,
            title=video.title,
            description=video.description,
            created_at=video.created_at,
            updated_at=video.updated_at,
            thumbnail_url=video.thumbnail_url,
            video_url=video.video_url,
        )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=VideoResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create video metadata",
)
async def create_video(
    request: CreateVideoRequest,
    user_id: CurrentUser,
    catalog: VideoCatalogDep,
) -> VideoResponse:
    """Create a draft video owned by the caller. Media is uploaded separately."""
    video = catalog.create(
        CreateVideoParams(title=request.title, description=request.description),
        user_id,
    )
    return VideoResponse.from_record(video)


@router.get(
    "",
    response_model=list[VideoResponse],
    status_code=status.HTTP_200_OK,
    summary="List my videos",
    description="Videos whose URL can't be signed are left out of the list.",
)
async def list_videos(
    user_id: CurrentUser,
    catalog: VideoCatalogDep,
) -> list[VideoResponse]:
    videos = await catalog.list_for_user(user_id)
    return [VideoResponse.from_record(video) for video in videos]


@router.get(
    "/{video_id}",
    response_model=VideoResponse,
    status_code=status.HTTP_200_OK,
    summary="Get a video",
    description="Public. Returns the record with a freshly signed video URL.",
)
async def get_video(
    video_id: VideoID,
    catalog: VideoCatalogDep,
) -> VideoResponse:
    video = await catalog.get(video_id)
    return VideoResponse.from_record(video)


@router.delete(
    "/{video_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a video",
    description="Owner only. Removes the record and, best effort, the stored object.",
)
async def delete_video(
    video_id: VideoID,
    user_id: CurrentUser,
    catalog: VideoCatalogDep,
) -> Response:
    await catalog.delete(video_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
