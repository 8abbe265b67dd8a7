"""
Media upload API endpoints.

Both endpoints are owner-only and run their pipeline synchronously within
the request. The response is the updated record with a presigned video_url;
on any failure the record is left exactly as it was.

Video:     multipart field "video", video/mp4 only, up to 1 GiB
Thumbnail: multipart field "thumbnail", any image/* type
"""

import logging
from typing import Annotated

from fastapi import APIRouter, File, UploadFile, status

from ..dependencies import (
    CurrentUser,
    ThumbnailPipelineDep,
    VideoID,
    VideoPipelineDep,
    VideoSignerDep,
)
from .videos import VideoResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/video_upload/{video_id}",
    response_model=VideoResponse,
    status_code=status.HTTP_200_OK,
    summary="Upload video",
    description="Upload an MP4, optimize it for streaming and store it.",
)
async def upload_video(
    video_id: VideoID,
    video: Annotated[UploadFile, File(description="MP4 video")],
    user_id: CurrentUser,
    pipeline: VideoPipelineDep,
    signer: VideoSignerDep,
) -> VideoResponse:
    """
    Stage, probe, fast-start remux and upload a video.

    The stored key is namespaced by orientation (landscape/, portrait/,
    other/). Like GET /api/videos/{video_id}, the response carries a
    presigned video_url rather than the stored bucket/key reference.
    """
    try:
        record = await pipeline.run(video_id, user_id, video, video.content_type)
    finally:
        await video.close()

    return VideoResponse.from_record(await signer.sign(record))


@router.post(
    "/thumbnail_upload/{video_id}",
    response_model=VideoResponse,
    status_code=status.HTTP_200_OK,
    summary="Upload thumbnail",
)
async def upload_thumbnail(
    video_id: VideoID,
    thumbnail: Annotated[UploadFile, File(description="Thumbnail image")],
    user_id: CurrentUser,
    pipeline: ThumbnailPipelineDep,
    signer: VideoSignerDep,
) -> VideoResponse:
    try:
        record = await pipeline.run(video_id, user_id, thumbnail, thumbnail.content_type)
    finally:
        await thumbnail.close()

    return VideoResponse.from_record(await signer.sign(record))
