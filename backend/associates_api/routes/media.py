"""
Associates Backend — Media Proxy Route Handlers
================================================

What:  POST /api/upload and POST /api/delete, relaying images to the media host.
How:   Upload reads the multipart field `my_file`, validates it, turns it into
       a data URI and hands it to MediaHostClient.upload(). Delete forwards a
       publicId to MediaHostClient.destroy().

Response shapes:
    Upload returns the host's JSON unchanged; host failures surface as 502
    through the MediaHostError handler. Delete keeps the {success, message}
    body the admin frontend reads, so it maps its own failures to 400/500
    instead of going through the global handler.
"""

import logging

from fastapi import APIRouter, Depends, File, UploadFile, status
from fastapi.responses import JSONResponse

from associates_api.config import Settings
from associates_api.dependencies import (
    AuthGateRoute,
    get_media_client,
    get_settings,
    require_identity,
)
from associates_api.exceptions import MediaHostError
from associates_api.schemas.common import ErrorResponse, MessageResponse
from associates_api.schemas.media import (
    MediaDeleteRequest,
    MediaDeleteResponse,
    MediaUploadResponse,
)
from associates_api.services.media_service import (
    MediaHostClient,
    build_data_uri,
    check_upload_size,
    validate_upload,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Media"], route_class=AuthGateRoute)


@router.post(
    "/upload",
    response_model=MediaUploadResponse,
    dependencies=[Depends(require_identity)],
    responses={
        400: {"description": "Empty or oversized file", "model": ErrorResponse},
        401: {"description": "No valid session", "model": MessageResponse},
        502: {"description": "Media host failed", "model": ErrorResponse},
    },
    summary="Upload an image to the media host",
)
async def upload(
    my_file: UploadFile = File(..., description="Image or other asset to store"),
    settings: Settings = Depends(get_settings),
    media: MediaHostClient = Depends(get_media_client),
):
    # Reject by declared size first; the body is spooled to disk, not yet in memory
    check_upload_size(my_file.size, settings.max_upload_size)
    content = await my_file.read()
    validate_upload(content, settings.max_upload_size)

    data_uri = build_data_uri(content, my_file.content_type)
    result = await media.upload(data_uri)
    logger.info(
        "Uploaded %s (%d bytes) as %s",
        my_file.filename,
        len(content),
        result.get("public_id"),
    )
    return result


@router.post(
    "/delete",
    response_model=MediaDeleteResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(require_identity)],
    responses={
        400: {"description": "Host did not delete the asset", "model": MediaDeleteResponse},
        401: {"description": "No valid session", "model": MessageResponse},
        500: {"description": "Media host unreachable or failed", "model": MediaDeleteResponse},
    },
    summary="Delete an image from the media host",
)
async def delete(
    payload: MediaDeleteRequest,
    media: MediaHostClient = Depends(get_media_client),
):
    try:
        result = await media.destroy(payload.publicId)
    except MediaHostError as e:
        logger.error("Media delete for %s failed: %s", payload.publicId, e.message)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "message": "Something went wrong"},
        )

    if result.get("result") != "ok":
        logger.info("Media host did not delete %s: %s", payload.publicId, result.get("result"))
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "message": "Image deletion failed"},
        )

    return MediaDeleteResponse(success=True)
