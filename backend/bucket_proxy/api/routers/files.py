import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import PlainTextResponse, Response
from starlette.datastructures import FormData, UploadFile

from bucket_proxy.api.deps import get_form, get_storage
from bucket_proxy.core.config import Settings, get_settings
from bucket_proxy.schemas import ObjectDescriptor
from bucket_proxy.services.media import detect_content_type, format_content_disposition
from bucket_proxy.services.storage import StorageError, StorageService
from bucket_proxy.services.transfers import (
    TimeoutConfigError,
    bounded,
    optional_timeout,
    resolve_timeout,
    save_to_disk,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["files"])


def _field(form: FormData, name: str) -> str:
    value = form.get(name)
    return value if isinstance(value, str) else ""


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


@router.api_route(
    "/",
    methods=["GET", "POST"],
    name="list_files",
    response_model=list[ObjectDescriptor],
)
async def list_files_in_bucket(
    form: FormData = Depends(get_form),
    storage: StorageService = Depends(get_storage),
    settings: Settings = Depends(get_settings),
) -> list[ObjectDescriptor]:
    bucket = _field(form, "bucket")

    try:
        timeout = resolve_timeout(settings.duration)
    except TimeoutConfigError as exc:
        raise _bad_request(str(exc)) from None

    try:
        objects = await bounded(storage.list_objects(bucket), timeout)
    except StorageError as exc:
        raise _bad_request(f"failed to list objects for bucket, {bucket}, {exc}") from None

    logger.info("successfully retrieved files from bucket: %s", bucket)
    return objects


@router.post("/upload", name="upload_file", response_class=PlainTextResponse)
async def upload_file_to_bucket(
    form: FormData = Depends(get_form),
    storage: StorageService = Depends(get_storage),
    settings: Settings = Depends(get_settings),
) -> PlainTextResponse:
    upload = form.get("file")
    if not isinstance(upload, UploadFile) or not upload.filename:
        raise _bad_request("could not get file data from request: no file in field 'file'")

    try:
        data = await upload.read()
    except OSError as exc:
        raise _bad_request(f"could not upload file: {exc}") from None

    bucket = _field(form, "bucket")
    key = upload.filename

    try:
        location = await bounded(
            storage.upload_bytes(bucket, key, data),
            optional_timeout(settings.duration),
        )
    except StorageError as exc:
        raise _bad_request(f"failed to upload file to S3 bucket: {exc}") from None

    logger.info("file uploaded to, %s", location)
    return PlainTextResponse(f"file uploaded to S3 bucket: {location}")


@router.api_route("/download", methods=["GET", "POST"], name="download_file")
async def download_file_from_bucket(
    form: FormData = Depends(get_form),
    storage: StorageService = Depends(get_storage),
    settings: Settings = Depends(get_settings),
) -> Response:
    bucket = _field(form, "bucket")
    key = _field(form, "file")
    save_locally = _field(form, "downloadFile") == "yes"
    timeout = optional_timeout(settings.duration)

    logger.info("Attempting to download %s from bucket: %s", key, bucket)
    try:
        size = await bounded(storage.object_size(bucket, key), timeout)
    except StorageError as exc:
        logger.error("Could not read metadata of %s in bucket %s: %s", key, bucket, exc)
        return Response(status_code=status.HTTP_200_OK)
    logger.info("File size is %d.", size)

    try:
        data = await bounded(storage.download_bytes(bucket, key), timeout)
    except StorageError as exc:
        logger.error("Could not download file. Reason: %s.", exc)
        return Response(status_code=status.HTTP_200_OK)
    logger.info("Downloaded file. Size: %d", len(data))

    if save_locally:
        await asyncio.to_thread(save_to_disk, settings, key, data)
        return Response(status_code=status.HTTP_200_OK)

    return Response(
        content=data,
        media_type=detect_content_type(data, key),
        headers={"Content-Disposition": format_content_disposition("attachment", key)},
    )
