from fastapi import APIRouter, Request, status
from fastapi.responses import HTMLResponse, JSONResponse, Response
from starlette.datastructures import FormData, UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException

from upload_server import config
from upload_server.app.services.upload_manager import (
    FormFileError,
    PayloadTooLargeError,
    UploadError,
)
from upload_server.logger_config import setup_logger
from upload_server.pages import format_headers, html_message_page, network_line, request_dump

logger = setup_logger()

router = APIRouter()


def wants_json(request: Request) -> bool:
    return "application/json" in request.headers.get("accept", "")


def render_message(request: Request, message: str, title: str, status_code: int = 200,
                   addon: str = "", **details) -> Response:
    """Answer with an html message page, or JSON if the client asked for it."""
    if wants_json(request):
        body = {"success": status_code < 400, "message": message}
        body.update(details)
        return JSONResponse(body, status_code=status_code)

    debug = request_dump(request)
    if addon:
        debug += "\n" + addon
    return HTMLResponse(
        html_message_page(message, title, debug[:config.MAX_DEBUG_DUMP], "/"),
        status_code=status_code,
    )


async def upload_error_handler(request: Request, exc: UploadError) -> Response:
    logger.error(f"Upload failed ({exc.status_code}): {exc}")
    return render_message(request, str(exc), exc.title, status_code=exc.status_code)


def check_content_length(request: Request) -> int:
    """Check that Content-Length is present and within MAX_FORM_SIZE."""
    content_length = request.headers.get("content-length")
    if content_length is None:
        raise FormFileError("Missing Content-Length header", "upload failed, select file to upload")

    try:
        content_length_value = int(content_length)
    except ValueError:
        raise FormFileError("Invalid Content-Length header")

    if content_length_value > config.MAX_FORM_SIZE:
        raise PayloadTooLargeError(
            f"request body too large ({content_length_value} bytes, maximum is {config.MAX_FORM_SIZE})"
        )
    return content_length_value


async def parse_form(request: Request) -> FormData:
    try:
        return await request.form()
    except MultiPartException as e:
        raise FormFileError(e.message)
    except StarletteHTTPException as e:
        # Request.form() reports multipart errors as a 400 when running inside an app
        raise FormFileError(str(e.detail))
    except Exception as e:
        raise FormFileError(f"cannot parse form: {e}")


@router.post("/upload")
async def upload_file(request: Request):
    """Store the multipart file field `myFile` under a generated name."""
    upload_manager = request.app.state.upload_manager
    logger.info(network_line(request))

    content_length = check_content_length(request)
    logger.debug(f"Content-Length: {content_length} bytes")

    form = await parse_form(request)
    try:
        upload = form.get(config.UPLOAD_FIELD)
        if not isinstance(upload, UploadFile):
            raise FormFileError(
                f"no file in form field {config.UPLOAD_FIELD!r}",
                "upload failed, select file to upload",
            )

        logger.info(f"Uploaded File: {upload.filename}")
        logger.info(f"File Size: {upload.size}")
        logger.info(f"MIME Header: {dict(upload.headers)}")

        stored = await upload_manager.save(upload)
    finally:
        await form.close()

    addon = (
        f"Uploaded File: {stored.original_filename}\n"
        f"File Size: {stored.size}\n"
        f"MIME Header:\n{format_headers(stored.headers)}\n"
        f"Stored As: {stored.stored_name}\n"
    )
    return render_message(
        request,
        f"Successfully Uploaded File {stored.original_filename}",
        "Uploaded",
        addon=addon,
        filename=stored.original_filename,
        size=stored.size,
        headers=stored.headers,
        stored_as=stored.stored_name,
    )


@router.api_route("/files", methods=["GET", "POST"])
async def list_upload_files(request: Request):
    """Placeholder for listing uploaded files."""
    logger.info(network_line(request))
    return render_message(
        request,
        "File listing for Upload not implemented",
        "File listing failed",
        status_code=status.HTTP_501_NOT_IMPLEMENTED,
    )
