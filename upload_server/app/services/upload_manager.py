import asyncio
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Tuple

import aiofiles
import aiofiles.os
from starlette.datastructures import UploadFile

from upload_server import config
from upload_server.logger_config import setup_logger

logger = setup_logger()


class UploadError(Exception):
    """Base class for per-request upload failures."""
    status_code = 500
    reason = "upload failed"

    def __init__(self, message: str, title: str = "upload failed"):
        super().__init__(message)
        self.message = message
        self.title = title

    def __str__(self) -> str:
        return f"{self.reason}: {self.message}"


class FormFileError(UploadError):
    status_code = 400
    reason = "Error Retrieving the File"


class PayloadTooLargeError(FormFileError):
    status_code = 413


class DiskWriteError(UploadError):
    reason = "write to disk failed"


class FileReadError(UploadError):
    reason = "read file failed"


@dataclass
class StoredUpload:
    original_filename: str
    size: int
    stored_path: Path
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def stored_name(self) -> str:
        return self.stored_path.name


class UploadManager:
    def __init__(self, upload_dir: Path):
        self.upload_dir = upload_dir

    async def initialize(self):
        """Make sure the upload directory exists."""
        self.upload_dir.mkdir(exist_ok=True, parents=True)
        logger.info(f"Upload directory ready: {self.upload_dir}")

    async def create_upload_file(self) -> Tuple[int, Path]:
        """Atomically create a new, uniquely named file in the upload directory.

        Returns:
            Tuple[int, Path]: an open file descriptor and the path of the new file
        """
        try:
            fd, path = await asyncio.to_thread(
                tempfile.mkstemp,
                prefix=config.UPLOAD_PREFIX,
                suffix=config.UPLOAD_SUFFIX,
                dir=self.upload_dir,
            )
        except OSError as e:
            logger.error(f"Failed to create upload file in {self.upload_dir}: {e}")
            raise DiskWriteError(str(e))
        logger.debug(f"Created upload file: {path}")
        return fd, Path(path)

    async def save(self, upload: UploadFile) -> StoredUpload:
        """Persist an uploaded multipart file under a generated name.

        The target file is created before the upload is read, so a missing or
        unwritable upload directory is reported without draining the body.
        """
        fd, stored_path = await self.create_upload_file()

        try:
            async with aiofiles.open(fd, 'wb') as f:
                # read all of the contents of the uploaded file into memory
                try:
                    content = await upload.read()
                except Exception as e:
                    raise FileReadError(str(e)) from e

                await f.write(content)
                await f.flush()
        except FileReadError as e:
            logger.error(f"Failed to read uploaded file {upload.filename!r}: {e.message}")
            # Nothing was written, drop the empty file
            await aiofiles.os.unlink(stored_path)
            raise
        except OSError as e:
            # Buffered write errors can surface on flush or close
            logger.error(f"Failed to write {stored_path}: {e}")
            raise DiskWriteError(str(e)) from e

        size = upload.size if upload.size is not None else len(content)
        logger.info(f"Stored {upload.filename!r} ({size} bytes) as {stored_path.name}")

        return StoredUpload(
            original_filename=upload.filename or "",
            size=size,
            stored_path=stored_path,
            headers=dict(upload.headers),
        )
