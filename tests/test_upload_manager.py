import errno
import io
import os

import pytest
from starlette.datastructures import Headers, UploadFile

from upload_server import config
from upload_server.app.services import upload_manager
from upload_server.app.services.upload_manager import (
    DiskWriteError,
    FileReadError,
    UploadManager,
)


def make_upload(content: bytes, filename: str = "a.txt") -> UploadFile:
    return UploadFile(
        file=io.BytesIO(content),
        filename=filename,
        size=len(content),
        headers=Headers({"content-type": "text/plain"}),
    )


@pytest.mark.asyncio
async def test_initialize_creates_upload_dir(tmp_path):
    upload_dir = tmp_path / "nested" / "upload"
    manager = UploadManager(upload_dir)

    await manager.initialize()

    assert upload_dir.is_dir()


@pytest.mark.asyncio
async def test_save_writes_content(tmp_path):
    manager = UploadManager(tmp_path)

    stored = await manager.save(make_upload(b"abc"))

    assert stored.original_filename == "a.txt"
    assert stored.size == 3
    assert stored.headers == {"content-type": "text/plain"}
    assert stored.stored_path.parent == tmp_path
    assert stored.stored_name.startswith(config.UPLOAD_PREFIX)
    assert stored.stored_name.endswith(config.UPLOAD_SUFFIX)
    assert stored.stored_path.read_bytes() == b"abc"


@pytest.mark.asyncio
async def test_save_empty_file(tmp_path):
    manager = UploadManager(tmp_path)

    stored = await manager.save(make_upload(b""))

    assert stored.size == 0
    assert stored.stored_path.read_bytes() == b""


@pytest.mark.asyncio
async def test_create_upload_file_names_are_unique(tmp_path):
    manager = UploadManager(tmp_path)
    paths = set()

    for _ in range(50):
        fd, path = await manager.create_upload_file()
        os.close(fd)
        paths.add(path)

    assert len(paths) == 50


@pytest.mark.asyncio
async def test_save_missing_directory(tmp_path):
    manager = UploadManager(tmp_path / "missing")

    with pytest.raises(DiskWriteError) as exc_info:
        await manager.save(make_upload(b"abc"))

    assert exc_info.value.status_code == 500
    assert str(exc_info.value).startswith("write to disk failed")


@pytest.mark.asyncio
async def test_save_read_failure_removes_empty_file(tmp_path):
    manager = UploadManager(tmp_path)
    upload = make_upload(b"abc")

    async def failing_read(size=-1):
        raise OSError("stream broken")

    upload.read = failing_read

    with pytest.raises(FileReadError) as exc_info:
        await manager.save(upload)

    assert exc_info.value.status_code == 500
    assert str(exc_info.value) == "read file failed: stream broken"
    assert list(tmp_path.iterdir()) == []


class FailingFile:
    """Stands in for an aiofiles file whose writes fail at a given step."""

    def __init__(self, fd, fail_on):
        self.fd = fd
        self.fail_on = fail_on

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        os.close(self.fd)
        if self.fail_on == "close":
            raise OSError(errno.EFBIG, "File too large")

    async def write(self, data):
        if self.fail_on == "write":
            raise OSError(errno.ENOSPC, "No space left on device")

    async def flush(self):
        if self.fail_on == "flush":
            raise OSError(errno.EIO, "Input/output error")


@pytest.mark.asyncio
@pytest.mark.parametrize("fail_on, reason", [
    ("write", "No space left on device"),
    ("flush", "Input/output error"),
    ("close", "File too large"),
])
async def test_save_write_failure(tmp_path, monkeypatch, fail_on, reason):
    monkeypatch.setattr(upload_manager.aiofiles, "open", lambda fd, mode: FailingFile(fd, fail_on))
    manager = UploadManager(tmp_path)

    with pytest.raises(DiskWriteError) as exc_info:
        await manager.save(make_upload(b"abc"))

    assert exc_info.value.status_code == 500
    assert str(exc_info.value).startswith("write to disk failed")
    assert reason in str(exc_info.value)
