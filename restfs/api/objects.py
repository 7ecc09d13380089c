"""API Endpoints to read, write and delete objects."""

import mimetypes
import os
from email.utils import formatdate, parsedate_to_datetime
from typing import Annotated, BinaryIO

from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.responses import PlainTextResponse, Response, StreamingResponse
from starlette.concurrency import run_in_threadpool

from restfs.listing import format_listing
from restfs.storage import Storage

app_objects = APIRouter(tags=["objects"])

CHUNK_SIZE = 64 * 1024


def get_storage(request: Request) -> Storage:
    return request.app.state.storage


def iter_file(f: BinaryIO):
    with f:
        while chunk := f.read(CHUNK_SIZE):
            yield chunk


def not_modified_since(mtime: float, if_modified_since: str | None) -> bool:
    """Has the object not changed since the If-Modified-Since date? Timestamps are compared in whole seconds."""
    if not if_modified_since:
        return False
    try:
        since = parsedate_to_datetime(if_modified_since)
    except (TypeError, ValueError):
        return False
    if since.tzinfo is None:
        return False
    return int(mtime) <= since.timestamp()


@app_objects.get("/{path:path}")
def read_object(
    path: str,
    if_modified_since: Annotated[str | None, Header()] = None,
    storage: Storage = Depends(get_storage),
):
    """
    Get the contents of an object.
    If the path is a directory, returns the visible entries as a newline-separated list,
    with a trailing / for subdirectories.
    Answers 304 if the object was not modified after the If-Modified-Since date.
    """
    if storage.is_dir(path):
        return PlainTextResponse(format_listing(storage.listdir(path)))

    f = storage.open(path)
    stat = os.fstat(f.fileno())
    last_modified = formatdate(stat.st_mtime, usegmt=True)
    if not_modified_since(stat.st_mtime, if_modified_since):
        f.close()
        return Response(status_code=304, headers={"last-modified": last_modified})
    media_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
    headers = {"content-length": str(stat.st_size), "last-modified": last_modified}
    return StreamingResponse(iter_file(f), media_type=media_type, headers=headers)


@app_objects.put("/{path:path}")
async def write_object(path: str, request: Request, storage: Storage = Depends(get_storage)):
    """
    Create or replace an object with the request body. Parent directories are created as needed.
    An object that was deleted becomes visible again when it is written.
    """
    f = await run_in_threadpool(storage.create, path)
    try:
        async for chunk in request.stream():
            if chunk:
                await run_in_threadpool(f.write, chunk)
    finally:
        await run_in_threadpool(f.close)
    return Response()


@app_objects.delete("/{path:path}")
def delete_object(
    path: str,
    recursive: Annotated[bool, Query(description="Delete all objects in this directory and its subdirectories")] = False,
    storage: Storage = Depends(get_storage),
):
    """
    Delete an object. Deleting an object that does not exist succeeds.
    Objects are hidden immediately, and removed from disk by the next garbage collection run.
    """
    storage.delete(path, recursive=recursive)
    return Response()
