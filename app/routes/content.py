"""Content routes - browsing, files, folders and uploads."""
from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import FileResponse
from pydantic import BaseModel

from ..dependencies import get_db, get_folder_service, get_upload_service, require_user
from ..domain import InvalidInput

router = APIRouter()


class FolderCreate(BaseModel):
    name: str
    parent: str = ""


@router.get("/api/gallery")
async def list_gallery(request: Request, path: str = "", page: int = 1, db=Depends(get_db)):
    """List folders and content files at ``path``."""
    user = require_user(request)
    return await get_folder_service(db, request.app.state).list_contents(user["id"], path, page)


@router.get("/api/files/{path:path}")
async def get_file(request: Request, path: str, db=Depends(get_db)):
    """Serve a content file."""
    user = require_user(request)
    location = await get_folder_service(db, request.app.state).open_file(user["id"], path)
    return FileResponse(location)


@router.delete("/api/files/{path:path}")
async def delete_file(request: Request, path: str, db=Depends(get_db)):
    user = require_user(request)
    await get_folder_service(db, request.app.state).delete_file(user["id"], path)
    return {"status": "ok"}


@router.post("/api/folders")
async def create_folder(request: Request, data: FolderCreate, db=Depends(get_db)):
    """Create a folder below ``parent``."""
    user = require_user(request)
    folder = await get_folder_service(db, request.app.state).create_folder(
        user["id"], data.parent, data.name
    )
    return {"status": "ok", "folder": folder}


@router.post("/api/upload")
async def upload_file(
    request: Request,
    file: UploadFile = File(...),
    folder: str = Form(""),
    room: str | None = Form(None),
    db=Depends(get_db)
):
    """Store one uploaded file into ``folder``."""
    user = require_user(request)
    if not file.filename:
        raise InvalidInput("No filename")

    content = await file.read()
    result = await get_upload_service(db, request.app.state).store(
        user["id"], folder, file.filename, content, room
    )
    return {"status": "ok", **result}
