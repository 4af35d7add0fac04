"""API routes for folders."""

from fastapi import APIRouter, Depends, HTTPException, Query

from canvas.models.records import FolderCreate, FolderUpdate
from canvas_server.auth import get_current_user
from canvas_server.folder_db import (
    create_folder as db_create_folder,
    delete_folder as db_delete_folder,
    get_folder as db_get_folder,
    list_folders as db_list_folders,
    update_folder as db_update_folder,
)

router = APIRouter()


def _check_parent(user_id: str, folder_id: str | None, parent_id: str | None) -> None:
    """reject a missing parent, or one that would put a folder inside itself."""
    while parent_id is not None:
        if parent_id == folder_id:
            raise HTTPException(status_code=400, detail="A folder cannot be moved into itself")
        parent = db_get_folder(user_id, parent_id)
        if not parent:
            raise HTTPException(status_code=404, detail="Parent folder not found")
        parent_id = parent.parent_id


@router.get("/folders")
def list_folders(
    parent_id: str | None = Query(default=None, alias="parentId"),
    user_id: str = Depends(get_current_user),
) -> dict:
    """list folders under ``parentId``, or top-level folders without one."""
    folders = db_list_folders(user_id, parent_id)
    return {"folders": [f.to_json() for f in folders]}


@router.get("/folders/{folder_id}")
def get_folder(folder_id: str, user_id: str = Depends(get_current_user)) -> dict:
    folder = db_get_folder(user_id, folder_id)
    if not folder:
        raise HTTPException(status_code=404, detail="Folder not found")
    return {"folder": folder.to_json()}


@router.post("/folders")
def create_folder(request: FolderCreate, user_id: str = Depends(get_current_user)) -> dict:
    if not request.name.strip():
        raise HTTPException(status_code=400, detail="Folder name is required")
    _check_parent(user_id, None, request.parent_id)
    folder = db_create_folder(user_id, request)
    return {"folder": folder.to_json()}


@router.patch("/folders/{folder_id}")
def update_folder(
    folder_id: str,
    request: FolderUpdate,
    user_id: str = Depends(get_current_user),
) -> dict:
    if not db_get_folder(user_id, folder_id):
        raise HTTPException(status_code=404, detail="Folder not found")
    changes = request.changes()
    _check_parent(user_id, folder_id, changes.get("parent_id"))
    folder = db_update_folder(user_id, folder_id, changes)
    return {"folder": folder.to_json()}


@router.delete("/folders/{folder_id}")
def delete_folder(folder_id: str, user_id: str = Depends(get_current_user)) -> dict:
    """delete a folder; its workflows and subfolders move to the top level."""
    if not db_delete_folder(user_id, folder_id):
        raise HTTPException(status_code=404, detail="Folder not found")
    return {"message": "Folder deleted successfully"}
