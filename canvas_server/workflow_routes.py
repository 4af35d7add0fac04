"""API routes for workflows."""

from fastapi import APIRouter, Depends, HTTPException, Query

from canvas.models.records import WorkflowCreate, WorkflowUpdate
from canvas_server.auth import get_current_user
from canvas_server.folder_db import get_folder as db_get_folder
from canvas_server.workflow_db import (
    create_workflow as db_create_workflow,
    delete_workflow as db_delete_workflow,
    get_workflow as db_get_workflow,
    list_workflows as db_list_workflows,
    update_workflow as db_update_workflow,
)

router = APIRouter()


def _check_folder(user_id: str, folder_id: str | None) -> None:
    if folder_id is not None and not db_get_folder(user_id, folder_id):
        raise HTTPException(status_code=404, detail="Folder not found")


@router.get("/workflows")
def list_workflows(
    folder_id: str | None = Query(default=None, alias="folderId"),
    user_id: str = Depends(get_current_user),
) -> dict:
    """list workflows, optionally only those in one folder ("root" for unfiled)."""
    workflows = db_list_workflows(user_id, folder_id)
    return {"workflows": [w.to_json() for w in workflows]}


@router.get("/workflows/{workflow_id}")
def get_workflow(workflow_id: str, user_id: str = Depends(get_current_user)) -> dict:
    workflow = db_get_workflow(user_id, workflow_id)
    if not workflow:
        raise HTTPException(status_code=404, detail="Workflow not found")
    return {"workflow": workflow.to_json()}


@router.post("/workflows")
def create_workflow(request: WorkflowCreate, user_id: str = Depends(get_current_user)) -> dict:
    _check_folder(user_id, request.folder_id)
    workflow = db_create_workflow(user_id, request)
    return {"workflow": workflow.to_json()}


@router.patch("/workflows/{workflow_id}")
def update_workflow(
    workflow_id: str,
    request: WorkflowUpdate,
    user_id: str = Depends(get_current_user),
) -> dict:
    """apply only the fields present in the body."""
    changes = request.changes()
    # an explicit null folderId moves the workflow to the top level
    _check_folder(user_id, changes.get("folder_id"))
    workflow = db_update_workflow(user_id, workflow_id, changes)
    if not workflow:
        raise HTTPException(status_code=404, detail="Workflow not found")
    return {"workflow": workflow.to_json()}


@router.delete("/workflows/{workflow_id}")
def delete_workflow(workflow_id: str, user_id: str = Depends(get_current_user)) -> dict:
    if not db_delete_workflow(user_id, workflow_id):
        raise HTTPException(status_code=404, detail="Workflow not found")
    return {"message": "Workflow deleted successfully"}
