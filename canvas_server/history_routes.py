"""API routes for workflow run history."""

from fastapi import APIRouter, Depends, HTTPException, Query

from canvas.models.records import NodeRunCreate, NodeRunUpdate, RunCreate, RunUpdate
from canvas_server.auth import get_current_user
from canvas_server.history_db import (
    clear_runs as db_clear_runs,
    create_node_run as db_create_node_run,
    create_run as db_create_run,
    delete_run as db_delete_run,
    get_run as db_get_run,
    list_runs as db_list_runs,
    update_node_run as db_update_node_run,
    update_run as db_update_run,
)
from canvas_server.workflow_db import get_workflow as db_get_workflow

router = APIRouter(prefix="/history")


def _check_workflow(user_id: str, workflow_id: str) -> None:
    if not db_get_workflow(user_id, workflow_id):
        raise HTTPException(status_code=404, detail="Workflow not found")


@router.post("/runs")
def create_run(request: RunCreate, user_id: str = Depends(get_current_user)) -> dict:
    """open a run in the running state."""
    _check_workflow(user_id, request.workflow_id)
    run = db_create_run(user_id, request)
    return {"run": run.to_json()}


@router.patch("/runs/{run_id}")
def update_run(run_id: str, request: RunUpdate, user_id: str = Depends(get_current_user)) -> dict:
    """record a run's final status."""
    run = db_update_run(user_id, run_id, request)
    if not run:
        raise HTTPException(status_code=404, detail="Run not found")
    return {"run": run.to_json()}


@router.get("/runs/{run_id}")
def get_run(run_id: str, user_id: str = Depends(get_current_user)) -> dict:
    run = db_get_run(user_id, run_id)
    if not run:
        raise HTTPException(status_code=404, detail="Run not found")
    return {"run": run.to_json()}


@router.delete("/runs/{run_id}")
def delete_run(run_id: str, user_id: str = Depends(get_current_user)) -> dict:
    if not db_delete_run(user_id, run_id):
        raise HTTPException(status_code=404, detail="Run not found")
    return {"success": True}


@router.post("/node-runs")
def create_node_run(request: NodeRunCreate, user_id: str = Depends(get_current_user)) -> dict:
    if not db_get_run(user_id, request.workflow_run_id):
        raise HTTPException(status_code=404, detail="Run not found")
    node_run = db_create_node_run(request)
    return {"nodeRun": node_run.to_json()}


@router.patch("/node-runs/{node_run_id}")
def update_node_run(
    node_run_id: str,
    request: NodeRunUpdate,
    user_id: str = Depends(get_current_user),
) -> dict:
    node_run = db_update_node_run(user_id, node_run_id, request)
    if not node_run:
        raise HTTPException(status_code=404, detail="Node run not found")
    return {"nodeRun": node_run.to_json()}


@router.get("/workflows/{workflow_id}/runs")
def list_workflow_runs(
    workflow_id: str,
    limit: int = Query(default=50, ge=1),
    user_id: str = Depends(get_current_user),
) -> dict:
    """list a workflow's runs, newest first, with their node runs."""
    _check_workflow(user_id, workflow_id)
    runs = db_list_runs(user_id, workflow_id, limit=limit)
    return {"runs": [r.to_json() for r in runs]}


@router.delete("/workflows/{workflow_id}/runs")
def clear_workflow_runs(workflow_id: str, user_id: str = Depends(get_current_user)) -> dict:
    _check_workflow(user_id, workflow_id)
    db_clear_runs(user_id, workflow_id)
    return {"success": True}
