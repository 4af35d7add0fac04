"""Run history with optimistic local records.

Every operation updates local state first, under a ``LocalId``, and only then
calls the remote store. When the store answers with its own id, that id
replaces the local one everywhere in a single state assignment. When the
store fails, the local record stays as it is and the failure is logged: the
session keeps showing the run even if the server never heard of it.

Records still carrying a ``LocalId`` have no server row, so updates to them
stay local.
"""

import logging
from datetime import datetime
from typing import Any, Callable

from canvas.adapters.base import RemoteStore
from canvas.config import HISTORY_PAGE_SIZE
from canvas.errors import CanvasError
from canvas.models.records import NodeRunCreate, NodeRunUpdate, RunCreate, RunUpdate
from canvas.models.workflow_run import (
    LocalId,
    NodeRun,
    NodeRunStatus,
    RemoteId,
    RunScope,
    RunStatus,
    WorkflowRun,
)
from canvas.utils.identifiers import duration_ms, generate_temp_id, utc_now

logger = logging.getLogger(__name__)

Id = LocalId | RemoteId


class RunHistoryTracker:
    """Owns ``workflow_runs`` and ``current_run`` and every change to them."""

    def __init__(
        self,
        remote: RemoteStore,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.remote = remote
        self._clock = clock
        self.workflow_runs: tuple[WorkflowRun, ...] = ()
        self.current_run: WorkflowRun | None = None
        self.is_loading_history = False

    def get_run(self, run_id: Id) -> WorkflowRun | None:
        for run in self.workflow_runs:
            if run.id == run_id:
                return run
        return None

    def _commit(self, current_run: WorkflowRun | None, workflow_runs: tuple[WorkflowRun, ...]) -> None:
        self.current_run = current_run
        self.workflow_runs = workflow_runs

    def _map_runs(self, fn: Callable[[WorkflowRun], WorkflowRun]) -> None:
        """Apply ``fn`` to the current run and every listed run in one step."""
        current = fn(self.current_run) if self.current_run is not None else None
        self._commit(current, tuple(fn(r) for r in self.workflow_runs))

    # --- loading ---

    async def load_workflow_history(self, workflow_id: str, limit: int = HISTORY_PAGE_SIZE) -> bool:
        self.is_loading_history = True
        try:
            records = await self.remote.get_runs_by_workflow(workflow_id, limit=limit)
        except CanvasError as e:
            logger.error(f"Failed to load workflow history: {e}")
            return False
        finally:
            self.is_loading_history = False

        self.workflow_runs = tuple(WorkflowRun.from_record(r) for r in records)
        return True

    # --- runs ---

    async def start_run(self, workflow_id: str, scope: RunScope, node_ids: list[str]) -> Id:
        """Record a new running run and return its id (remote if the server answered)."""
        temp_id = LocalId(value=generate_temp_id())
        temp_run = WorkflowRun(
            id=temp_id,
            workflow_id=workflow_id,
            run_scope=scope,
            status=RunStatus.running,
            started_at=self._clock(),
            node_count=len(node_ids),
        )
        self._commit(temp_run, (temp_run, *self.workflow_runs))

        try:
            record = await self.remote.create_run(
                RunCreate(workflow_id=workflow_id, run_scope=scope, node_count=len(node_ids))
            )
        except CanvasError as e:
            # keep the optimistic run for offline use
            logger.error(f"Failed to create run: {e}")
            return temp_id

        real_id = RemoteId(value=record.id)

        def _rekey(run: WorkflowRun) -> WorkflowRun:
            return run.model_copy(update={"id": real_id}) if run.id == temp_id else run

        self._map_runs(_rekey)
        return real_id

    async def complete_run(self, run_id: Id, status: RunStatus) -> None:
        """Finish a run. Finished runs stay finished; completing one again is ignored."""
        if status == RunStatus.running:
            raise ValueError("A run can only be completed with a final status")
        run = self.get_run(run_id)
        if run is not None and run.status != RunStatus.running:
            logger.warning(f"Run {run_id.value} already finished as {run.status.value}")
            return

        now = self._clock()
        duration = duration_ms(run.started_at, now) if run else 0

        def _finish(r: WorkflowRun) -> WorkflowRun:
            if r.id != run_id:
                return r
            return r.model_copy(update={"status": status, "completed_at": now, "duration": duration})

        workflow_runs = tuple(_finish(r) for r in self.workflow_runs)
        current = self.current_run
        if current is not None and current.id == run_id:
            current = None
        self._commit(current, workflow_runs)

        if isinstance(run_id, LocalId):
            return
        try:
            await self.remote.update_run(
                run_id.value,
                RunUpdate(status=status, completed_at=now.isoformat(), duration=duration),
            )
        except CanvasError as e:
            logger.error(f"Failed to update run: {e}")

    # --- node runs ---

    async def add_node_to_run(
        self,
        run_id: Id,
        node_id: str,
        node_name: str,
        node_type: str,
        input_data: dict[str, Any] | None = None,
    ) -> Id:
        temp_id = LocalId(value=generate_temp_id())
        temp_node_run = NodeRun(
            id=temp_id,
            node_id=node_id,
            node_name=node_name,
            node_type=node_type,
            status=NodeRunStatus.running,
            started_at=self._clock(),
            input_data=input_data,
        )

        def _append(run: WorkflowRun) -> WorkflowRun:
            if run.id != run_id:
                return run
            return run.model_copy(update={"node_runs": (*run.node_runs, temp_node_run)})

        self._map_runs(_append)

        if isinstance(run_id, LocalId):
            return temp_id
        try:
            record = await self.remote.add_node_run(
                NodeRunCreate(
                    workflow_run_id=run_id.value,
                    node_id=node_id,
                    node_name=node_name,
                    node_type=node_type,
                    input_data=input_data,
                )
            )
        except CanvasError as e:
            logger.error(f"Failed to add node run: {e}")
            return temp_id

        real_id = RemoteId(value=record.id)
        self._map_runs(lambda run: _replace_node_run(run, temp_id, lambda nr: nr.model_copy(update={"id": real_id})))
        return real_id

    async def complete_node_run(
        self,
        node_run_id: Id,
        status: NodeRunStatus,
        output_data: dict[str, Any] | None = None,
        error: str | None = None,
    ) -> None:
        if status == NodeRunStatus.running:
            raise ValueError("A node run can only be completed with a final status")
        node_run = self._find_node_run(node_run_id)
        if node_run is not None and node_run.status != NodeRunStatus.running:
            logger.warning(f"Node run {node_run_id.value} already finished as {node_run.status.value}")
            return

        now = self._clock()
        duration = duration_ms(node_run.started_at, now) if node_run else 0
        changes = {
            "status": status,
            "completed_at": now,
            "duration": duration,
            "output_data": output_data,
            "error": error,
        }
        self._map_runs(lambda run: _replace_node_run(run, node_run_id, lambda nr: nr.model_copy(update=changes)))

        if isinstance(node_run_id, LocalId):
            return
        try:
            await self.remote.update_node_run(
                node_run_id.value,
                NodeRunUpdate(
                    status=status,
                    completed_at=now.isoformat(),
                    duration=duration,
                    output_data=output_data,
                    error=error,
                ),
            )
        except CanvasError as e:
            logger.error(f"Failed to update node run: {e}")

    def _find_node_run(self, node_run_id: Id) -> NodeRun | None:
        runs = self.workflow_runs
        if self.current_run is not None:
            runs = (self.current_run, *runs)
        for run in runs:
            node_run = run.get_node_run(node_run_id)
            if node_run is not None:
                return node_run
        return None

    # --- clearing ---

    async def clear_history(self, workflow_id: str) -> None:
        current = self.current_run
        if current is not None and current.workflow_id == workflow_id:
            current = None
        self._commit(current, tuple(r for r in self.workflow_runs if r.workflow_id != workflow_id))

        try:
            await self.remote.clear_workflow_history(workflow_id)
        except CanvasError as e:
            logger.error(f"Failed to clear history: {e}")


def _replace_node_run(
    run: WorkflowRun,
    node_run_id: Id,
    fn: Callable[[NodeRun], NodeRun],
) -> WorkflowRun:
    if run.get_node_run(node_run_id) is None:
        return run
    node_runs = tuple(fn(nr) if nr.id == node_run_id else nr for nr in run.node_runs)
    return run.model_copy(update={"node_runs": node_runs})
