"""Execute the nodes of a workflow and record the run.

Example:
    session = WorkflowSession()
    remote = HttpRemoteStore()
    runner = WorkflowRunner(session, RunHistoryTracker(remote), remote)

    await PersistenceController(session, remote).load_workflow(workflow_id)
    run = await runner.run(RunScope.full)
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from canvas.adapters.base import RemoteStore
from canvas.graph.ordering import topological_order
from canvas.graph.resolver import ResolvedInputs
from canvas.models.graph import LLMNode, Node, NodeKind, UnknownNode, node_label
from canvas.models.records import LLMRunRequest
from canvas.models.workflow_run import NodeRunStatus, RunScope, RunStatus, WorkflowRun
from canvas.store.run_history import RunHistoryTracker
from canvas.store.session import WorkflowSession

logger = logging.getLogger(__name__)

# Takes the node and its resolved inputs, returns the node's new output value.
NodeHandler = Callable[[Node, ResolvedInputs], Awaitable[str]]

# payload field that receives a node's output
OUTPUT_FIELDS = {
    NodeKind.llm: "output",
    NodeKind.crop_image: "output_image_url",
    NodeKind.extract_frame: "output_frame_url",
}


class WorkflowRunner:
    """Runs executable nodes in dependency order.

    Upstream results are written into the session before downstream inputs
    are resolved, so a chain of LLM nodes linked through text nodes sees each
    step's output. Node failures are recorded on the node run and do not stop
    the remaining nodes.
    """

    def __init__(
        self,
        session: WorkflowSession,
        tracker: RunHistoryTracker,
        remote: RemoteStore,
    ) -> None:
        self.session = session
        self.tracker = tracker
        self.remote = remote
        self._handlers: dict[str, NodeHandler] = {NodeKind.llm.value: self._run_llm}

    def register_handler(self, kind: NodeKind | str, handler: NodeHandler) -> None:
        """Make nodes of ``kind`` executable. Replaces any existing handler."""
        kind = NodeKind(kind)
        if kind not in OUTPUT_FIELDS:
            raise ValueError(f"{kind.value} nodes have no output to write")
        self._handlers[kind.value] = handler

    def is_executable(self, node: Node) -> bool:
        return not isinstance(node, UnknownNode) and node.type in self._handlers

    async def run(self, scope: RunScope = RunScope.full, node_ids: list[str] | None = None) -> WorkflowRun:
        """Run the nodes covered by ``scope`` and return the finished run.

        Raises:
            ValueError: The workflow was never saved, the scope does not match
                ``node_ids``, or no executable node is selected.
            GraphCycleError: The selected nodes depend on each other in a loop.
        """
        s = self.session
        if s.workflow_id is None:
            raise ValueError("Save the workflow before running it")

        selected = self._select(scope, node_ids)
        order = [
            node_id
            for node_id in topological_order(s.snapshot, selected)
            if self.is_executable(s.get_node(node_id))
        ]
        if not order:
            raise ValueError("No executable nodes selected")

        run_id = await self.tracker.start_run(s.workflow_id, scope, order)
        logger.info(f"Run {run_id} started: {len(order)} node(s), scope={scope.value}")

        succeeded = 0
        for node_id in order:
            if await self._run_node(run_id, node_id):
                succeeded += 1

        if succeeded == len(order):
            status = RunStatus.completed
        elif succeeded == 0:
            status = RunStatus.failed
        else:
            status = RunStatus.partial
        await self.tracker.complete_run(run_id, status)
        logger.info(f"Run {run_id} finished: {status.value} ({succeeded}/{len(order)})")

        return self.tracker.get_run(run_id)

    def _select(self, scope: RunScope, node_ids: list[str] | None) -> list[str]:
        if scope == RunScope.full:
            return [node.id for node in self.session.nodes]

        if not node_ids:
            raise ValueError(f"A {scope.value} run needs node ids")
        if scope == RunScope.single and len(node_ids) != 1:
            raise ValueError("A single run takes exactly one node id")
        missing = [node_id for node_id in node_ids if self.session.get_node(node_id) is None]
        if missing:
            raise ValueError(f"Unknown node(s): {', '.join(missing)}")
        return list(node_ids)

    async def _run_node(self, run_id, node_id: str) -> bool:
        s = self.session
        node = s.get_node(node_id)
        if node is None:
            logger.warning(f"Node {node_id} was removed before it could run")
            return False
        inputs = s.get_connected_inputs(node_id)
        node_run_id = await self.tracker.add_node_to_run(
            run_id,
            node_id=node.id,
            node_name=node_label(node),
            node_type=node.type,
            input_data=inputs.to_input_data(),
        )

        try:
            output = await self._handlers[node.type](node, inputs)
        except Exception as e:
            logger.error(f"Node {node_id} failed: {e}")
            await self.tracker.complete_node_run(node_run_id, NodeRunStatus.failed, error=str(e))
            return False

        # the node may have been removed while the handler was running
        if s.get_node(node_id) is not None:
            s.set_node_output(node_id, **{OUTPUT_FIELDS[NodeKind(node.type)]: output})
            if isinstance(node, LLMNode):
                s.propagate_output(node_id, output)

        await self.tracker.complete_node_run(
            node_run_id, NodeRunStatus.completed, output_data={"output": output}
        )
        return True

    async def _run_llm(self, node: LLMNode, inputs: ResolvedInputs) -> str:
        if not inputs.user_message:
            raise ValueError("No user message connected")
        return await self.remote.run_llm(
            LLMRunRequest(
                model=node.data.model,
                system_prompt=inputs.system_prompt,
                user_message=inputs.user_message,
                images=inputs.images,
                image_urls=inputs.image_urls,
            )
        )
