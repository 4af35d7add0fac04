"""Keeps a workflow session in step with the remote store and with files.

Remote failures never escape as exceptions: they are logged and reported as
``False``/``None``, and the session is left exactly as it was, dirty flag
included, so the caller can retry.
"""

import json
import logging
import re
from pathlib import Path

from pydantic import ValidationError

from canvas.adapters.base import RemoteStore
from canvas.errors import CanvasError, WorkflowImportError
from canvas.models.graph import (
    Edge,
    ImageNode,
    Node,
    dump_edges,
    dump_nodes,
    parse_edges,
    parse_nodes,
)
from canvas.models.records import WorkflowCreate, WorkflowUpdate
from canvas.models.workflow_file import build_workflow_file, parse_workflow_file
from canvas.store.session import DEFAULT_WORKFLOW_NAME, WorkflowSession

logger = logging.getLogger(__name__)

# anything that could leave the export directory or upset a file system
_UNSAFE_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|\x00-\x1f]')


def strip_base64_from_nodes(nodes: tuple[Node, ...]) -> tuple[Node, ...]:
    """Blank the inline image bytes of every image node.

    Inline bytes only exist so a freshly added image can be executed right
    away; the stored workflow keeps the uploaded ``imageUrl`` instead.
    """
    cleaned = []
    for node in nodes:
        if isinstance(node, ImageNode):
            images = tuple(img.model_copy(update={"image_base64": ""}) for img in node.data.images)
            node = node.model_copy(
                update={"data": node.data.model_copy(update={"images": images})}
            )
        cleaned.append(node)
    return tuple(cleaned)


def export_file_stem(name: str) -> str:
    """File name (without extension) for exporting a workflow called ``name``."""
    stem = _UNSAFE_FILENAME_CHARS.sub("_", name).strip().strip(".")
    return stem or "workflow"


class PersistenceController:
    """Load, save, create, import and export the workflow held by a session."""

    def __init__(self, session: WorkflowSession, remote: RemoteStore) -> None:
        self.session = session
        self.remote = remote

    # --- local state ---

    def set_workflow(
        self,
        workflow_id: str | None,
        name: str,
        nodes: tuple[Node, ...] | list[Node],
        edges: tuple[Edge, ...] | list[Edge],
    ) -> None:
        """Adopt a workflow as the clean, current state with fresh history."""
        s = self.session
        s.workflow_id = workflow_id
        s.workflow_name = name
        s.nodes = tuple(nodes)
        s.edges = tuple(edges)
        s.history.clear()
        s.is_dirty = False

    def set_workflow_name(self, name: str) -> None:
        self.session.workflow_name = name
        self.session.is_dirty = True

    def clear_workflow(self) -> None:
        self.set_workflow(None, DEFAULT_WORKFLOW_NAME, (), ())

    def mark_clean(self) -> None:
        self.session.is_dirty = False

    # --- remote ---

    async def load_workflow(self, workflow_id: str) -> bool:
        """Replace the session with a stored workflow.

        On failure the previously open workflow stays in place.
        """
        self.session.is_loading = True
        try:
            record = await self.remote.get_workflow(workflow_id)
            nodes = parse_nodes(record.nodes)
            edges = parse_edges(record.edges)
        except (CanvasError, ValidationError) as e:
            logger.error(f"Error loading workflow {workflow_id}: {e}")
            return False
        finally:
            self.session.is_loading = False

        self.set_workflow(record.id, record.name, nodes, edges)
        logger.info(f"Workflow loaded: {record.name} ({record.id})")
        return True

    async def save_workflow(self) -> bool:
        """Push the current name and graph to the remote store.

        Does nothing (and succeeds) for a workflow that has never been
        created remotely or has no unsaved changes.
        """
        s = self.session
        if s.workflow_id is None or not s.is_dirty:
            return True

        workflow_id, name, nodes, edges = s.workflow_id, s.workflow_name, s.nodes, s.edges

        s.is_saving = True
        try:
            update = WorkflowUpdate(
                name=name,
                nodes=dump_nodes(strip_base64_from_nodes(nodes)),
                edges=dump_edges(edges),
            )
            await self.remote.update_workflow(workflow_id, update)
        except (CanvasError, ValidationError) as e:
            logger.error(f"Error saving workflow {workflow_id}: {e}")
            return False
        finally:
            s.is_saving = False

        # edits made while the request was in flight are still unsaved
        unchanged = (
            s.workflow_id == workflow_id
            and s.workflow_name == name
            and s.nodes is nodes
            and s.edges is edges
        )
        if unchanged:
            s.is_dirty = False
        return True

    async def create_and_save_workflow(
        self,
        name: str,
        nodes: tuple[Node, ...] | list[Node],
        edges: tuple[Edge, ...] | list[Edge],
        folder_id: str | None = None,
    ) -> str | None:
        """Create a remote workflow from the given graph and make it current.

        Returns the new id, or None if either remote step failed, in which
        case the session is not touched.
        """
        nodes, edges = tuple(nodes), tuple(edges)
        self.session.is_saving = True
        try:
            record = await self.remote.create_workflow(
                WorkflowCreate(name=name, folder_id=folder_id)
            )
            await self.remote.update_workflow(
                record.id,
                WorkflowUpdate(
                    nodes=dump_nodes(strip_base64_from_nodes(nodes)),
                    edges=dump_edges(edges),
                ),
            )
        except (CanvasError, ValidationError) as e:
            logger.error(f"Error creating workflow {name!r}: {e}")
            return None
        finally:
            self.session.is_saving = False

        self.set_workflow(record.id, name, nodes, edges)
        logger.info(f"Workflow created: {name} ({record.id})")
        return record.id

    # --- files ---

    def dump_workflow(self) -> str:
        """Serialize the full workflow, inline images included."""
        data = build_workflow_file(self.session.workflow_name, self.session.snapshot)
        return json.dumps(data, indent=2)

    def export_workflow(self, directory: str | Path) -> Path:
        """Write the workflow to ``<directory>/<name>.json`` and return the path."""
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / f"{export_file_stem(self.session.workflow_name)}.json"
        path.write_text(self.dump_workflow(), encoding="utf-8")
        logger.info(f"Workflow exported to {path}")
        return path

    def import_workflow(self, path: str | Path) -> bool:
        try:
            text = Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Error importing workflow: could not read {path}: {e}")
            return False
        return self.import_workflow_text(text)

    def import_workflow_text(self, text: str) -> bool:
        """Replace the graph with an exported workflow.

        The current graph goes onto the undo stack first. The result is
        marked dirty and is not saved remotely.
        """
        try:
            name, graph = parse_workflow_file(json.loads(text))
        except json.JSONDecodeError as e:
            logger.error(f"Error importing workflow: invalid JSON: {e}")
            return False
        except WorkflowImportError as e:
            logger.error(f"Error importing workflow: {e}")
            return False

        s = self.session
        s.push_to_history()
        s.workflow_name = name
        s.restore(graph)
        s.is_dirty = True
        return True
