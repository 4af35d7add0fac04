"""Core data models for the canvas engine."""

from canvas.models.graph import (
    IMAGES,
    SINGLE_VALUE_HANDLES,
    SYSTEM_PROMPT,
    USER_MESSAGE,
    CropImageNode,
    CropImageNodeData,
    Edge,
    ExtractFrameNode,
    ExtractFrameNodeData,
    GraphSnapshot,
    ImageItem,
    ImageNode,
    ImageNodeData,
    LLMNode,
    LLMNodeData,
    Node,
    NodeKind,
    Position,
    TextNode,
    TextNodeData,
    UnknownNode,
    UnknownNodeData,
    dump_edges,
    dump_nodes,
    parse_edges,
    parse_nodes,
)
from canvas.models.workflow_run import (
    LocalId,
    NodeRun,
    NodeRunStatus,
    RemoteId,
    RunId,
    RunScope,
    RunStatus,
    WorkflowRun,
)

__all__ = [
    # Graph
    "IMAGES",
    "SINGLE_VALUE_HANDLES",
    "SYSTEM_PROMPT",
    "USER_MESSAGE",
    "CropImageNode",
    "CropImageNodeData",
    "Edge",
    "ExtractFrameNode",
    "ExtractFrameNodeData",
    "GraphSnapshot",
    "ImageItem",
    "ImageNode",
    "ImageNodeData",
    "LLMNode",
    "LLMNodeData",
    "Node",
    "NodeKind",
    "Position",
    "TextNode",
    "TextNodeData",
    "UnknownNode",
    "UnknownNodeData",
    "dump_edges",
    "dump_nodes",
    "parse_edges",
    "parse_nodes",
    # Run history
    "LocalId",
    "NodeRun",
    "NodeRunStatus",
    "RemoteId",
    "RunId",
    "RunScope",
    "RunStatus",
    "WorkflowRun",
]
