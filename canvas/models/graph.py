"""Graph data models for the workflow canvas.

Nodes and edges are frozen pydantic models and the graph is held as tuples,
so every change produces new objects instead of touching existing ones. The
JSON shape uses camelCase keys (``imageBase64``, ``targetHandle``) because that
is what the canvas front end and the stored workflows use.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Discriminator, Field, Tag, TypeAdapter
from pydantic.alias_generators import to_camel


class NodeKind(str, Enum):
    """Known node kinds. The value is the ``type`` discriminator on the wire."""

    text = "text"
    image = "image"
    llm = "llm"
    crop_image = "cropImage"
    extract_frame = "extractFrame"


# connection ports on a target node
SYSTEM_PROMPT = "system_prompt"
USER_MESSAGE = "user_message"
IMAGES = "images"

# ports that hold a single value; a second edge into one replaces the first
SINGLE_VALUE_HANDLES = frozenset({SYSTEM_PROMPT, USER_MESSAGE})


class _CanvasModel(BaseModel):
    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "frozen": True,
    }


class _Payload(_CanvasModel):
    # payload shape is decided by the node kind alone; stray keys are dropped
    model_config = {"extra": "ignore"}

    label: str | None = None


class Position(_CanvasModel):
    x: float = 0.0
    y: float = 0.0


class ImageItem(_CanvasModel):
    """One image on an image node.

    ``image_base64`` is the inline copy used for execution, ``image_url`` the
    uploaded copy used for persistence.
    """

    id: str = ""
    image_base64: str = ""
    image_url: str | None = None
    name: str | None = None


class TextNodeData(_Payload):
    text: str = ""


class ImageNodeData(_Payload):
    images: tuple[ImageItem, ...] = ()


class LLMNodeData(_Payload):
    model: str = "gpt-4o-mini"
    output: str | None = None


class CropImageNodeData(_Payload):
    # crop rectangle in percent of the source image
    x: float = 0.0
    y: float = 0.0
    width: float = 100.0
    height: float = 100.0
    output_image_url: str | None = None


class ExtractFrameNodeData(_Payload):
    timestamp: str = "0"  # seconds, or a percentage such as "50%"
    output_frame_url: str | None = None


class UnknownNodeData(_Payload):
    # payload of a kind this engine does not model; every key is kept
    model_config = {"extra": "allow"}


class _NodeBase(_CanvasModel):
    # UI-only keys (selected, measured, ...) ride along untouched
    model_config = {"extra": "allow"}

    id: str
    position: Position = Field(default_factory=Position)


class TextNode(_NodeBase):
    type: Literal["text"] = "text"
    data: TextNodeData = Field(default_factory=TextNodeData)


class ImageNode(_NodeBase):
    type: Literal["image"] = "image"
    data: ImageNodeData = Field(default_factory=ImageNodeData)


class LLMNode(_NodeBase):
    type: Literal["llm"] = "llm"
    data: LLMNodeData = Field(default_factory=LLMNodeData)


class CropImageNode(_NodeBase):
    type: Literal["cropImage"] = "cropImage"
    data: CropImageNodeData = Field(default_factory=CropImageNodeData)


class ExtractFrameNode(_NodeBase):
    type: Literal["extractFrame"] = "extractFrame"
    data: ExtractFrameNodeData = Field(default_factory=ExtractFrameNodeData)


class UnknownNode(_NodeBase):
    """A node of a kind other than the modeled ones (video upload, notes, ...).

    It is carried through editing, saving and export unchanged, never feeds
    another node and is never executed.
    """

    type: str = ""
    data: UnknownNodeData = Field(default_factory=UnknownNodeData)


_KNOWN_KINDS = frozenset(kind.value for kind in NodeKind)
_UNKNOWN_TAG = "unknown"


def _node_tag(value: Any) -> str:
    if isinstance(value, dict):
        kind = value.get("type")
    else:
        kind = getattr(value, "type", None)
    if isinstance(value, UnknownNode) or kind not in _KNOWN_KINDS:
        return _UNKNOWN_TAG
    return kind


Node = Annotated[
    Union[
        Annotated[TextNode, Tag(NodeKind.text.value)],
        Annotated[ImageNode, Tag(NodeKind.image.value)],
        Annotated[LLMNode, Tag(NodeKind.llm.value)],
        Annotated[CropImageNode, Tag(NodeKind.crop_image.value)],
        Annotated[ExtractFrameNode, Tag(NodeKind.extract_frame.value)],
        Annotated[UnknownNode, Tag(_UNKNOWN_TAG)],
    ],
    Discriminator(_node_tag),
]


class Edge(_CanvasModel):
    """A directed connection from ``source``'s output into a port on ``target``."""

    model_config = {"extra": "allow"}

    id: str
    source: str
    target: str
    source_handle: str | None = None
    target_handle: str | None = None


_NODES = TypeAdapter(tuple[Node, ...])
_EDGES = TypeAdapter(tuple[Edge, ...])


def parse_nodes(raw: Any) -> tuple[Node, ...]:
    """Validate a JSON node array. Raises ``pydantic.ValidationError``."""
    return _NODES.validate_python(raw)


def parse_edges(raw: Any) -> tuple[Edge, ...]:
    """Validate a JSON edge array. Raises ``pydantic.ValidationError``."""
    return _EDGES.validate_python(raw)


def dump_nodes(nodes: tuple[Node, ...]) -> list[dict[str, Any]]:
    return [node.model_dump(by_alias=True, mode="json") for node in nodes]


def dump_edges(edges: tuple[Edge, ...]) -> list[dict[str, Any]]:
    return [edge.model_dump(by_alias=True, mode="json") for edge in edges]


def node_label(node: Node) -> str:
    """Display name of a node, falling back to its id."""
    return node.data.label or node.id


@dataclass(frozen=True)
class GraphSnapshot:
    """An immutable view of the full node and edge arrays."""

    nodes: tuple[Node, ...] = ()
    edges: tuple[Edge, ...] = ()

    def get_node(self, node_id: str) -> Node | None:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def get_edges_to(self, node_id: str) -> list[Edge]:
        return [e for e in self.edges if e.target == node_id]

    def get_edges_from(self, node_id: str) -> list[Edge]:
        return [e for e in self.edges if e.source == node_id]
