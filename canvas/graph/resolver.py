"""Gather the inputs a node needs from the nodes wired into it."""

from dataclasses import dataclass, field
from typing import Any, assert_never

from canvas.models.graph import (
    IMAGES,
    SYSTEM_PROMPT,
    USER_MESSAGE,
    CropImageNode,
    ExtractFrameNode,
    GraphSnapshot,
    ImageNode,
    LLMNode,
    Node,
    TextNode,
    UnknownNode,
)


@dataclass
class ResolvedInputs:
    """Inputs collected over a node's incoming edges."""

    system_prompt: str | None = None
    user_message: str | None = None
    images: list[str] = field(default_factory=list)  # base64 payloads
    image_urls: list[str] = field(default_factory=list)

    def to_input_data(self) -> dict[str, Any]:
        """Summary suitable for run history; inline image bytes are counted, not copied."""
        data: dict[str, Any] = {}
        if self.system_prompt is not None:
            data["systemPrompt"] = self.system_prompt
        if self.user_message is not None:
            data["userMessage"] = self.user_message
        if self.images:
            data["imageCount"] = len(self.images)
        if self.image_urls:
            data["imageUrls"] = list(self.image_urls)
        return data


def resolve_inputs(graph: GraphSnapshot, node_id: str) -> ResolvedInputs:
    """Walk the edges into ``node_id`` and collect typed inputs.

    Edges are visited in array order. When several edges feed the same
    single-valued port the last one wins. Edges whose source node is missing
    are skipped, as are sources whose kind does not fit the port.
    """
    result = ResolvedInputs()

    for edge in graph.get_edges_to(node_id):
        source = graph.get_node(edge.source)
        if source is None:
            continue

        if edge.target_handle == SYSTEM_PROMPT:
            if isinstance(source, TextNode):
                result.system_prompt = source.data.text
        elif edge.target_handle == USER_MESSAGE:
            if isinstance(source, TextNode):
                result.user_message = source.data.text
        elif edge.target_handle == IMAGES:
            _collect_images(source, result)

    return result


def _collect_images(source: Node, result: ResolvedInputs) -> None:
    if isinstance(source, ImageNode):
        for item in source.data.images:
            # base64 is ready to send as-is; the URL needs a fetch
            if item.image_base64:
                result.images.append(item.image_base64)
            elif item.image_url:
                result.image_urls.append(item.image_url)
    elif isinstance(source, CropImageNode):
        if source.data.output_image_url:
            result.image_urls.append(source.data.output_image_url)
    elif isinstance(source, ExtractFrameNode):
        if source.data.output_frame_url:
            result.image_urls.append(source.data.output_frame_url)
    elif isinstance(source, (TextNode, LLMNode, UnknownNode)):
        pass
    else:
        assert_never(source)
