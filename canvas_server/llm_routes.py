"""API route for LLM node inference.

Supports OpenAI and Anthropic (Claude) models, with images passed inline as
base64 or by URL.
"""

import logging
import os

import anthropic
import openai
from fastapi import APIRouter, Depends, HTTPException

from canvas.models.records import LLMRunRequest
from canvas_server.auth import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter()

# LLM Client instances (lazily initialized)
_openai_client = None
_anthropic_client = None

DEFAULT_MAX_TOKENS = 4096


def _get_openai_client():
    """Get or create OpenAI client."""
    global _openai_client
    if _openai_client is None:
        api_key = os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise HTTPException(
                status_code=500,
                detail="OPENAI_API_KEY environment variable not set"
            )
        _openai_client = openai.AsyncOpenAI(api_key=api_key)
    return _openai_client


def _get_anthropic_client():
    """Get or create Anthropic client."""
    global _anthropic_client
    if _anthropic_client is None:
        api_key = os.getenv("ANTHROPIC_API_KEY")
        if not api_key:
            raise HTTPException(
                status_code=500,
                detail="ANTHROPIC_API_KEY environment variable not set"
            )
        _anthropic_client = anthropic.AsyncAnthropic(api_key=api_key)
    return _anthropic_client


def detect_image_mime_type(image_base64: str) -> str:
    """Guess an image's MIME type from the first bytes of its base64 text."""
    if image_base64.startswith("/9j/"):
        return "image/jpeg"
    if image_base64.startswith("iVBORw"):
        return "image/png"
    if image_base64.startswith("R0lGOD"):
        return "image/gif"
    if image_base64.startswith("UklGR"):
        return "image/webp"
    return "image/jpeg"


def provider_for(model: str) -> str:
    return "anthropic" if model.lower().startswith("claude") else "openai"


def build_openai_messages(request: LLMRunRequest) -> list[dict]:
    content: list[dict] = [{"type": "text", "text": request.user_message}]
    for image in request.images:
        url = f"data:{detect_image_mime_type(image)};base64,{image}"
        content.append({"type": "image_url", "image_url": {"url": url}})
    for url in request.image_urls:
        content.append({"type": "image_url", "image_url": {"url": url}})

    messages: list[dict] = []
    if request.system_prompt:
        messages.append({"role": "system", "content": request.system_prompt})
    messages.append({"role": "user", "content": content})
    return messages


def build_anthropic_content(request: LLMRunRequest) -> list[dict]:
    # claude reads images best when they come before the text
    content: list[dict] = []
    for image in request.images:
        content.append({
            "type": "image",
            "source": {
                "type": "base64",
                "media_type": detect_image_mime_type(image),
                "data": image,
            },
        })
    for url in request.image_urls:
        content.append({"type": "image", "source": {"type": "url", "url": url}})
    content.append({"type": "text", "text": request.user_message})
    return content


async def _call_openai(request: LLMRunRequest) -> str:
    client = _get_openai_client()
    try:
        response = await client.chat.completions.create(
            model=request.model,
            messages=build_openai_messages(request),
        )
    except openai.RateLimitError as e:
        raise HTTPException(status_code=429, detail=f"OpenAI rate limit: {e}")
    except openai.APIError as e:
        raise HTTPException(status_code=502, detail=f"OpenAI API error: {e}")
    return response.choices[0].message.content or ""


async def _call_anthropic(request: LLMRunRequest) -> str:
    client = _get_anthropic_client()
    params = {
        "model": request.model,
        "max_tokens": DEFAULT_MAX_TOKENS,
        "messages": [{"role": "user", "content": build_anthropic_content(request)}],
    }
    if request.system_prompt:
        params["system"] = request.system_prompt
    try:
        response = await client.messages.create(**params)
    except anthropic.RateLimitError as e:
        raise HTTPException(status_code=429, detail=f"Anthropic rate limit: {e}")
    except anthropic.APIError as e:
        raise HTTPException(status_code=502, detail=f"Anthropic API error: {e}")
    return "".join(block.text for block in response.content if hasattr(block, "text"))


@router.post("/llm/run")
async def run_llm(request: LLMRunRequest, user_id: str = Depends(get_current_user)) -> dict:
    """Run one LLM node and return its text output."""
    if not request.user_message.strip():
        raise HTTPException(status_code=400, detail="User message is required")

    provider = provider_for(request.model)
    logger.info(
        f"LLM run for {user_id}: {request.model} ({provider}), "
        f"{len(request.images) + len(request.image_urls)} image(s)"
    )
    if provider == "anthropic":
        output = await _call_anthropic(request)
    else:
        output = await _call_openai(request)
    return {"output": output}
