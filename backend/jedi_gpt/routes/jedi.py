"""
Jedi API routes — single prompt in, single reply out.
"""
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from jedi_gpt.models.chat import CompletionRequest, CompletionResponse, ErrorResponse
from jedi_gpt.services.completion import CompletionClient, UpstreamError

log = logging.getLogger("routes")

router = APIRouter()


def get_completion_client(request: Request) -> CompletionClient:
    """The process-wide upstream client opened by the app lifespan."""
    return request.app.state.completion_client


def _error(status_code: int, error: str, details=None) -> JSONResponse:
    body = ErrorResponse(error=error, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


async def read_completion_request(raw_request: Request) -> CompletionRequest:
    """Parse the body leniently: no body, bad JSON or a non-object all mean "no prompt"."""
    try:
        body = await raw_request.json()
    except ValueError:
        body = None
    if not isinstance(body, dict):
        return CompletionRequest()
    return CompletionRequest.model_validate(body)


@router.post(
    "/jedi",
    response_model=CompletionResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    openapi_extra={
        "requestBody": {
            "content": {"application/json": {"schema": CompletionRequest.model_json_schema()}},
        }
    },
)
async def ask_jedi(
    request: CompletionRequest = Depends(read_completion_request),
    client: CompletionClient = Depends(get_completion_client),
):
    """Forward a prompt to the completion API and relay the reply"""
    prompt = request.prompt
    log.info(f"Received prompt: {prompt!r}")

    if not isinstance(prompt, str) or not prompt.strip():
        return _error(400, "Prompt is required", "Send a JSON body like {\"prompt\": \"...\"}")

    try:
        reply = await client.complete(prompt)
    except UpstreamError as e:
        return _error(500, "Error calling AOAI", e.details)

    return CompletionResponse(reply=reply)
