# nim_forwarder/main.py
import os
import time
import typer
import uvicorn
import httpx
import json
import logging
from typing import Any, Dict, Optional
from fastapi import APIRouter, FastAPI, Request, status
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException
from contextlib import asynccontextmanager

from nim_forwarder.core import config
from nim_forwarder.core.errors import normalize_failure, not_found
from nim_forwarder.core.forwarder import forward_chat_completion
from nim_forwarder.core.routing import ModelRouter
from nim_forwarder.core.translator import RequestTranslator, ResponseTranslator
from nim_forwarder.models.api import ChatCompletionRequest, ModelCard, ModelList, NimChatResponse

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(' ' * 5 + os.path.basename(__file__))

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}

# Routes answer any method, except chat completions which is POST only
ANY_METHOD = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD"]

api = APIRouter(prefix="/api")


@api.api_route("/health", methods=ANY_METHOD)
async def health(request: Request):
    app_settings: config.Settings = request.app.state.settings
    return {
        "status": "ok",
        "service": config.SERVICE_NAME,
        "reasoning_display": app_settings.show_reasoning,
        "thinking_mode": app_settings.enable_thinking_mode,
    }


@api.api_route("/v1/models", methods=ANY_METHOD)
async def list_models(request: Request):
    router: ModelRouter = request.app.state.model_router
    created = int(time.time() * 1000) # milliseconds
    models = [ModelCard(id=model_id, created=created, owned_by=config.MODEL_OWNER) for model_id in router.model_ids()]
    return ModelList(data=models).model_dump()


@api.post("/v1/chat/completions")
async def chat_completions(request: Request):
    state = request.app.state
    try:
        chat_request = ChatCompletionRequest.model_validate(await request.json())
        logger.info(f"Received chat completion request for model: {chat_request.model}")

        nim_request = state.request_translator.build(chat_request)
        forwarded = await forward_chat_completion(nim_request, state.http_client, state.settings)
        if not forwarded.success:
            status_code, error = normalize_failure(forwarded, state.settings.strict_error_types)
            logger.error(f"Proxy error: {error.error.message} (status {status_code})")
            return JSONResponse(status_code=status_code, content=error.model_dump())

        upstream = NimChatResponse.model_validate(forwarded.data)
        completion = state.response_translator.build(chat_request.model, upstream)
        return JSONResponse(content=completion.model_dump())

    except Exception as e:
        # Bad client JSON, schema mismatches and unexpected NIM bodies all end up here
        logger.error(f"Proxy error: {e}")
        status_code, error = normalize_failure(e, state.settings.strict_error_types)
        return JSONResponse(status_code=status_code, content=error.model_dump())


def create_app(
    app_settings: Optional[config.Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Builds the forwarder app. Toggles are read from settings once, here.
    `transport` replaces the network layer of the outbound client (used by tests).
    """
    app_settings = app_settings or config.settings

    # --- Async Lifecycle for HTTPX client ---
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Increase default timeouts for potentially long completions
        timeout = httpx.Timeout(10.0, read=120.0) # 10s connect, 120s read
        app.state.http_client = httpx.AsyncClient(timeout=timeout, transport=transport)
        logger.info(f"HTTPX Client started with timeout: {timeout}.")
        yield
        await app.state.http_client.aclose()
        logger.info("HTTPX Client closed.")

    app = FastAPI(
        title="NIM Forwarder",
        description="Serves OpenAI-compatible chat completions from NVIDIA NIM models.",
        version="1.0.0",
        lifespan=lifespan,
    )

    model_router = ModelRouter()
    app.state.settings = app_settings
    app.state.model_router = model_router
    app.state.request_translator = RequestTranslator(model_router, thinking_mode_enabled=app_settings.enable_thinking_mode)
    app.state.response_translator = ResponseTranslator(reasoning_visible=app_settings.show_reasoning)

    @app.middleware("http")
    async def cors(request: Request, call_next):
        # Every preflight succeeds, whatever the path
        if request.method == "OPTIONS":
            response = Response(status_code=status.HTTP_200_OK)
        else:
            response = await call_next(request)
        response.headers.update(CORS_HEADERS)
        return response

    @app.exception_handler(StarletteHTTPException)
    async def endpoint_not_found(request: Request, exc: StarletteHTTPException):
        # Unknown paths and wrong methods both report the endpoint as missing
        if exc.status_code in (status.HTTP_404_NOT_FOUND, status.HTTP_405_METHOD_NOT_ALLOWED):
            return JSONResponse(
                status_code=status.HTTP_404_NOT_FOUND,
                content=not_found(request.url.path).model_dump(),
            )
        return await http_exception_handler(request, exc)

    app.include_router(api)
    return app


app = create_app()


# --- Typer CLI App ---
cli_app = typer.Typer()


@cli_app.command()
def run_server(
    host: str = typer.Option("127.0.0.1", help="Host to bind the server to."),
    port: int = typer.Option(8000, help="Port to run the server on."),
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reloading for development."),
    log_level: str = typer.Option("info", help="Log level (e.g., debug, info, warning, error).")
):
    """Runs the FastAPI web server."""
    s = config.settings
    print(f"--- NIM Forwarder Server (v{app.version}) ---")
    print(f"Starting server on http://{host}:{port}")
    print(f"Chat endpoint: http://{host}:{port}/api/v1/chat/completions")
    print(f"Log Level: {log_level.upper()}")
    print(f"Auto-reload: {'Enabled' if reload else 'Disabled'}")
    print(f"NVIDIA NIM Base URL: {s.nim_api_base}")
    print(f"NVIDIA NIM API Key: {'Configured' if s.nim_api_key else 'Not Configured'}")
    print(f"Reasoning Display: {'On' if s.show_reasoning else 'Off'}")
    print(f"Thinking Mode: {'On' if s.enable_thinking_mode else 'Off'}")
    print(f"Model Mappings:")
    for client_model, nim_model in config.MODEL_MAPPING.items():
        print(f"  - {client_model:<22} -> {nim_model}")
    print(f"  - {'(anything else)':<22} -> {config.DEFAULT_UPSTREAM_MODEL}")
    print("-" * 60)

    if not s.nim_api_key:
        print("\nWARNING: NIM_API_KEY is not set in .env or the environment.")
        print("         Chat completions will fail until it is configured.")

    uvicorn.run(
        "nim_forwarder.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level=log_level.lower(),
        lifespan="on"
    )


@cli_app.command()
def call(
    prompt: str = typer.Argument(..., help="The user prompt."),
    model: str = typer.Option("gpt-4", "--model", "-m", help="Client-facing model name (e.g., gpt-4, claude-3-opus)."),
    server: str = typer.Option("http://127.0.0.1:8000", help="URL of the running forwarder server."),
    temperature: Optional[float] = typer.Option(None, "--temp", "-t", help="Temperature for sampling."),
    max_tokens: Optional[int] = typer.Option(None, "--max-tok", help="Max tokens to generate."),
    system_prompt: Optional[str] = typer.Option(None, "--system", "-s", help="Optional system prompt."),
):
    """Sends a chat request via the NIM Forwarder (for testing)."""
    api_endpoint = f"{server.rstrip('/')}/api/v1/chat/completions"

    messages = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    messages.append({"role": "user", "content": prompt})

    payload: Dict[str, Any] = {"model": model, "messages": messages}
    if temperature is not None:
        payload["temperature"] = temperature
    if max_tokens is not None:
        payload["max_tokens"] = max_tokens

    print(f"--- Sending Request ---")
    print(f"API Endpoint: {api_endpoint}")
    print(f"Payload Preview: {json.dumps(payload, indent=2)}")
    print(f"-----------------------")

    try:
        timeout = httpx.Timeout(10.0, read=130.0) # Slightly longer than server read timeout
        with httpx.Client(timeout=timeout) as client:
            response = client.post(api_endpoint, json=payload)

        print(f"\n--- Response (Status: {response.status_code}) ---")
        try:
            print(json.dumps(response.json(), indent=2, ensure_ascii=False))
        except json.JSONDecodeError:
            print(response.text) # Print raw text if not JSON

    except httpx.ReadTimeout:
        print(f"\n--- Request Error ---")
        print(f"The request timed out while waiting for a response from {server}.")
        raise typer.Exit(code=1)
    except httpx.RequestError as e:
        print(f"\n--- Request Error ---")
        print(f"Could not connect to the forwarder server at {server}. Is it running?")
        print(f"Error details: {type(e).__name__} - {e}")
        raise typer.Exit(code=1)


if __name__ == "__main__":
    # python -m nim_forwarder.main run-server
    cli_app()
