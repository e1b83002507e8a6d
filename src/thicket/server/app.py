"""FastAPI application exposing a Thicket conversation over HTTP."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from thicket.conversation import Conversation
from thicket.models.config import ThicketConfig
from thicket.store.forest import (
    ConstraintViolationError,
    ForestStore,
    InvalidParentError,
    NodeNotFoundError,
)

logger = structlog.get_logger("thicket.server")


class PostMessageRequest(BaseModel):
    """Body of ``POST /messages``. ``content`` is validated by the conversation layer."""

    model_config = ConfigDict(populate_by_name=True)

    content: Any = None
    parent_id: str | None = Field(default=None, alias="parentId")


def _error(status_code: int, message: str, details: str | None = None) -> JSONResponse:
    body: dict[str, str] = {"error": message}
    if details is not None:
        body["details"] = details
    return JSONResponse(status_code=status_code, content=body)


def _describe(err: dict[str, Any]) -> str:
    """Render one validation error as ``field: message`` using wire field names."""
    field = ".".join(str(part) for part in err.get("loc", ())[1:]) or "body"
    return f"{field}: {err.get('msg', 'invalid')}"


def create_app(
    conversation: Conversation | None = None,
    config: ThicketConfig | None = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        conversation: The conversation to serve. A fresh one over an empty
            ``ForestStore`` is created when omitted.
        config: Service configuration. Defaults to the conversation's config,
            or ``ThicketConfig()``.

    Returns:
        A configured FastAPI instance. The conversation is available as
        ``app.state.conversation``.
    """
    cfg = config or (conversation.config if conversation is not None else ThicketConfig())
    conv = conversation or Conversation(ForestStore(), config=cfg)

    app = FastAPI(title="Thicket", version="0.1.0")
    app.state.conversation = conv
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        details = "; ".join(_describe(err) for err in exc.errors())
        logger.info("request_rejected", path=request.url.path, details=details)
        return _error(400, "Invalid request body.", details=details)

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/threads")
    def threads() -> dict[str, Any]:
        return conv.threads().to_wire()

    @app.post("/messages")
    async def post_message(req: PostMessageRequest | None = None) -> Any:
        req = req or PostMessageRequest()
        try:
            result = await conv.post_message(req.content, parent_id=req.parent_id)
        except NodeNotFoundError:
            return _error(404, "Parent message not found.")
        except InvalidParentError:
            return _error(400, "User messages must reply to an assistant message.")
        except ConstraintViolationError as exc:
            return _error(400, str(exc))
        except Exception as exc:
            logger.exception("post_message_failed", error=str(exc))
            return _error(500, "Failed to process message.", details=str(exc))
        return result.to_wire()

    @app.delete("/messages/{node_id}")
    def delete_message(node_id: str) -> Any:
        try:
            state = conv.delete_message(node_id)
        except NodeNotFoundError:
            return _error(404, "Message not found.")
        except ConstraintViolationError:
            return _error(400, "Root messages cannot be deleted.")
        except Exception as exc:
            logger.exception("delete_message_failed", node_id=node_id, error=str(exc))
            return _error(500, "Failed to delete message.", details=str(exc))
        return {"state": state.to_wire()}

    return app


def main() -> None:
    """Run the service with uvicorn using configuration from the environment."""
    import uvicorn

    config = ThicketConfig.from_env()
    app = create_app(config=config)
    logger.info(
        "server_starting",
        host=config.server.host,
        port=config.server.port,
        model=config.provider.model,
    )
    uvicorn.run(app, host=config.server.host, port=config.server.port)
