"""FastAPI application entry point for the knowledge base chat service."""

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.logging.logging_setup import setup_logging
from shared.helper.HelperConfig import HelperConfig
from services.ServiceContainer import ServiceContainer, build_container
from server.dependencies.errors import register_error_handlers
from server.routers.ChatRouter import router as chat_router
from server.routers.DocumentRouter import router as document_router
from server.routers.HealthRouter import router as health_router

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # when the app starts
    app.state.logging = logging
    app.state.helper_config = HelperConfig(logger=logging)

    services = build_container(app.state.helper_config)

    logging.info("Booting all clients...")
    await services.boot()
    logging.info("All clients booted successfully.")
    app.state.services = services

    await check_connections(services)

    # while the app is running...
    yield

    # when the app shuts down, close all client connections
    logging.info("Shutting down, closing all clients...")
    await services.close()
    logging.info("All clients closed.")


app = FastAPI(
    title="kb_chat",
    description=(
        "Chat with per-bot knowledge bases. Uploaded document text is chunked, "
        "embedded and stored in a vector database; chat messages are routed by "
        "intent to FAQ answers, grounded generation, general chat or small talk."
    ),
    version=app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)
app.include_router(chat_router)
app.include_router(document_router)
app.include_router(health_router)


async def check_connections(services: ServiceContainer) -> None:
    """Check connectivity to all configured backends on startup.

    Provider failures are non-fatal: per-bot credentials may be the only
    valid keys, so the embedding and chat backends may reject an anonymous
    healthcheck. The vector store is fatal, nothing can be served without it.

    Raises:
        Exception: If the vector store is not reachable.
    """
    for client in (services.embed_client, services.llm_client):
        try:
            result = await client.do_healthcheck()
        except Exception as e:
            logging.warning("%s client is not reachable: %s", client.get_client_type().upper(), e)
            continue
        if not result.is_success:
            logging.warning(
                "%s client '%s' healthcheck returned status %d. Requests may fail.",
                client.get_client_type().upper(),
                client.get_engine_name(),
                result.status_code,
            )

    status = await services.vector_store.system_status()
    if not status["healthy"]:
        raise Exception(
            f"Vector store '{status['engine']}' is not reachable. Cannot serve requests."
        )


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("API_SERVER_PORT", "8000"))
    logging.info(
        "Starting kb_chat API Server v%s from root dir: %s on port %d...",
        app_version,
        os.environ.get("ROOT_DIR", "unknown"),
        port,
    )
    uvicorn.run(app, host="0.0.0.0", port=port)
