"""
Deckstate - Unified Application Entry Point
Mounts the editor service under a single FastAPI application
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from deckstate.services.editor import app as editor_module
from deckstate.shared.config import config
from deckstate.shared.logging_utils import setup_logging

logger = setup_logging("app")

editor_app = editor_module.app

app = FastAPI(
    title="Deckstate API",
    description="""
    Slide document state, undo/redo history and versioning for the deck editor.

    Service routes are organized by tag.
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=[
        {
            "name": "Health",
            "description": "Service health and status endpoints",
        },
        {
            "name": "Editor",
            "description": "Editing sessions, versions and comments - mounted at /api/v1/editor",
        },
    ],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.get("allowed_origins", ["*"]),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes to exclude (internal FastAPI docs routes)
EXCLUDED_PATHS = {"/openapi.json", "/docs", "/docs/oauth2-redirect", "/redoc"}

# Include Editor routes with prefix
for route in editor_app.routes:
    if hasattr(route, "path") and hasattr(route, "endpoint"):
        # Skip internal documentation routes
        if route.path in EXCLUDED_PATHS:
            continue
        route_kwargs = {
            "path": f"/api/v1/editor{route.path}",
            "endpoint": route.endpoint,
            "methods": route.methods,
            "tags": ["Editor"],
        }
        if hasattr(route, "name"):
            route_kwargs["name"] = f"editor_{route.name}"
        if hasattr(route, "response_model"):
            route_kwargs["response_model"] = route.response_model
        app.add_api_route(**route_kwargs)


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check for the unified application"""
    return {"status": "healthy", "service": "deckstate", "remote_store": config.get("remote_store_driver")}


@app.on_event("shutdown")
async def close_sessions():
    for session_id, session in list(editor_module.registry.sessions.items()):
        await session.close()
        logger.info(f"Closed session {session_id} on shutdown")
    editor_module.registry.sessions.clear()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
