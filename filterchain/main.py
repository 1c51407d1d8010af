from __future__ import annotations

import logging

from fastapi import FastAPI

from filterchain.infrastructure.api.middlewares import add_default_middlewares
from filterchain.infrastructure.api.routes.ai_routes import router as ai_router
from filterchain.infrastructure.api.routes.image_routes import router as image_router
from filterchain.infrastructure.config.settings import get_settings


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="FilterChain Backend",
        version="0.1.0",
        description="""
        ## FilterChain Backend API

        Web image editor backend. Upload an image, stack named filters on it,
        preview before saving, reset to the original, or create and edit images
        with an external AI provider.

        ### How edits are stored
        Every derived image remembers its original upload and the ordered list
        of filters that produce it. Applying a filter replays the whole list on
        the original, so edits never compound on already-filtered pixels.

        ### Error Responses
        - **400 Bad Request**: Unknown filter, invalid upload or empty prompt
        - **404 Not Found**: Referenced image does not exist in storage
        - **422 Unprocessable Entity**: A filter failed, or request validation failed
        - **502 Bad Gateway**: The AI provider reported an error
        - **504 Gateway Timeout**: The AI provider did not finish in time
        """,
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
    )
    add_default_middlewares(app)

    @app.get("/", summary="API Root")
    def root():
        """Get API root information."""
        return {"status": "ok", "service": "filterchain-backend", "version": app.version}

    @app.get("/health", summary="Health Check")
    def health():
        return {"status": "healthy"}

    app.include_router(image_router)
    app.include_router(ai_router)
    return app


app = create_app()
