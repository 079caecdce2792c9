import logging

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from exam_import.core.config import get_settings
from exam_import.routes import imports


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s  %(levelname)s  %(name)s  %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)

    app = FastAPI(title="Exam Paper Import API", version="0.1.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(imports.router, prefix="/api")

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Provide a lightweight landing page for container checks."""
        return JSONResponse(
            {
                "message": "Exam Paper Import API",
                "docs": "/docs",
                "upload": "/api/import/upload",
            }
        )

    return app


app = create_app()


def main(host: str = "0.0.0.0", port: int = 8000) -> None:
    """Serve the API with uvicorn."""
    uvicorn.run("exam_import.app:app", host=host, port=port)


if __name__ == "__main__":
    main()
