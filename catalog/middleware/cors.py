from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from typing import List
import structlog

logger = structlog.get_logger(__name__)


def setup_cors(app: FastAPI, allowed_origins: List[str]) -> None:
    logger.info("cors_configuration", allowed_origins=allowed_origins)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=[
            "Content-Type",
            "X-Correlation-ID",
            "Accept",
        ],
        expose_headers=["X-Correlation-ID"],
        max_age=600,
    )
