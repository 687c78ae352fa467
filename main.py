from dishka import AsyncContainer
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from dishka.integrations.fastapi import setup_dishka

from core.container import container
from core.exception_handler import (
    validation_exception_handler,
    http_exception_handler,
    starlette_exception_handler,
    custom_exception_handler
)
from core.exceptions import BaseCustomException
from explorer.router import router as explorer_router

APP_NAME = "Chain Explorer API"
APP_VERSION = "0.1.0"


def create_app(container: AsyncContainer) -> FastAPI:
    """
    Build the FastAPI application around a dishka container.

    Parameters
    ----------
    container : AsyncContainer
        Dependency container

    Returns
    -------
    FastAPI
        Configured application
    """
    app = FastAPI(
        title=APP_NAME,
        version=APP_VERSION,
        description="Addresses, blocks, transactions, tokens and NFTs on EVM networks",
    )

    setup_dishka(container, app)

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(StarletteHTTPException, starlette_exception_handler)
    app.add_exception_handler(BaseCustomException, custom_exception_handler)
    app.add_exception_handler(Exception, custom_exception_handler)

    app.include_router(explorer_router)

    @app.get("/")
    async def root():
        """
        Root endpoint.

        Returns
        -------
        dict
            Application information
        """
        return {
            "name": APP_NAME,
            "version": APP_VERSION,
            "networks": ["ethereum", "base", "arbitrum"],
            "endpoints": {
                "address": "/api/address/{address}",
                "block": "/api/block/{block}",
                "transaction": "/api/transaction/{hash}",
                "contract": "/api/contract/{address}",
                "tokens": "/api/tokens/top",
                "nft": "/api/nft/collection",
                "dashboard": "/api/dashboard/stats",
                "docs": "/docs"
            }
        }

    @app.get("/health")
    async def health():
        return {"status": "healthy", "version": APP_VERSION}

    return app


app = create_app(container)
