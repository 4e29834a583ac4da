import sys
from contextlib import asynccontextmanager
from typing import List, Optional

import uvicorn
from fastapi import FastAPI

from upload_server import config
from upload_server.app.routes.upload_routes import router, upload_error_handler
from upload_server.app.services.static_provider import (
    StaticContentProvider,
    select_static_provider,
)
from upload_server.app.services.upload_manager import UploadError, UploadManager
from upload_server.config import ConfigError, ServerConfig, ServerOptions, resolve_config
from upload_server.logger_config import setup_logger

# Logger setup
logger = setup_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    await app.state.upload_manager.initialize()
    yield


def create_app(server_config: ServerConfig,
               static_provider: Optional[StaticContentProvider] = None) -> FastAPI:
    """Build the application for a resolved configuration.

    Handlers reach the configuration and the upload manager through
    `request.app.state`.
    """
    app = FastAPI(title="HTTP Upload Server", version=config.SERVER_VERSION, lifespan=lifespan)
    app.state.config = server_config
    app.state.upload_manager = UploadManager(server_config.upload_dir)

    app.add_exception_handler(UploadError, upload_error_handler)
    app.include_router(router)

    # Mounted last, "/" matches every path the routes above do not
    if static_provider is None:
        static_provider = select_static_provider(server_config)
    app.mount("/", static_provider.build(), name="static")
    return app


def main(argv: Optional[List[str]] = None):
    logger.info(f"Http multipart upload server, version {config.SERVER_VERSION}")

    options = ServerOptions.from_args(argv)
    try:
        server_config = resolve_config(options)
    except ConfigError as e:
        logger.critical(f"Invalid configuration: {e}")
        sys.exit(1)

    logger.info(str(server_config))
    app = create_app(server_config)

    logger.info(f"Starting HTTP upload server on {server_config.url}")
    uvicorn.run(app, host=server_config.bind_host, port=server_config.bind_port)


if __name__ == "__main__":
    main()
