from abc import ABC, abstractmethod
from pathlib import Path

from fastapi.staticfiles import StaticFiles

from upload_server.config import ServerConfig
from upload_server.logger_config import setup_logger

logger = setup_logger()

# Asset bundle shipped inside the package
EMBEDDED_PACKAGE = "upload_server"
EMBEDDED_HTMLROOT = "webroot/htmlroot"


class StaticContentProvider(ABC):
    """Source of the static files served under "/"."""

    name = "static"

    @abstractmethod
    def build(self) -> StaticFiles:
        """Return an ASGI app serving the static content."""

    def describe(self) -> str:
        return self.name


class EmbeddedStaticProvider(StaticContentProvider):
    name = "embedded"

    def build(self) -> StaticFiles:
        return StaticFiles(packages=[(EMBEDDED_PACKAGE, EMBEDDED_HTMLROOT)], html=True)

    def describe(self) -> str:
        return f"embedded assets ({EMBEDDED_PACKAGE}/{EMBEDDED_HTMLROOT})"


class DirectoryStaticProvider(StaticContentProvider):
    name = "directory"

    def __init__(self, htmlroot: Path):
        self.htmlroot = htmlroot

    def build(self) -> StaticFiles:
        return StaticFiles(directory=self.htmlroot, html=True)

    def describe(self) -> str:
        return f"directory {self.htmlroot}"


def select_static_provider(server_config: ServerConfig) -> StaticContentProvider:
    if server_config.use_embedded_assets:
        provider = EmbeddedStaticProvider()
    else:
        provider = DirectoryStaticProvider(server_config.htmlroot)
    logger.info(f"Serving static files from {provider.describe()}")
    return provider
