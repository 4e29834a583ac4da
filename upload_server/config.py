"""Configuration settings for the HTTP upload server."""
import argparse
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

SERVER_VERSION = "0.1.0"

# Upload limits
MAX_FORM_SIZE = 10 << 20  # 10MB
UPLOAD_FIELD = "myFile"

# Stored file naming
UPLOAD_PREFIX = "upload-"
UPLOAD_SUFFIX = ".png"

# Defaults for command line flags
DEFAULT_LISTEN_ADDRESS = ":8081"
DEFAULT_BASE_DIR = "."

# Directory names under the base directory
HTMLROOT_DIR_NAME = "htmlroot"
UPLOAD_DIR_NAME = "upload"

# Debug dump attached to response pages
MAX_DEBUG_DUMP = 65535

# Log files
LOGS_DIR = "./logs"


class ConfigError(Exception):
    """Raised when the server configuration can not be resolved."""


@dataclass
class ServerOptions:
    listen_address: str = DEFAULT_LISTEN_ADDRESS
    base_dir: str = DEFAULT_BASE_DIR
    use_disk_htmlroot: bool = False

    @classmethod
    def from_args(cls, argv: Optional[List[str]] = None) -> 'ServerOptions':
        """Create ServerOptions from command line arguments."""
        parser = argparse.ArgumentParser(
            description='Http multipart upload server',
            add_help=False,
        )
        parser.add_argument('-l', '-listen', '--listen', dest='listen_address',
                            default=DEFAULT_LISTEN_ADDRESS,
                            help='Listen address for server')
        parser.add_argument('-b', '-base', '--base', dest='base_dir',
                            default=DEFAULT_BASE_DIR,
                            help='base directory of server static file')
        parser.add_argument('-r', '-rice', '--rice', dest='use_disk_htmlroot',
                            action='store_true',
                            help='do not use embedded html files')
        parser.add_argument('-h', '-help', '--help', action='help',
                            help='show this help message and exit')
        args = parser.parse_args(argv)

        return cls(
            listen_address=args.listen_address,
            base_dir=args.base_dir,
            use_disk_htmlroot=args.use_disk_htmlroot,
        )


@dataclass(frozen=True)
class ServerConfig:
    listen_address: str
    bind_host: str
    bind_port: int
    display_host: str
    url: str
    static_base_dir: Path
    htmlroot: Path
    upload_dir: Path
    use_embedded_assets: bool = True

    def __str__(self) -> str:
        return (
            "\n"
            f"static base directory: {self.static_base_dir}\n"
            f"HTML root directory: {self.htmlroot}\n"
            f"upload directory: {self.upload_dir}\n"
            f"listen: {self.listen_address}\n"
            f"URL: {self.url}\n"
        )


def real_path(path: Path) -> Path:
    """Return the absolute path of `path` with symbolic links resolved."""
    try:
        return Path(path).resolve(strict=True)
    except (OSError, RuntimeError) as e:
        raise ConfigError(f"cannot resolve {path}: {e}") from e


def ensure_directory(path: Path) -> Path:
    """Create `path` if needed and return its real path."""
    try:
        os.makedirs(path, mode=0o755, exist_ok=True)
    except OSError as e:
        raise ConfigError(f"cannot create directory {path}: {e}") from e
    resolved = real_path(path)
    if not resolved.is_dir():
        raise ConfigError(f"{resolved} is not a directory")
    return resolved


def split_listen_address(listen_address: str) -> Tuple[str, str]:
    """Split "host:port" on the last colon. A value without colon is a bare port."""
    host, sep, port = listen_address.rpartition(":")
    if not sep:
        return "", listen_address
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    return host, port


def parse_port(port: str) -> int:
    try:
        value = int(port)
    except ValueError:
        raise ConfigError(f"invalid port in listen address: {port!r}")
    if not 0 < value < 65536:
        raise ConfigError(f"port out of range: {value}")
    return value


def resolve_config(options: ServerOptions) -> ServerConfig:
    """Resolve directories and listen address into an immutable ServerConfig.

    Directories are created when missing. Any failure raises ConfigError,
    which is fatal at startup.
    """
    static_base_dir = ensure_directory(Path(options.base_dir))
    htmlroot = ensure_directory(static_base_dir / HTMLROOT_DIR_NAME)
    upload_dir = ensure_directory(static_base_dir / UPLOAD_DIR_NAME)

    host, port = split_listen_address(options.listen_address)
    bind_port = parse_port(port)
    bind_host = host or "0.0.0.0"

    display_host = host
    if display_host in ("", "0.0.0.0"):
        display_host = "127.0.0.1"
    if ":" in display_host:
        url_host = f"[{display_host}]"
    else:
        url_host = display_host
    url = f"http://{url_host}"
    if port != "80":
        url += f":{port}"

    return ServerConfig(
        listen_address=options.listen_address,
        bind_host=bind_host,
        bind_port=bind_port,
        display_host=display_host,
        url=url,
        static_base_dir=static_base_dir,
        htmlroot=htmlroot,
        upload_dir=upload_dir,
        use_embedded_assets=not options.use_disk_htmlroot,
    )
