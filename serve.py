"""Entry point for running the HTTP server."""

import errno
import logging
import socket
import sys

import uvicorn

from waterdata.settings import load_settings


class PortInUseError(RuntimeError):
    """Raised when the configured port is already bound by another process."""

    def __init__(self, message: str, suggestion: str):
        super().__init__(message)
        self.suggestion = suggestion


def ensure_port_available(host: str, port: int) -> None:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((host, port))
        except OSError as exc:
            if exc.errno != errno.EADDRINUSE:
                raise
            raise PortInUseError(
                f"Port {port} is already in use.",
                f"Try a different port: PORT={port + 1} python serve.py or PORT=8080 python serve.py",
            ) from exc


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    settings = load_settings()
    try:
        ensure_port_available(settings.host, settings.port)
    except PortInUseError as exc:
        logging.error("%s", exc)
        logging.info("修正建議: %s", exc.suggestion)
        sys.exit(1)

    logging.info("Server running at http://localhost:%s", settings.port)
    uvicorn.run("webapp.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
