import argparse
import logging
import os

import uvicorn

logger = logging.getLogger(__name__)
APP_MODULE = "scramble.main:app"
DEFAULT_PORT = 8000


def _port_from_env() -> int:
    for key in ("APP_PORT", "PORT"):
        value = os.getenv(key)
        if value:
            try:
                return int(value)
            except ValueError:
                logger.warning("Ignoring %s=%s (not an integer)", key, value)
    return DEFAULT_PORT


def _ssl_kwargs() -> dict[str, str]:
    cert = os.getenv("SSL_CERT_FILE")
    key = os.getenv("SSL_KEY_FILE")
    if not cert and not key:
        return {}
    if not cert or not key:
        logger.warning("SSL_CERT_FILE and SSL_KEY_FILE must both be set for HTTPS; serving plain HTTP.")
        return {}

    ssl_kwargs: dict[str, str] = {"ssl_certfile": cert, "ssl_keyfile": key}
    password = os.getenv("SSL_KEY_PASSWORD")
    if password:
        ssl_kwargs["ssl_keyfile_password"] = password
    logger.info("Serving scores over HTTPS using %s", cert)
    return ssl_kwargs


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the scramble scoring API.")
    parser.add_argument("--host", default=os.getenv("APP_HOST", "0.0.0.0"))
    parser.add_argument("--port", type=int, default=_port_from_env())
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Restart the server when source files change (development only).",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = _parse_args(argv)
    uvicorn.run(
        APP_MODULE,
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=os.getenv("UVICORN_LOG_LEVEL", "info"),
        **_ssl_kwargs(),
    )


if __name__ == "__main__":
    main()
