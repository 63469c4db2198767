"""
Entrypoint: load config, init logging, send one request through the executor
and print the exchange
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

import httpx
import structlog
from dotenv import load_dotenv

from apitransport.config import Config, parse_header_entry
from apitransport.executor import RequestExecutor
from apitransport.request import HttpRequest, InvalidHeaderValueError

DEFAULT_CONFIG_PATH = "config.yaml"


def setup_logging(level: str = "INFO"):
    """Configure stdlib logging and the structlog JSON processor chain."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, str(level).upper(), logging.INFO),
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Send one API request with 503 retries")
    parser.add_argument("method", help="HTTP method, e.g. GET")
    parser.add_argument("url", help="absolute https URL or a path appended to --base-url")
    parser.add_argument("--base-url", default="", help="prefix for relative URLs")
    parser.add_argument(
        "-H", "--header", action="append", default=[],
        help="request header as 'Name: Value' (repeatable)",
    )
    parser.add_argument("--body", default=None, help="raw request body")
    parser.add_argument("--config", default=None, help="path to a YAML config file (default: ./config.yaml when present)")
    return parser.parse_args(argv)


def build_request(args: argparse.Namespace) -> HttpRequest:
    """Turn parsed arguments into a logical request; later headers win."""
    request = HttpRequest(method=args.method.upper(), url=args.url, body=args.body)
    for entry in args.header:
        name, value = parse_header_entry(entry)
        request.headers[name] = value
    return request


def resolve_config_path(config_path=None):
    """Use the given path, else config.yaml from the working directory if present."""
    if config_path is not None:
        return config_path
    if Path(DEFAULT_CONFIG_PATH).is_file():
        return DEFAULT_CONFIG_PATH
    return None


async def run(args: argparse.Namespace) -> int:
    config = Config(resolve_config_path(args.config))
    setup_logging(config.logging.get("level", "INFO"))
    logger = structlog.get_logger(__name__)

    try:
        request = build_request(args)
    except ValueError as e:
        logger.error("invalid_request_header", error=str(e))
        return 2

    print(request.full_http_text())
    print()

    async with RequestExecutor(settings=config.transport_settings()) as executor:
        try:
            response = await executor.execute(request, args.base_url)
        except InvalidHeaderValueError as e:
            logger.error("invalid_request_header", error=str(e))
            return 2
        except httpx.TransportError as e:
            logger.error("request_failed", error=str(e), exc_info=True)
            return 1

    print(response.full_http_text())
    print()
    print(f"retries: {response.retry_count}")
    return 0


def main(argv=None) -> int:
    """Initialize dependencies and send the request"""
    load_dotenv()
    return asyncio.run(run(parse_args(argv)))


if __name__ == "__main__":
    sys.exit(main())
