# =============================================================================
# main.py  -  Entry Point for the SolarWinds Observability MCP Server
# =============================================================================
#
# HOW TO RUN:
#   uv run python main.py                       # stdio (for desktop MCP hosts)
#   uv run python main.py --transport http      # streamable HTTP on :8000/mcp
#
# WHAT HAPPENS:
#   1. Loads .env (variables already in the environment win)
#   2. Builds the immutable TelemetryConfig; a missing token is fatal
#   3. Creates the SolarWindsClient and probes the API once
#   4. Registers every tool on a FastMCP server and starts serving
#
# A failed probe is only a warning: the server still starts, and each tool
# call will report its own error to the agent.
# =============================================================================

import argparse
import asyncio
import logging
import os
import sys

from dotenv import load_dotenv

# Must run before load_config() reads os.environ.
load_dotenv()

from core.client import SolarWindsClient
from core.config import describe_environment, load_config
from core.errors import ConfigurationError
from tools.mcp_server import create_server, setup_logging


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="SolarWinds Observability MCP Server")
    parser.add_argument("--transport", choices=("stdio", "http"), default=os.getenv("MCP_TRANSPORT", "stdio"),
                        help="MCP transport (default: stdio)")
    parser.add_argument("--host", default=os.getenv("HOST", "127.0.0.1"),
                        help="Host to bind when using the http transport")
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", "8000")),
                        help="Port to bind when using the http transport")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging()

    logging.info("Environment variables received:")
    for name, state in describe_environment().items():
        logging.info(f"  {name}: {state}")

    try:
        config = load_config()
    except ConfigurationError as exc:
        logging.error(f"Failed to start server: {exc}")
        return 1

    client = SolarWindsClient(config)

    if not asyncio.run(client.test_connection()):
        logging.warning("Could not connect to SolarWinds API. Please check your credentials.")

    mcp = create_server(client)
    logging.info("SolarWinds Observability MCP Server started")

    if args.transport == "http":
        logging.info(f"MCP endpoint: http://{args.host}:{args.port}/mcp")
        mcp.run(transport="streamable-http", host=args.host, port=args.port, path="/mcp")
    else:
        mcp.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
