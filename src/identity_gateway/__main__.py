"""Run the identity gateway.

Usage:
    ENVIRONMENT=local python -m identity_gateway --port 8080

Settings are read from the environment (see GatewaySettings.from_env).
"""
from __future__ import annotations

import argparse

import uvicorn

from identity_gateway.app import GatewaySettings, create_app


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Identity gateway")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8080)
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    app = create_app(GatewaySettings.from_env())
    uvicorn.run(app, host=args.host, port=args.port, log_config=None)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
