from __future__ import annotations

import argparse

from gqlserver.config import Settings
from gqlserver.main import run


def main() -> None:
    parser = argparse.ArgumentParser(description="GraphQL over HTTP server")
    parser.add_argument("--port", type=int, default=None, help="Main listener port (overrides PORT)")
    parser.add_argument("--debug-port", type=int, default=None, help="Debug listener port (overrides DEBUG_PORT)")
    parser.add_argument("--host", default=None, help="Bind host for both listeners (overrides HOST)")
    args = parser.parse_args()

    overrides = {
        "PORT": args.port,
        "DEBUG_PORT": args.debug_port,
        "HOST": args.host,
    }
    run(Settings(**{key: value for key, value in overrides.items() if value is not None}))


if __name__ == "__main__":
    main()
