#!/usr/bin/env python3
"""
Run the Proper Search web server.
"""

import uvicorn

from utils.config import Config, configure_logging


def main():
    """Start the web server."""
    config = Config.load()
    configure_logging(config.log_level)

    print(f"Starting Proper Search on http://{config.host}:{config.port}")
    print("Press Ctrl+C to stop")

    uvicorn.run(
        "web.app:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
    )


if __name__ == "__main__":
    main()
