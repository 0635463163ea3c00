#!/usr/bin/env python3
"""
Monopoly Bank Entry Point

Starts the FastAPI server with the team ledger.
"""

import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

import uvicorn

from monopoly_bank.config import get_config
from monopoly_bank.logging_config import setup_logging


def run_server(host: str, port: int, debug: bool = False):
    """Run the FastAPI server"""
    uvicorn.run(
        "monopoly_bank.api:app",
        host=host,
        port=port,
        reload=debug,
        log_level="info"
    )


if __name__ == "__main__":
    config = get_config()
    logger = setup_logging(config.log_level, log_format=config.log_format, log_file=config.log_file)

    print("🎩 Starting Monopoly Bank...")
    print(f"💰 Starting cash per team: ${config.starting_cash}")
    print(f"🌐 API available at: http://localhost:{config.api_port}")
    print(f"📚 Documentation at: http://localhost:{config.api_port}/docs")
    print()

    try:
        run_server(host=config.api_host, port=config.api_port)
    except KeyboardInterrupt:
        print("\n👋 Shutting down Monopoly Bank...")
    except Exception as e:
        logger.exception("Server failed to start")
        print(f"❌ Error starting server: {e}")
        sys.exit(1)
