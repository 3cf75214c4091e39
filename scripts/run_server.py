#!/usr/bin/env python3
"""
Variables API entrypoint - loads .env and starts uvicorn.
"""

import argparse
import sys
from pathlib import Path

# Load environment variables from .env file first
import dotenv
dotenv.load_dotenv()

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import uvicorn

from curator.api.main import create_app


def main():
    parser = argparse.ArgumentParser(description="Run the curator variables API")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args()

    try:
        uvicorn.run(create_app(), host=args.host, port=args.port)
    except KeyboardInterrupt:
        print("\nServer interrupted")
    return 0


if __name__ == "__main__":
    sys.exit(main())
