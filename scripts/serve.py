#!/usr/bin/env python3
"""Serve the HTTP API with uvicorn."""

import sys
from pathlib import Path

from dotenv import load_dotenv

sys.path.insert(0, str(Path(__file__).parent.parent))

load_dotenv()

import uvicorn

from onefeed.api import create_app
from onefeed.config.log_config import configure_logging
from onefeed.config.settings import settings


def main():
    configure_logging("onefeed-api", level=settings.log_level, json=settings.log_json)
    uvicorn.run(create_app(), host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
