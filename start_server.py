#!/usr/bin/env python3
"""Run the API under uvicorn on $PORT."""

import os
import sys

import uvicorn

SRC_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "src")


def main() -> None:
    sys.path.insert(0, SRC_PATH)
    uvicorn.run(
        "geodispatch.main:app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "8000")),
        proxy_headers=True,
    )


if __name__ == "__main__":
    main()
