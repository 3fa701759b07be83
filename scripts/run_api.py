#!/usr/bin/env python
"""
Start the local B2B pricing API (uvicorn with reload).

Usage:
    python scripts/run_api.py
"""
import logging
import os
import subprocess
import sys
from pathlib import Path

from rich.logging import RichHandler

logger = logging.getLogger("run_api")


def main():
    logging.basicConfig(level=logging.INFO, format="%(message)s", handlers=[RichHandler()])
    project_root = Path(__file__).parent.parent

    # Make src importable for the uvicorn child process
    env = os.environ.copy()
    src_path = str(project_root / "src")
    env["PYTHONPATH"] = os.pathsep.join(p for p in (src_path, env.get("PYTHONPATH")) if p)

    logger.info("Starting B2B Pricing API on http://127.0.0.1:8000")
    try:
        result = subprocess.run(
            [
                sys.executable, "-m", "uvicorn",
                "b2b_pricing.api.main:app",
                "--host", "127.0.0.1",
                "--port", "8000",
                "--reload",
            ],
            cwd=project_root,
            env=env,
        )
    except KeyboardInterrupt:
        logger.info("API stopped")
        return

    if result.returncode != 0:
        logger.error("uvicorn exited with status %d", result.returncode)
        sys.exit(result.returncode)


if __name__ == "__main__":
    main()
