"""Helper to launch the Mission Compass API under uvicorn.

Run from the repository root: ``configs/`` is resolved against the working
directory. Elsewhere, set ``MISSION_COMPASS_CONFIG`` and
``MISSION_COMPASS_TEMPLATE_DIR``.
"""
from __future__ import annotations
import os
import subprocess
import sys

def build_command() -> list[str]:
    host = os.getenv("HOST", "0.0.0.0")
    port = os.getenv("PORT", "3000")
    workers = os.getenv("WEB_CONCURRENCY", "1")

    return [
        sys.executable,
        "-m",
        "uvicorn",
        "mission_compass.serve.fastapi_app:app",
        "--host", host,
        "--port", str(port),
        "--workers", str(workers),
    ]

def main() -> None:
    subprocess.run(build_command(), check=True)

if __name__ == "__main__":
    main()
