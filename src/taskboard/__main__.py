"""Taskboard entrypoint.

Run with:
  python -m taskboard
"""

import os

import uvicorn

from taskboard.config import env_flag


def main() -> None:
    host = os.getenv("TASKBOARD_HOST", "0.0.0.0")
    port = int(os.getenv("TASKBOARD_PORT", "8000"))
    reload = env_flag("TASKBOARD_RELOAD")
    uvicorn.run("taskboard.app:create_app", factory=True, host=host, port=port, reload=reload)


if __name__ == "__main__":
    main()
