"""Serve the demo join page (`python -m demo_api`). DEMO_HOST and DEMO_PORT override the bind address."""
import os

import uvicorn


def main():
    host = os.environ.get("DEMO_HOST", "127.0.0.1")
    port = int(os.environ.get("DEMO_PORT", "8000"))
    uvicorn.run("demo_api.api:app", host=host, port=port, reload=True)


if __name__ == "__main__":
    main()
