"""
Shared fixtures: a real uvicorn server running an app in a background thread.
"""

import asyncio
import socket
import threading
import time

import httpx
import pytest
import uvicorn
from fastapi import FastAPI


@pytest.fixture
def live_server():
    """Start apps on free local ports; yields a function returning base URLs."""
    servers: list[tuple[uvicorn.Server, threading.Thread]] = []

    def start(app: FastAPI) -> str:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.bind(("127.0.0.1", 0))
        host, port = sock.getsockname()
        sock.close()
        base_url = f"http://{host}:{port}"

        config = uvicorn.Config(
            app=app,
            host=host,
            port=port,
            loop="asyncio",
            lifespan="on",
            log_level="warning",
            ws="none",
            timeout_graceful_shutdown=1,
        )
        server = uvicorn.Server(config)

        def run_server() -> None:
            asyncio.run(server.serve())

        thread = threading.Thread(target=run_server, daemon=True)
        thread.start()
        servers.append((server, thread))

        # Wait for server to be ready
        start_time = time.time()
        while time.time() - start_time < 5.0:
            try:
                r = httpx.get(base_url + "/", timeout=0.2)
                if r.status_code == 200:
                    return base_url
            except Exception:
                pass
            time.sleep(0.05)
        assert False, "Server did not start in time"

    yield start

    for server, thread in servers:
        server.should_exit = True
        thread.join(timeout=2.0)
