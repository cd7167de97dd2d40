from __future__ import annotations

import socket
import threading
from collections.abc import Iterator

import pytest


@pytest.fixture()
def hangup_server() -> Iterator[tuple[list[int], str]]:
    """Accept connections and close them without sending a response."""

    accepted: list[int] = []
    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    listener.bind(("127.0.0.1", 0))
    listener.listen()
    listener.settimeout(0.2)
    stop = threading.Event()

    def serve() -> None:
        while not stop.is_set():
            try:
                connection, _address = listener.accept()
            except socket.timeout:
                continue
            accepted.append(1)
            connection.recv(65536)
            connection.close()

    thread = threading.Thread(target=serve, daemon=True)
    thread.start()
    host, port = listener.getsockname()[:2]
    try:
        yield accepted, f"http://{host}:{port}"
    finally:
        stop.set()
        thread.join()
        listener.close()
