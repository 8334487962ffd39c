# backoffice/tests/servers.py

import socketserver
import threading
from contextlib import contextmanager


class _HangUpHandler(socketserver.BaseRequestHandler):
    """Read whatever the client sent, then close without answering."""

    def handle(self):
        self.request.settimeout(2)
        try:
            self.request.recv(65536)
        except OSError:
            pass


@contextmanager
def hang_up_server():
    """Yield the base URL of a local server that drops every connection."""
    server = socketserver.ThreadingTCPServer(("127.0.0.1", 0), _HangUpHandler)
    server.daemon_threads = True
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        host, port = server.server_address
        yield f"http://{host}:{port}"
    finally:
        server.shutdown()
        server.server_close()
