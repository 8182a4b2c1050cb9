from gcrauth.configuration import Configuration
import itertools
import socket
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest


@pytest.fixture(scope='function')
def config(tmp_path):
    """Generate configuration object, file in tmp path"""
    config_path = tmp_path / "config.yaml"
    conf = Configuration(config_path=str(config_path))
    yield conf


@pytest.fixture(scope='function')
def silent_server():
    """Listening socket which never answers, returns url pointing to it"""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen(1)
    yield f"http://127.0.0.1:{sock.getsockname()[1]}/computeMetadata/v1/instance/service-accounts/default/token"
    sock.close()


@pytest.fixture(scope='function')
def trickle_server():
    """Answers with headers at once, then sends the body one byte per 0.3 seconds"""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    sock.listen(1)
    stop = threading.Event()
    body = b'{"access_token":"trickling-token-value"}'

    def serve():
        try:
            conn, _ = sock.accept()
        except OSError:
            return
        with conn:
            try:
                conn.recv(4096)
                conn.sendall(b"HTTP/1.1 200 OK\r\nContent-Type: application/json\r\n"
                             b"Content-Length: %d\r\n\r\n" % len(body))
                for b in body:
                    if stop.wait(0.3):
                        break
                    conn.sendall(bytes([b]))
            except OSError:
                pass

    t = threading.Thread(target=serve, daemon=True)
    t.start()
    yield f"http://127.0.0.1:{sock.getsockname()[1]}/computeMetadata/v1/instance/service-accounts/default/token"
    stop.set()
    sock.close()
    t.join(5)


@pytest.fixture(scope='function')
def token_server():
    """Local metadata service issuing unique token for every request"""
    counter = itertools.count(1)
    lock = threading.Lock()
    issued = []

    class Handler(BaseHTTPRequestHandler):
        protocol_version = "HTTP/1.1"

        def do_GET(self):
            if self.headers.get("Metadata-Flavor") != "Google":
                self.send_response(403)
                self.send_header("Content-Length", "0")
                self.end_headers()
                return
            with lock:
                token = f"token-{next(counter)}"
                issued.append(token)
            body = f'{{"access_token":"{token}","expires_in":3599,"token_type":"Bearer"}}'.encode()
            self.send_response(200)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def log_message(self, format, *args):
            pass

    server = ThreadingHTTPServer(("127.0.0.1", 0), Handler)
    t = threading.Thread(target=server.serve_forever, daemon=True)
    t.start()
    yield f"http://127.0.0.1:{server.server_address[1]}/computeMetadata/v1/instance/service-accounts/default/token", \
        issued
    server.shutdown()
    server.server_close()
    t.join(5)
