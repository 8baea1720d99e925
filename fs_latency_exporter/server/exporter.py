import threading
from typing import Optional
from wsgiref.simple_server import WSGIServer, make_server

from prometheus_client.exposition import ThreadingWSGIServer, _get_best_family, _SilentHandler

from fs_latency_exporter.core.errors import ConfigurationError
from fs_latency_exporter.core.interfaces import ListenAddress
from fs_latency_exporter.core.metrics import MetricsRegistry
from fs_latency_exporter.utils.observability import Observability

METRICS_PATH = "/metrics"

class MetricsExporter:
    """Serves GET /metrics from a MetricsRegistry on a background thread."""

    def __init__(self, registry: MetricsRegistry, address: ListenAddress):
        self.registry = registry
        self.address = address
        self._server: Optional[WSGIServer] = None
        self._thread: Optional[threading.Thread] = None

    def app(self, environ, start_response):
        path = environ.get("PATH_INFO", "")
        method = environ.get("REQUEST_METHOD", "GET")

        if path != METRICS_PATH:
            start_response("404 Not Found", [("Content-Type", "text/plain; charset=utf-8")])
            return [b"Not Found\n"]
        if method not in ("GET", "HEAD"):
            start_response("405 Method Not Allowed", [
                ("Content-Type", "text/plain; charset=utf-8"),
                ("Allow", "GET, HEAD")
            ])
            return [b"Method Not Allowed\n"]

        body = self.registry.render().encode("utf-8")
        start_response("200 OK", [
            ("Content-Type", self.registry.content_type),
            ("Content-Length", str(len(body)))
        ])
        return [b""] if method == "HEAD" else [body]

    @property
    def port(self) -> int:
        if self._server is None:
            return self.address.port
        return self._server.server_address[1]

    @property
    def url(self) -> str:
        address = ListenAddress(host=self.address.host, port=self.port)
        return f"http://{address}{METRICS_PATH}"

    def start(self) -> None:
        class Server(ThreadingWSGIServer):
            """Per-exporter subclass so address_family is not set globally"""

        try:
            Server.address_family, host = _get_best_family(self.address.host, self.address.port)
            self._server = make_server(
                host,
                self.address.port,
                self.app,
                server_class=Server,
                handler_class=_SilentHandler
            )
        except OSError as e:
            raise ConfigurationError(f"Can't listen on {self.address}: {e.strerror or e}") from e

        self._thread = threading.Thread(
            target=self._server.serve_forever,
            name="metrics-exporter",
            daemon=True
        )
        self._thread.start()
        Observability.track_event("Exporter Started", {"address": str(self.address), "port": self.port})

    def stop(self) -> None:
        if self._server is None:
            return
        self._server.shutdown()
        self._server.server_close()
        self._thread.join()
        self._server = None
        self._thread = None
        Observability.track_event("Exporter Stopped", {"address": str(self.address)})
