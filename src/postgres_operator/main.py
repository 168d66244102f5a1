"""Main entry point for the Postgres Operator.

Run with ``kopf run -m postgres_operator.main --all-namespaces``.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

import kopf
from werkzeug.serving import make_server

from . import handlers  # noqa: F401
from . import health
from . import logging as structured_logging
from .config import OperatorConfig
from .controller import ControllerManager, ReconcileQueue, get_manager, set_manager
from .handlers.postgres import PostgresHandler
from .services.store import KubeStore
from .tracing import initialize_tracing
from .utils.rate_limit import configure_k8s_rate_limit

logger = logging.getLogger(__name__)


def build_manager(config: OperatorConfig, store: Any = None) -> ControllerManager:
    """Wire the store, reconcile engine and work queue together."""
    handler = PostgresHandler(store if store is not None else KubeStore(), config)
    queue: ReconcileQueue = ReconcileQueue(
        base_delay=config.backoff_base_seconds,
        max_delay=config.backoff_max_seconds,
        jitter=config.backoff_jitter,
    )
    return ControllerManager(handler, queue=queue, worker_count=config.worker_count)


@kopf.on.startup()
def configure(settings: kopf.OperatorSettings, **_: Any) -> None:
    """Configure the operator and start the reconcile workers."""
    structured_logging.setup_structured_logging()
    config = OperatorConfig.from_env()

    settings.networking.request_timeout = 30.0
    settings.execution.max_workers = 4

    configure_k8s_rate_limit(config.k8s_rate_limit_per_second)
    initialize_tracing()

    manager = build_manager(config)
    set_manager(manager)
    manager.start()

    # Start metrics HTTP server with health check endpoints
    combined_app = health.create_combined_wsgi_app(manager.healthy)
    server = make_server("", config.metrics_port, combined_app, threaded=True)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    logger.info(f"Metrics and health endpoints listening on port {config.metrics_port}")


@kopf.on.cleanup()
def shutdown(**_: Any) -> None:
    """Stop the reconcile workers; in-flight passes abort between steps."""
    try:
        manager = get_manager()
    except RuntimeError:
        return
    manager.stop()
    set_manager(None)
