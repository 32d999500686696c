"""
Control API.

Every response is HTTP 200 with a JSON envelope ``{status, body, errors?}``;
the logical outcome lives in ``status``.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, generate_latest
from pydantic import BaseModel, ValidationError

from peerlink.bootstrap.commands import TrustedPeerCommandBuilder
from peerlink.bootstrap.executor import KubectlExecutor
from peerlink.config import Settings, get_settings
from peerlink.core.topology import Topology
from peerlink.errors import InvalidInputError, NodeNotFoundError, PeerlinkError
from peerlink.logging import get_logger
from peerlink.observability.publisher import ObservabilityPublisher
from peerlink.observability.scheduler import PeriodicScheduler
from peerlink.observability.sources import ConsensusBlockSource
from peerlink.orchestrator import ConfigurationOrchestrator, ResultStatus
from peerlink.registry import RegistryClient
from peerlink.wiring import KubectlEnvWiring

log = get_logger(__name__)

POD_NOT_IN_CONFIG = "Pod doesn't exists in the config"


class ConfigureRequest(BaseModel):
    pod_name: str


def envelope(status: int, body: Any = None, errors: Any = None) -> JSONResponse:
    content: dict[str, Any] = {"status": status, "body": body}
    if errors is not None:
        content["errors"] = errors
    return JSONResponse(content, status_code=200)


def error_envelope(error: PeerlinkError, body: Any = None) -> JSONResponse:
    return envelope(error.status, body, error.message)


def create_app(
    settings: Settings | None = None,
    *,
    topology: Topology | None = None,
    registry: RegistryClient | None = None,
    orchestrator: ConfigurationOrchestrator | None = None,
    metrics_registry: CollectorRegistry | None = None,
    publisher: ObservabilityPublisher | None = None,
) -> FastAPI:
    """
    Build the app; collaborators not passed in are built from ``settings``.

    An injected ``publisher`` brings its own metrics registry, which
    ``/metrics`` then exports; ``metrics_registry`` may only be passed along
    with it when it is that same registry.
    """
    settings = settings or get_settings()
    if topology is None:
        topology = Topology.load(settings.topology_path)
    owns_registry = registry is None
    if registry is None:
        registry = RegistryClient.from_url(settings.redis_url, settings.registry_timeout)
    if orchestrator is None:
        orchestrator = ConfigurationOrchestrator(
            topology,
            KubectlEnvWiring(settings.kubectl, settings.command_timeout),
            KubectlExecutor(settings.kubectl, settings.command_timeout),
            TrustedPeerCommandBuilder(),
            registry=registry,
            command_timeout=settings.command_timeout,
        )
    block_source = None
    if publisher is None:
        if metrics_registry is None:
            metrics_registry = CollectorRegistry()
        block_source = ConsensusBlockSource(port=settings.consensus_rpc_port)
        publisher = ObservabilityPublisher(metrics_registry, topology, registry, block_source)
    elif metrics_registry is None:
        metrics_registry = publisher.metrics_registry
    elif metrics_registry is not publisher.metrics_registry:
        raise ValueError("metrics_registry must be the registry the publisher registers on")
    scheduler = PeriodicScheduler(publisher.observe, settings.metrics_interval, name="publisher")

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        publisher.register()
        if settings.metrics_enabled:
            scheduler.start()
        try:
            yield
        finally:
            await scheduler.stop()
            publisher.unregister()
            if block_source is not None:
                await block_source.aclose()
            if owns_registry:
                await registry.aclose()

    app = FastAPI(title="peerlink", lifespan=lifespan)
    app.state.settings = settings
    app.state.topology = topology
    app.state.registry = registry
    app.state.orchestrator = orchestrator
    app.state.metrics_registry = metrics_registry
    app.state.publisher = publisher

    @app.middleware("http")
    async def log_request(request: Request, call_next: Any) -> Response:
        log.info("request", method=request.method, path=request.url.path)
        return await call_next(request)

    @app.get("/config")
    async def get_config() -> JSONResponse:
        return envelope(200, topology.to_dict())

    @app.get("/list")
    async def list_nodes() -> JSONResponse:
        try:
            nodes = await registry.get_all()
        except PeerlinkError as e:
            log.error("list_failed", error=e.message)
            return error_envelope(e)
        return envelope(200, nodes)

    @app.get("/nodes/{node_name}")
    async def get_node(node_name: str) -> JSONResponse:
        found, _ = topology.validate_node(node_name)
        if not found:
            log.error("node_not_in_topology", node=node_name)
            return error_envelope(NodeNotFoundError(POD_NOT_IN_CONFIG), node_name)

        try:
            address = await registry.get(node_name)
        except PeerlinkError as e:
            log.error("node_lookup_failed", node=node_name, error=e.message)
            return error_envelope(e)

        if not address:
            return error_envelope(NodeNotFoundError(f"[ERROR] Node [{node_name}] not found"), "")
        return envelope(200, address)

    @app.post("/configure")
    async def configure(request: Request) -> JSONResponse:
        raw = await request.body()
        try:
            body = ConfigureRequest.model_validate_json(raw or b"{}")
        except ValidationError as e:
            log.error("invalid_configure_body", error=str(e))
            return error_envelope(InvalidInputError(f"Invalid request body: {e.errors(include_url=False)}"))
        if not body.pod_name:
            return error_envelope(InvalidInputError("pod_name must not be empty"), body.pod_name)

        log.info("pod_to_setup", node=body.pod_name)
        result = await orchestrator.configure(body.pod_name)
        if result.status == ResultStatus.OK:
            return envelope(200, result.detail)
        if result.status == ResultStatus.NOT_FOUND:
            return envelope(404, body.pod_name, result.detail)
        return envelope(500, result.node_name, result.detail)

    @app.get("/metrics")
    async def metrics() -> Response:
        return Response(generate_latest(metrics_registry), media_type=CONTENT_TYPE_LATEST)

    return app
