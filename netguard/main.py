from contextlib import asynccontextmanager
import asyncio
import logging

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from netguard.api.router import api_router
from netguard.core.config import Settings, get_settings
from netguard.core.logging_config import configure_logging
from netguard.ml.features import FeatureVectorError
from netguard.observability.metrics import PrometheusMiddleware, metrics_response
from netguard.services.background_jobs import realtime_push_loop, resource_sampling_loop
from netguard.services.state import build_services

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level)
        services = build_services(settings)
        app.state.services = services
        services.hub.bind(asyncio.get_running_loop())
        unsubscribe = services.monitor.on_security_event(services.hub.publish_event)
        services.start()

        tasks = [asyncio.create_task(realtime_push_loop(services))]
        if settings.resource_sampling_enabled:
            tasks.append(asyncio.create_task(resource_sampling_loop(services)))
        logger.info("%s started (%s)", settings.app_name, settings.app_env)
        yield
        for task in tasks:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        unsubscribe()
        services.hub.bind(None)
        services.stop()

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.include_router(api_router)
    if settings.metrics_enabled:
        app.add_middleware(PrometheusMiddleware)

    @app.get("/health")
    def health():
        services = app.state.services
        return {
            "status": "ok",
            "service": settings.app_name,
            "monitor_running": services.monitor.running,
            "model_trained": services.engine.trained,
        }

    @app.get("/metrics", include_in_schema=False)
    def metrics():
        return metrics_response()

    @app.websocket("/ws/events")
    async def events_socket(websocket: WebSocket):
        hub = app.state.services.hub
        await hub.connect(websocket)
        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            await hub.disconnect(websocket)

    @app.exception_handler(FeatureVectorError)
    async def feature_vector_handler(_, exc: FeatureVectorError):
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    return app


app = create_app()
