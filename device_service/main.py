"""
device_service/main.py
============================================
FastAPI Application for Lab Device Booking
============================================

Entry point of the device booking service. Testers register the lab's mobile
devices, book and return them, and browse the fleet enriched with each
device's cellular network capabilities.

Architecture Overview:
---------------------
- REST API: management, info and booking endpoints under /api/v1
- Registry: SQLite-backed booking state machine (one writer, many readers)
- Enrichment: RapidAPI specs client (optional) with the bundled GSMArena CSV
  as fallback
- WebSocket: Real-time system logs streamed via /logs endpoint

Listeners:
---------
    HTTPS on `port` (when SSL_CERTFILE / SSL_KEYFILE exist)
    HTTP  on `port + 1`

Run with:
    device-service
"""

# Environment Configuration
from dotenv import load_dotenv
load_dotenv()

import asyncio
import sys
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

import uvicorn
from fastapi import FastAPI, Request, WebSocket
from fastapi.responses import JSONResponse

from device_service.Core import log_ws
from device_service.Core.config import Configuration, Settings, load_configuration, settings
from device_service.Core.errors import DeviceServiceError
from device_service.Controller.Routes import booking, info, management
from device_service.DB.session import DeviceDatabase
from device_service.Services.cache_manager import CacheManager
from device_service.Services.device_registry import DeviceRegistry, resolve_timezone
from device_service.Services.enrichment import EnrichmentResolver
from device_service.Services.gsm_dataset import GsmArenaDataset
from device_service.Services.rapid_api import RapidApiClient


def create_app(
    configuration: Optional[Configuration] = None,
    app_settings: Settings = settings,
    clock: Optional[Callable[[], datetime]] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Nothing is opened here: the database, dataset and remote client are
    created in the lifespan handler and released when it exits.

    Args:
        configuration: Deployment configuration; loaded from
            app_settings.CONFIG_PATH on startup when omitted
        app_settings: Environment settings
        clock: Booking clock override (tests)
    """

    # ============================================================
    # APPLICATION LIFESPAN MANAGEMENT
    # ============================================================
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Startup Sequence:
            1. Configure event loop for the log WebSocket manager
            2. Load the YAML configuration
            3. Open the database, create the table and register first-startup devices
            4. Load the reference dataset
            5. Create the RapidAPI client when an API key is configured

        Shutdown Sequence:
            - RapidAPI session closed
            - Database connection pool disposed
        """
        loop = asyncio.get_running_loop()
        log_ws.log_ws_manager.set_main_loop(loop)

        database = None
        remote_client = None

        try:
            conf = configuration if configuration is not None else load_configuration(app_settings.CONFIG_PATH)

            # ========================================
            # STARTUP: Device registry
            # ========================================
            database = DeviceDatabase(app_settings.DATABASE_URL)
            registry = DeviceRegistry(
                database,
                booking_timezone=resolve_timezone(app_settings.BOOKING_TIMEZONE),
                clock=clock,
            )
            registry.initialize(conf.first_startup_register_devices)
            print(f"[STARTUP] ✅ Registry ready with {registry.count()} devices")

            # ========================================
            # STARTUP: Enrichment
            # ========================================
            dataset = GsmArenaDataset.from_csv(app_settings.GSM_DATASET_CSV)

            if conf.remote_lookup_enabled:
                remote_client = RapidApiClient(
                    conf.api_key,
                    cache=CacheManager(max_size=app_settings.SPECS_CACHE_MAX_SIZE),
                    timeout=app_settings.RAPID_API_TIMEOUT_S,
                    miss_ttl=app_settings.SPECS_CACHE_MISS_TTL_S,
                )
                print("[STARTUP] ✅ RapidAPI specs lookup enabled")
            else:
                print("[STARTUP] ⚠️  No apiKey configured, using the reference dataset only")

            app.state.configuration = conf
            app.state.database = database
            app.state.registry = registry
            app.state.resolver = EnrichmentResolver(dataset, remote_client)

            print("[STARTUP] ✅ Application initialization complete")

            # Application runtime
            yield

        finally:
            # ========================================
            # SHUTDOWN: Cleanup
            # ========================================
            print("[SHUTDOWN] 🛑 Application shutdown initiated")
            if remote_client is not None:
                remote_client.close()
            if database is not None:
                database.close()
            log_ws.log_ws_manager.set_main_loop(None)

    # ============================================================
    # APPLICATION INSTANCE CREATION
    # ============================================================
    app = FastAPI(
        title=app_settings.PROJECT_NAME,
        version=app_settings.PROJECT_VERSION,
        lifespan=lifespan,
    )

    # ============================================================
    # ERROR RESPONSES
    # ============================================================
    @app.exception_handler(DeviceServiceError)
    async def device_service_error_handler(request: Request, exc: DeviceServiceError) -> JSONResponse:
        """Render service errors as {errorCode, errorName, errorInstanceId, parameters}."""
        error_instance_id = str(uuid.uuid4())

        if exc.status_code >= 500:
            log_ws.log_from_thread(
                f"[API] {exc.error_name} ({error_instance_id}) on {request.method} {request.url.path}: {exc}",
                "error",
            )

        return JSONResponse(status_code=exc.status_code, content=exc.to_dict(error_instance_id))

    # ============================================================
    # HEALTH CHECK ENDPOINT
    # ============================================================
    @app.get("/health")
    def health(request: Request):
        """
        Liveness and database reachability.

        Returns:
            {"status": "ok", "database": "ok", "devices": 10, "available": 7}
            or {"status": "degraded", "database": "unreachable"} (HTTP 503)
        """
        database: DeviceDatabase = request.app.state.database
        registry: DeviceRegistry = request.app.state.registry

        if not database.ping():
            return JSONResponse(status_code=503, content={"status": "degraded", "database": "unreachable"})

        return {
            "status": "ok",
            "database": "ok",
            "devices": registry.count(),
            "available": registry.count(only_available=True),
        }

    # ============================================================
    # API INFORMATION ENDPOINT
    # ============================================================
    @app.get("/api")
    def api_info(request: Request):
        """
        Service information: version, enabled features and endpoint groups.
        """
        resolver: EnrichmentResolver = request.app.state.resolver

        return {
            "status": "online",
            "version": app_settings.PROJECT_VERSION,
            "features": {
                "remote_specs_lookup": resolver.remote_client is not None,
                "reference_dataset_devices": len(resolver.dataset),
                "websockets": ["/logs"],
            },
            "endpoints": {
                "management": "/api/v1/management/*",
                "info": "/api/v1/info/*",
                "booking": "/api/v1/booking/*",
                "logs": "/logs (WebSocket)",
                "health": "/health",
            },
        }

    # ============================================================
    # REST API ROUTE REGISTRATION
    # ============================================================
    app.include_router(management.router, prefix="/api/v1/management", tags=["management"])
    app.include_router(info.router, prefix="/api/v1/info", tags=["info"])
    app.include_router(booking.router, prefix="/api/v1/booking", tags=["booking"])

    # ============================================================
    # WEBSOCKET ENDPOINTS
    # ============================================================
    @app.websocket("/logs")
    async def websocket_logs(ws: WebSocket):
        """
        Stream system logs.

        Message Format:
            {
                "msg_type": "log" | "error" | "warning",
                "message": "[REGISTRY] Device 3 booked by Andrej",
                "timestamp": "2025-12-01T10:30:00+00:00"
            }
        """
        await socket_handler(ws, log_ws.log_ws_manager)

    return app


async def socket_handler(ws: WebSocket, manager):
    """
    Register the connection, keep reading until it closes, then unregister.
    """
    await manager.register(ws)

    try:
        while True:
            message = await ws.receive_text()
            await manager.handle_message(ws, message)
    except Exception as e:
        print(f"[WS] Connection closed: {e}")
    finally:
        manager.unregister(ws)


# ============================================================
# APPLICATION INSTANCE
# ============================================================
app = create_app()


# ============================================================
# LAUNCHER
# ============================================================
def serve():
    """
    Console entry point: HTTPS on `port`, plain HTTP on `port + 1`.

    The HTTPS server runs the application lifespan; the HTTP server shares
    the same app and is started once the HTTPS one is up. Without
    certificates only the HTTP server runs and owns the lifespan.
    """
    conf = load_configuration(settings.CONFIG_PATH)
    application = create_app(configuration=conf)

    certfile = Path(settings.SSL_CERTFILE)
    keyfile = Path(settings.SSL_KEYFILE)

    if not (certfile.is_file() and keyfile.is_file()):
        print(f"[STARTUP] ⚠️  TLS material not found ({certfile}, {keyfile}), serving HTTP only")
        http_server = uvicorn.Server(uvicorn.Config(application, host=conf.host, port=conf.http_port))
        http_server.run()
        if not http_server.started:
            print("[STARTUP] ❌ Server failed to start")
            sys.exit(1)
        return

    https_server = uvicorn.Server(uvicorn.Config(
        application,
        host=conf.host,
        port=conf.port,
        ssl_certfile=str(certfile),
        ssl_keyfile=str(keyfile),
    ))
    http_server = uvicorn.Server(uvicorn.Config(
        application,
        host=conf.host,
        port=conf.http_port,
        lifespan="off",
    ))

    if not asyncio.run(_run_servers(https_server, http_server)):
        print("[STARTUP] ❌ Server failed to start")
        sys.exit(1)


async def _run_servers(primary: uvicorn.Server, secondary: uvicorn.Server) -> bool:
    """
    Start `secondary` once `primary` has started; stop both when either stops.

    Returns:
        False if `primary` never started (uvicorn reports lifespan failures
        by returning from serve() instead of raising)
    """
    primary_task = asyncio.create_task(primary.serve())

    while not primary.started:
        if primary_task.done():
            await primary_task
            return primary.started
        await asyncio.sleep(0.1)

    secondary_task = asyncio.create_task(secondary.serve())

    await asyncio.wait({primary_task, secondary_task}, return_when=asyncio.FIRST_COMPLETED)
    primary.should_exit = True
    secondary.should_exit = True
    await asyncio.gather(primary_task, secondary_task)
    return True


if __name__ == "__main__":
    serve()
