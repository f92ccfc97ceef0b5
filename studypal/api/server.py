"""
FastAPI server for StudyPal. Build with create_app(studypal_app); serve with run_api_server(studypal_app).
Central endpoints: GET /health, GET /api/features. Per-feature routes are mounted
from studypal.features.<package>.api (get_router(studypal_app)) under /api/<package>/.
Docs: http://<host>:<port>/docs
"""
import importlib
import logging
import pkgutil
from typing import Any, Dict, List

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

logger = logging.getLogger(__name__)


def _discover_feature_routers(app: FastAPI, studypal_app: Any) -> List[str]:
    """Include every feature router; a feature that fails to load is logged and skipped."""
    mounted = []
    features_pkg = importlib.import_module("studypal.features")
    for _mod, name, is_pkg in pkgutil.iter_modules(features_pkg.__path__):
        if not is_pkg:
            continue
        try:
            api_module = importlib.import_module(f"studypal.features.{name}.api")
        except ModuleNotFoundError as e:
            if e.name == f"studypal.features.{name}.api":
                continue
            logger.warning(f"Failed to import API for feature {name}: {e}", exc_info=True)
            continue
        if not hasattr(api_module, "get_router") or not callable(api_module.get_router):
            continue
        try:
            router = api_module.get_router(studypal_app)
            if router is not None:
                app.include_router(router, prefix=f"/api/{name}")
                mounted.append(name)
                logger.debug(f"Mounted feature router: /api/{name}")
        except Exception as e:
            logger.warning(f"Failed to mount API router for feature {name}: {e}", exc_info=True)
    return mounted


def create_app(studypal_app: Any) -> FastAPI:
    """Create FastAPI app with routes that use the given StudyPalApp instance."""
    app = FastAPI(title="StudyPal API", description="Check-ins, assignments, little wins and progress")

    origins = studypal_app.config.get("api", "cors_origins", []) or []
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.get("/health")
    def health() -> Dict[str, bool]:
        return {"ok": True}

    mounted = _discover_feature_routers(app, studypal_app)
    logger.info(f"Mounted features: {', '.join(mounted) or '(none)'}")

    @app.get("/api/features")
    def list_features() -> List[str]:
        """Names of the mounted feature routers."""
        return list(mounted)

    return app


def run_api_server(studypal_app: Any) -> None:
    """
    Serve the API with uvicorn (blocking).
    Reads api.host (default 127.0.0.1) and api.port (default 8765) from config.
    """
    import uvicorn

    host = studypal_app.config.get("api", "host", "127.0.0.1")
    port = int(studypal_app.config.get("api", "port", 8765))
    fastapi_app = create_app(studypal_app)
    logger.info(f"API server listening at http://{host}:{port} (docs at /docs)")
    uvicorn.run(fastapi_app, host=host, port=port, log_config=None)
