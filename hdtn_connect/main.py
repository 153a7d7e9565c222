import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from hdtn_connect.config.settings import settings
from hdtn_connect.database.supabase_client import SupabaseClient, get_supabase
from hdtn_connect.modules.assistant import routes as assistant_routes
from hdtn_connect.modules.assistant.service import AssistantService
from hdtn_connect.modules.auth import routes as auth_routes
from hdtn_connect.modules.auth.service import SessionController
from hdtn_connect.modules.profiles import routes as profiles_routes
from hdtn_connect.modules.setup import routes as setup_routes

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    redirect_slashes=False,
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception: %s", exc)
    if settings.is_production:
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})
    return JSONResponse(status_code=500, content={"detail": str(exc)})


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include module routes
app.include_router(auth_routes.router, prefix="/api/v1")
app.include_router(profiles_routes.router, prefix="/api/v1")
app.include_router(setup_routes.router, prefix="/api/v1")
app.include_router(assistant_routes.router, prefix="/api/v1")


@app.on_event("startup")
async def startup_event():
    logger.info("Application startup")
    supabase = await get_supabase()
    app.state.supabase = supabase
    app.state.session_controller = SessionController(supabase)
    await app.state.session_controller.start()
    app.state.assistant_service = AssistantService(settings.gemini_api_key, settings.gemini_chat_model)
    if not settings.is_assistant_configured:
        logger.warning("Gemini API key is not set. AI features will be disabled.")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Application shutdown")
    app.state.session_controller.close()
    await app.state.session_controller.settle()
    await app.state.assistant_service.aclose()
    SupabaseClient.reset_client()


@app.get("/")
async def root():
    return {"message": "Welcome to hdtn-connect", "status": "healthy"}


@app.get("/health")
@limiter.exempt
async def health():
    return {"status": "healthy"}


@app.get("/ready")
@limiter.exempt
async def ready():
    """Readiness: the session controller has resolved its initial session."""
    controller = getattr(app.state, "session_controller", None)
    if controller is None or controller.state.loading:
        return JSONResponse(status_code=503, content={"status": "starting"})
    return {"status": "ready", "supabase_configured": controller.is_configured}
