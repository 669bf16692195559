import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from .config import Settings
from .database import Base, engine
from .logging_config import setup_logging
from .mailer import Mailer
from .payment_gateway import RazorpayGateway
# every mapped model must be imported before create_all / the first query
from . import campaign_models, comment_models, complaint_models, donation_models, user_models  # noqa: F401
from .admin_routes import router as admin_router
from .auth_routes import router as auth_router
from .campaign_routes import router as campaign_router
from .comment_routes import router as comment_router
from .complaint_routes import router as complaint_router
from .donation_routes import router as donation_router
from .notification_routes import router as notification_router

logger = logging.getLogger(__name__)


def _validation_errors(exc: RequestValidationError):
    errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append({"field": ".".join(loc), "message": err.get("msg", "")})
    return errors


def create_app(settings: Settings = None, gateway=None, mailer=None) -> FastAPI:
    """Build the API. Pre-built ``gateway``/``mailer`` are used as-is and left open."""
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings.log_level)
        Base.metadata.create_all(bind=engine)
        owned = []
        if getattr(app.state, "gateway", None) is None:
            app.state.gateway = RazorpayGateway.from_settings(settings)
            owned.append(app.state.gateway)
        if getattr(app.state, "mailer", None) is None:
            app.state.mailer = Mailer.from_settings(settings)
            owned.append(app.state.mailer)
        logger.info(f"CrowdFundIn API starting ({settings.environment})")
        yield
        for client in owned:
            await client.aclose()

    app = FastAPI(title="CrowdFundIn API", lifespan=lifespan)
    app.state.settings = settings
    app.state.gateway = gateway
    app.state.mailer = mailer

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"detail": "Validation errors", "errors": _validation_errors(exc)},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    @app.get("/api/health")
    def health():
        return {
            "status": "OK",
            "environment": settings.environment,
            "payments_configured": settings.payments_configured,
            "mail_configured": settings.mail_configured,
        }

    app.include_router(auth_router)
    app.include_router(campaign_router)
    app.include_router(donation_router)
    app.include_router(comment_router)
    app.include_router(complaint_router)
    app.include_router(notification_router)
    app.include_router(admin_router)
    return app


app = create_app()


if __name__ == '__main__':
    import uvicorn
    uvicorn.run("crowdfund.main:app", host="0.0.0.0", port=8000, reload=True)
