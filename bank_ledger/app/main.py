import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from .api.exceptions import register_exception_handlers
from .api.routes import router as accounts_router
from .core import db
from .core.config import Settings, get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    db.init_db()
    logger.info("ledger.started", extra={"dialect": db.engine.dialect.name})
    yield
    db.engine.dispose()


def create_app(settings: Settings) -> FastAPI:
    logging.basicConfig(level=settings.log_level)

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.include_router(accounts_router)
    register_exception_handlers(app)

    @app.get("/health")
    def read_health(session: Session = Depends(db.get_session)) -> JSONResponse:
        """Report whether the database answers a trivial query."""
        try:
            session.exec(text("SELECT 1"))
        except SQLAlchemyError as exc:
            logger.error("health.database_unavailable", extra={"error": str(exc)})
            return JSONResponse(
                status_code=503, content={"status": "error", "database": "unavailable"}
            )
        return JSONResponse(content={"status": "ok", "database": db.engine.dialect.name})

    return app


app = create_app(get_settings())
