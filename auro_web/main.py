import logging
from pathlib import Path
from typing import List

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.templating import Jinja2Templates
import uvicorn

from auro_db.config import load_settings
from auro_db.consumer import LoadFailed, insert_then_select
from auro_db.database import Database, bootstrap, dispose_database, get_database
from auro_db.schemas import UserOut
from auro_shared import GREETING

from .schemas import LayoutData

logger = logging.getLogger(__name__)

APP_NAME = "Auro"

app = FastAPI(title=APP_NAME)

templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))
templates.env.globals["app_name"] = APP_NAME


@app.on_event("startup")
def on_startup() -> None:
    # Fails the server start when DATABASE_URL is missing, unless building.
    bootstrap()


@app.on_event("shutdown")
def on_shutdown() -> None:
    dispose_database()


def get_db() -> Database:
    """Return the process-wide database handle."""
    return get_database()


def load_layout(database: Database) -> List[UserOut]:
    """Insert the test user and read every user back for the layout page."""
    logger.info("Web says: %s", GREETING)

    result = insert_then_select(database)
    if isinstance(result, LoadFailed):
        logger.error("Layout load failed: %s", result.cause, exc_info=result.cause)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load users.",
        )
    return result.users


@app.get("/", response_class=HTMLResponse)
def layout(request: Request, database: Database = Depends(get_db)):
    users = load_layout(database)
    return templates.TemplateResponse(
        request,
        "layout.html",
        {"greeting": GREETING, "users": users},
    )


@app.get("/data", response_model=LayoutData)
def layout_data(database: Database = Depends(get_db)):
    """The layout page load as JSON."""
    return LayoutData(users=load_layout(database))


def _wants_html(request: Request) -> bool:
    return "text/html" in request.headers.get("accept", "")


def _error_response(request: Request, status_code: int, detail: str):
    if _wants_html(request):
        return templates.TemplateResponse(
            request,
            "error.html",
            {"detail": detail, "status_code": status_code},
            status_code=status_code,
        )
    return JSONResponse({"detail": detail}, status_code=status_code)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return _error_response(request, exc.status_code, exc.detail)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled application error", exc_info=exc)
    return _error_response(request, status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def main() -> None:
    settings = load_settings()
    logging.basicConfig(level=settings.log_level)
    uvicorn.run(app, host=settings.web_host, port=settings.web_port)


if __name__ == "__main__":
    main()
