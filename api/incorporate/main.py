import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from .config import LOG_LEVEL
from .db import init_db
from .errors import IncorporateError
from .routers import cap_table, chat, company, documents, founders, investors, notifications, session, signatures, tasks, voice
from .services import build_services

logger = logging.getLogger(__name__)

app = FastAPI(title="incorporate.run API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def on_startup():
    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    init_db()
    if getattr(app.state, "services", None) is None:
        app.state.services = build_services()
    logger.info("Service capabilities: %s", app.state.services.capabilities())


@app.exception_handler(IncorporateError)
def handle_domain_error(request: Request, exc: IncorporateError):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(HTTPException)
def handle_http_error(request: Request, exc: HTTPException):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.detail}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
def handle_request_validation(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"{location}: {first.get('msg')}" if location else first.get("msg", "Invalid request")
    return JSONResponse(status_code=400, content={"message": message})


@app.exception_handler(Exception)
def handle_unexpected(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": str(exc) or "Internal server error"})


app.include_router(session.router, prefix="/api/auth", tags=["auth"])
app.include_router(company.router, prefix="/api/company", tags=["company"])
app.include_router(founders.router, prefix="/api/founders", tags=["founders"])
app.include_router(investors.router, prefix="/api/investors", tags=["investors"])
app.include_router(documents.router, prefix="/api/documents", tags=["documents"])
app.include_router(signatures.router, prefix="/api/signatures", tags=["signatures"])
app.include_router(tasks.router, prefix="/api/tasks", tags=["tasks"])
app.include_router(cap_table.router, prefix="/api/cap-table", tags=["cap-table"])
app.include_router(chat.router, prefix="/api/chat", tags=["chat"])
app.include_router(voice.router, prefix="/api/voice", tags=["voice"])
app.include_router(notifications.router, prefix="/api/notifications", tags=["notifications"])


@app.get("/api/health-check")
def health_check():
    return {"ok": True, "service": "incorporate-api", "capabilities": app.state.services.capabilities()}
