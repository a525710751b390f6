from __future__ import annotations

import logging
import os

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from plantstock.core.audit_middleware import audit_http_middleware
from plantstock.core.envelope import fail
from plantstock.db.base import Base
from plantstock.db.session import engine, SessionLocal

# Register models
from plantstock.db import models  # noqa: F401
from plantstock.db.seed import run_seed

from services.auth.api import router as auth_router
from services.materials.api import router as materials_router
from services.machines.api import router as machines_router
from services.workorders.api import router as workorders_router
from services.movements.api import router as movements_router
from services.suppliers.api import router as suppliers_router
from services.dashboard.api import router as dashboard_router
from services.reports.api import router as reports_router
from services.admin.users_api import router as admin_users_router
from services.admin.settings_api import router as admin_settings_router
from services.admin.system_api import router as admin_system_router

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("plantstock")

app = FastAPI(title="Plantstock manufacturing inventory")
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=CORS_ORIGINS != ["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.middleware("http")
async def _audit(request, call_next):
    return await audit_http_middleware(request, call_next)


@app.exception_handler(StarletteHTTPException)
async def _http_error(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404 and exc.detail == "Not Found":
        # no route matched
        return fail(404, "API not found")
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    response = fail(exc.status_code, detail)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(RequestValidationError)
async def _validation_error(request: Request, exc: RequestValidationError):
    problems = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        problems.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return fail(400, "Validation failed", "; ".join(problems))


@app.exception_handler(Exception)
async def _server_error(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return fail(500, "Server internal error")


@app.on_event("startup")
async def _startup():
    # Dev-friendly schema creation (migrations are available for real upgrades)
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as db:
        run_seed(db)


app.include_router(auth_router)
app.include_router(materials_router)
app.include_router(machines_router)
app.include_router(workorders_router)
app.include_router(movements_router)
app.include_router(suppliers_router)
app.include_router(dashboard_router)
app.include_router(reports_router)
app.include_router(admin_users_router)
app.include_router(admin_settings_router)
app.include_router(admin_system_router)

@app.get("/api/health")
def health():
    return {"success": True, "message": "ok"}
