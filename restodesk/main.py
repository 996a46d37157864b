# restodesk/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from restodesk.config import settings
from restodesk.db import Base, make_engine, make_session_factory
from restodesk.middleware import RequestIdMiddleware
import restodesk.models  # noqa: F401  registers tables

from restodesk.routers import auth, admin, users, staff, inventory, menu, upload, financial, owner

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    engine = make_engine(settings.DB_URL)
    Base.metadata.create_all(bind=engine)
    app.state.session_factory = make_session_factory(engine)
    logger.info("restodesk started (env=%s)", settings.APP_ENV)
    try:
        yield
    finally:
        engine.dispose()


app = FastAPI(title="Restodesk API", version="0.1.0", lifespan=lifespan)

# Middlewares
app.add_middleware(RequestIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(admin.router)
app.include_router(users.router)
app.include_router(staff.router)
app.include_router(inventory.router)
app.include_router(menu.router)
app.include_router(upload.router)
app.include_router(financial.router)
app.include_router(owner.router)

# uploaded images are returned as /uploads/<name>
app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False), name="uploads")

@app.get("/healthz")
def healthz():
    return {"ok": True}
