import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

import config
from database import init_db, shutdown_db
from routes import auth, me, posts, comments, users, explore
from utils.logger import setup_api_logger

# setup file logger for API failures
api_logger = setup_api_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    api_logger.info("Database ready at %s", config.DATABASE_URL)
    yield
    shutdown_db()


app = FastAPI(title="Social Feed API (Users, Posts, Likes, Comments, Follows, Saves)", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(Exception)
async def generic_exception_handler(request, exc):
    # log request info and stacktrace, never echo internals to the client
    tb = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    api_logger.error("Unhandled exception on %s %s | error=%s\n%s",
                     request.method, request.url.path, str(exc), tb)
    return JSONResponse(status_code=500, content={"error": "Internal Server Error"})


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request, exc: StarletteHTTPException):
    api_logger.warning("HTTPException on %s %s | status=%s | detail=%s",
                       request.method, request.url.path, exc.status_code, str(exc.detail))
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail}, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
        message = f"{field}: {first.get('msg')}" if field else str(first.get("msg"))
    else:
        message = "Invalid request"
    api_logger.warning("Invalid request on %s %s | %s", request.method, request.url.path, message)
    return JSONResponse(status_code=400, content={"error": message})


@app.get("/api/health", tags=["Health"])
def health_check():
    return {"status": "ok"}


app.include_router(auth.router)
app.include_router(me.router)
app.include_router(posts.router)
app.include_router(comments.router)
app.include_router(users.router)
app.include_router(explore.router)

# Uploaded media; the directory is created by init_db at startup
app.mount(config.UPLOAD_URL_PREFIX, StaticFiles(directory=config.UPLOAD_DIR, check_dir=False), name="uploads")
