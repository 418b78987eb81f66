# main.py
from fastapi_limiter import FastAPILimiter
import routes
from contextlib import asynccontextmanager
from util.enums import Environment, Color
from fastapi import FastAPI, Request, status
from starlette.middleware.cors import CORSMiddleware
from config.settings import settings
from config.cache import close_redis, get_redis
from fastapi.responses import JSONResponse, PlainTextResponse
from repository.blob_store import BlobStore
from repository.reload_channel import ReloadChannel
from service.live_config_writer import LiveConfigWriter
from service.virtual_file_server import VirtualFileServer
from util.errors import HomaError
from util.logger import init_logger

PREVIEW_ROOT = "/" + settings.PREVIEW_PREFIX.strip("/")


async def _real_ip(request: Request) -> str:
    if settings.TRUST_PROXY:
        fwd = request.headers.get("x-forwarded-for")
        if fwd:
            return fwd.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


@asynccontextmanager
async def lifespan(fastApi: FastAPI):
    try:
        init_logger()
        print(f"{Color.GREEN}Initializing...{Color.RESET}")
        redis = await get_redis()
        await FastAPILimiter.init(redis, identifier=_real_ip)
        fastApi.state.live_writer = LiveConfigWriter(BlobStore(), ReloadChannel())
        VirtualFileServer(BlobStore()).install(fastApi)
        print(f"{Color.BLUE}Server Started{Color.RESET}")
    except Exception as e:
        print("Failed to connect to Redis:", e)
        raise

    try:
        yield
    finally:
        try:
            await fastApi.state.live_writer.close()
            await close_redis()
        except Exception as e:
            print("Error closing Redis:", e)

        print(f"{Color.RED}Server Shutdown{Color.RESET}")


app: FastAPI = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.ALLOWED_ORIGIN],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Authorization", "Content-Type", "Accept"],
    expose_headers=["Content-Disposition", "X-Export-Size", "X-Export-Network"],
)


@app.middleware("http")
async def preview_interceptor(request: Request, call_next):
    # Everything under the preview prefix belongs to the virtual file server.
    path = request.url.path
    if path == PREVIEW_ROOT or path.startswith(PREVIEW_ROOT + "/"):
        server = getattr(request.app.state, "file_server", None)
        if server is None or not server.active:
            return PlainTextResponse(
                "Preview server not active",
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            )
        return await server.handle(path)
    return await call_next(request)


@app.get("/healthz")
async def healthz():
    return {"ok": True}


@app.exception_handler(HomaError)
async def homa_error_handler(request: Request, exc: HomaError):
    return JSONResponse(status_code=exc.http_status, content=exc.to_payload())


@app.exception_handler(429)
async def ratelimit_handler(request: Request, exc):
    return JSONResponse(
        status_code=429,
        content={
            "ok": False,
            "error": "rate_limited",
            "message": "Too many requests. Try again in 60s.",
        },
        headers={"Retry-After": "60"},
    )


routes.register_routes(app)

if __name__ == "__main__":
    import uvicorn

    reload = settings.APP_ENV == Environment.DEV
    uvicorn.run("main:app", host="127.0.0.1", port=8000, reload=reload)
