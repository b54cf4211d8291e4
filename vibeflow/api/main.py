from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.requests import Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from vibeflow.core.config import get_settings
from vibeflow.api.routes.auth import router as auth_router
from vibeflow.api.routes.mood import router as mood_router
from vibeflow.api.routes.spotify import router as spotify_router
from vibeflow.middleware.observability import ObservabilityMiddleware

settings = get_settings()

# Define OpenAPI tags for grouping
openapi_tags = [
    {"name": "Health", "description": "Service health and readiness."},
    {"name": "Auth", "description": "Spotify login, callback and logout."},
    {"name": "Spotify", "description": "Mood-based track search and personalized recommendations."},
    {"name": "Mood", "description": "Facial expression to mood resolution."},
]

app = FastAPI(
    title="VibeFlow API",
    description="Turns a detected mood into a Spotify track list, optionally personalized by listening history.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    openapi_tags=openapi_tags,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS if settings.CORS_ORIGINS else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

if settings.OBS_ENABLED:
    app.add_middleware(ObservabilityMiddleware)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render HTTP errors as {"error": "<message>"}."""
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render invalid query or body input as {"error": "<field>: <reason>"}."""
    message = "; ".join(
        f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg', 'invalid')}" for err in exc.errors()
    )
    return JSONResponse({"error": message or "Invalid request"}, status_code=422)


@app.get(
    "/",
    summary="Health Check",
    description="Health check endpoint for liveness probes.\n\nReturns a simple JSON indicating the service is healthy.",
    tags=["Health"],
    responses={200: {"description": "Service is healthy"}},
)
def health_check():
    """Root health endpoint.

    Returns:
    - JSON message confirming service health.
    """
    return {"message": "Healthy"}


app.include_router(auth_router)
app.include_router(spotify_router)
app.include_router(mood_router)


def run() -> None:
    """Serve the app with uvicorn using the configured host and port."""
    import uvicorn

    uvicorn.run("vibeflow.api.main:app", host=settings.API_HOST, port=settings.API_PORT)
