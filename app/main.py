from fastapi import FastAPI
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from app.api.channels import router as channels_router
from app.api.token import router as token_router
from app.api.webhooks import router as webhooks_router
from app.api.zendesk import legacy_router as zendesk_legacy_router
from app.api.zendesk import router as zendesk_router
from app.errors import register_error_handlers
from app.logging import configure_logging
from app.observability import ObservabilityMiddleware
from app.telemetry import setup_otel

app = FastAPI(title="Marketplace Support API")

configure_logging()
setup_otel(app)
app.add_middleware(ObservabilityMiddleware)
register_error_handlers(app)

app.include_router(token_router, prefix="/api")
app.include_router(channels_router, prefix="/api")
app.include_router(zendesk_router, prefix="/api")
app.include_router(zendesk_legacy_router, prefix="/api")
app.include_router(webhooks_router, prefix="/api")


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.head("/health")
def head_health():
    return Response(status_code=200)


@app.get("/metrics")
def metrics():
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
