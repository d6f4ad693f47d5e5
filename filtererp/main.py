from prometheus_fastapi_instrumentator import Instrumentator

from filtererp.core.config import settings
from filtererp.core.logging import configure_logging
from . import app as base_app

configure_logging(settings.LOG_LEVEL, json_output=settings.APP_ENV != "dev")
app = base_app
instrumentator = Instrumentator()
# Middleware must be registered before the app starts serving.
instrumentator.instrument(app).expose(app)


@app.get("/health")
async def health() -> dict[str, bool]:
    return {"ok": True}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("filtererp.main:app", host=settings.HOST, port=settings.PORT)
