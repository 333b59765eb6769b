from contextlib import asynccontextmanager

from fastapi import FastAPI
from shared.config.database import engine, Base

# IMPORTANT: import models so they register with Base
from services.order_service import models as order_models  # noqa: F401

from services.order_service.main import order_app
from services.payment_service.main import payment_app
from services.payment_service.service import get_orchestrator


@asynccontextmanager
async def lifespan(_app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    # Let in-flight reconciliations land before the process exits
    await get_orchestrator().queue.drain()
    await engine.dispose()


app = FastAPI(title="Storefront Cluster", lifespan=lifespan)

app.mount("/orders", order_app)
app.mount("/payments", payment_app)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000)
