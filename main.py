from fastapi import FastAPI
from shared.config.database import Base, db_health, engine

# IMPORTANT: import models so they register with Base
from services.product_service import models as product_models
from services.order_service import models as order_models
from services.request_service import models as request_models
from services.payment_service import models as payment_models

from services.product_service.main import product_app
from services.order_service.main import order_app
from services.request_service.main import request_app
from services.payment_service.main import payment_app
from services.tracking_service.main import start_tracking_simulation, stop_tracking_simulation, tracking_app

app = FastAPI(title="EthioConnect")

@app.on_event("startup")
async def startup_event():
    # The API still starts without a database; routes answer 503 until it is reachable
    if await db_health.ping():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    await start_tracking_simulation()

@app.on_event("shutdown")
async def shutdown_event():
    await stop_tracking_simulation()
    await engine.dispose()

@app.get("/health")
async def health_check():
    return {"status": "OK", "message": "EthioConnect API is running", **db_health.snapshot()}

app.mount("/products", product_app)
app.mount("/orders", order_app)
app.mount("/requests", request_app)
app.mount("/payments", payment_app)
app.mount("/tracking", tracking_app)
