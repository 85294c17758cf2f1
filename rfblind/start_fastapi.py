from fastapi import FastAPI

from rfblind.routers.rf_router import router as rf_router
from rfblind.routers.util import router as utilrouter

app = FastAPI(
    title="rfblind API",
    description="Non-random cross validation of random forests on abundance tables",
    version="0.1.0",
)

app.include_router(utilrouter)
app.include_router(rf_router)
