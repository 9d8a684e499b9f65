import logging

from fastapi import FastAPI

from workbench.api.endpoints import router as endpoints_router
from workbench.config import get_settings

logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Data Cleaning Workbench")
app.include_router(endpoints_router)
