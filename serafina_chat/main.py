import logging

from fastapi import FastAPI

from serafina_chat.api.routes import router
from serafina_chat.core.settings import SETTINGS

logging.basicConfig(
    level=SETTINGS.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Serafina Chat Gateway", version="v1")
app.include_router(router)
