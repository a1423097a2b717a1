import logging
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
from pulse_chat_app.core.config.settings import settings
from pulse_chat_app.db import lifespan
from pulse_chat_app.core.exceptions_handler.http_exception_handler import (
    http_exception_handler, validation_exception_handler,
)
from pulse_chat_app.core.exceptions_handler.global_exception_handler import global_exception_handler
from pulse_chat_app.users.routers.auth_routers import router as auth_router
from pulse_chat_app.chating.routers.chat_routers import router as chat_router
from pulse_chat_app.chating.routers.socket_routers import router as socket_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

app = FastAPI(
    title="Pulse Chat API",
    description="Real-time messaging with FastAPI, Beanie and WebSockets",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
def read_root():
    return {"message": "Chat Server is running!"}


app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)


app.include_router(auth_router, prefix="/api")
app.include_router(chat_router, prefix="/api")
app.include_router(socket_router)
