from logging_config import setup_logging

# Initialize logging BEFORE anything else
setup_logging()

from logging_config import get_logger
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from middleware.request_lifecycle import RequestLifecycleMiddleware
from routes import notifications, reports
from utils.documents import DocumentDataError
from utils.realtime import broadcaster
from config import config

logger = get_logger("app")

app = FastAPI(title="TaskPulse Notifications API")

# CORS remains here as it's a global setting
app.add_middleware(
    CORSMiddleware,
    allow_origins=[config.FRONTEND_URL] if config.ENV == "production" else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Request lifecycle middleware (request ID, context vars, duration logging)
app.add_middleware(RequestLifecycleMiddleware)


@app.exception_handler(DocumentDataError)
async def document_data_error_handler(request: Request, exc: DocumentDataError):
    logger.warning(f"Document request rejected: {exc}")
    return JSONResponse(status_code=422, content={"detail": str(exc)})


# REGISTER ROUTERS
app.include_router(notifications.router)
app.include_router(reports.router)

logger.info("All routers registered, TaskPulse API ready")

@app.get("/")
async def root():
    return {"status": "online", "live_streams": broadcaster.connection_count}
