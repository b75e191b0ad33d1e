import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from testmate.config import settings
from testmate.database import init_db
from testmate.errors import ExamError, TransientStoreError, ValidationError
from testmate.services.mailer import Mailer

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.state.mailer = Mailer(settings.mail_sender)


@app.exception_handler(ExamError)
async def exam_error_handler(request: Request, exc: ExamError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    details = [
        f"{'.'.join(str(part) for part in err['loc'][1:])}: {err['msg']}"
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=ValidationError.status_code,
        content={"error": ValidationError.default_message, "details": details},
    )


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Storage failure on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(
        status_code=TransientStoreError.status_code,
        content={"error": TransientStoreError.default_message},
    )


@app.on_event("startup")
async def startup_event():
    """Initialize database on startup"""
    init_db()
    logger.info("%s is starting, database: %s", settings.app_name, settings.database_url)


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.api_version,
        "status": "running"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy"}


# Import and include routers
from testmate.routes import auth, subjects, quizzes  # noqa: E402

app.include_router(auth.router)
app.include_router(subjects.router)
app.include_router(quizzes.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("testmate.main:app", host=settings.host, port=settings.port)
