import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.api.deps import get_generation_engine
from app.api.v1 import attempt, quiz
from app.core.config import settings
from app.core.logging import setup_logging
from app.exceptions import BaseAppError, GenerationFailed, PersistencePartialFailure
from app.models.base import dispose_engine, get_engine

# 로깅 설정
setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """시작 시 생성 엔진(Gemini 클라이언트) 1회 생성, 종료 시 DB 커넥션 풀 정리"""
    get_generation_engine()
    logger.info(f"서버 시작: environment={settings.environment}")
    yield
    await dispose_engine()
    logger.info("서버 종료: DB 커넥션 풀 정리 완료")


app = FastAPI(
    title="Quiz Generator Backend API",
    description="주제/PDF/사진 자료로 객관식 퀴즈를 생성하고 풀이 점수를 관리하는 API",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(quiz.router, prefix="/api/v1")
app.include_router(attempt.router, prefix="/api/v1")


def create_cors_response(status_code: int, content: dict, request: Request) -> JSONResponse:
    """예외 응답에도 CORS 헤더를 붙인 JSONResponse"""
    response = JSONResponse(status_code=status_code, content=content)
    origin = request.headers.get("origin")
    if origin and origin in settings.allowed_origins_list:
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Credentials"] = "true"
        response.headers["Access-Control-Allow-Methods"] = "*"
        response.headers["Access-Control-Allow-Headers"] = "*"
    return response


def internal_error_response(request: Request, exc: Exception, public_detail: str) -> JSONResponse:
    """500 응답 (프로덕션에서는 상세 메시지 숨김)"""
    if settings.environment == "production":
        content = {"detail": public_detail}
    else:
        content = {"detail": str(exc), "type": exc.__class__.__name__}
    return create_cors_response(status.HTTP_500_INTERNAL_SERVER_ERROR, content, request)


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    """검증 오류 목록 (직렬화 불가능한 ctx 제거)"""
    return [{key: value for key, value in error.items() if key != "ctx"} for error in exc.errors()]


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """요청 검증 오류 (422)"""
    logger.warning(f"요청 검증 오류: {exc.errors()}, path={request.url.path}")
    return create_cors_response(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        {"detail": jsonable_errors(exc)},
        request,
    )


@app.exception_handler(BaseAppError)
async def app_exception_handler(request: Request, exc: BaseAppError):
    """애플리케이션 예외 -> 예외별 상태 코드"""
    log = logger.error if isinstance(exc, PersistencePartialFailure) else logger.warning
    log(
        f"Application error: {exc.__class__.__name__} - {exc.message}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "status_code": exc.status_code,
        },
    )
    content = {"detail": exc.message, "error": exc.__class__.__name__}
    if isinstance(exc, GenerationFailed):
        content["reason"] = exc.reason
        content["violations"] = exc.violations
    return create_cors_response(exc.status_code, content, request)


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError):
    """데이터베이스 예외 (500)"""
    logger.error(
        f"Database error: {exc.__class__.__name__}",
        exc_info=True,
        extra={"path": request.url.path, "method": request.method},
    )
    return internal_error_response(request, exc, "Database error occurred")


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """미처리 예외 (500)"""
    logger.error(
        f"Unhandled exception: {exc.__class__.__name__}",
        exc_info=True,
        extra={
            "path": request.url.path,
            "method": request.method,
            "query_params": dict(request.query_params),
        },
    )
    return internal_error_response(request, exc, "Internal Server Error")


@app.get("/")
async def root():
    return {"message": "Quiz Generator Backend API", "version": "0.1.0"}


@app.get("/health")
async def health_check():
    """헬스 체크"""
    return {"status": "healthy"}


@app.get("/health/db")
async def health_check_db():
    """데이터베이스 연결 상태 확인"""
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Database connection failed: {e}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unhealthy", "database": "disconnected"},
        )
    return {"status": "healthy", "database": "connected"}
