# -*- coding: utf-8 -*-
import logging
import sys
from pathlib import Path

from app.core.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging():
    """로깅 설정 (프로세스 시작 시 1회)"""
    log_level = logging.DEBUG if settings.environment == "development" else logging.INFO

    root_logger = logging.getLogger()
    # 재호출 시 핸들러 중복 방지
    if getattr(root_logger, "_quiz_configured", False):
        return

    formatter = logging.Formatter(LOG_FORMAT)

    # 콘솔 핸들러
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(log_level)

    root_logger.setLevel(log_level)
    root_logger.addHandler(console_handler)

    # 파일 핸들러 (프로덕션)
    if settings.environment == "production":
        log_dir = Path("/app/logs")
        log_dir.mkdir(exist_ok=True)

        file_handler = logging.FileHandler(log_dir / "app.log", encoding="utf-8")
        file_handler.setFormatter(formatter)
        file_handler.setLevel(logging.INFO)
        root_logger.addHandler(file_handler)

    # 외부 라이브러리 로그 소음 줄이기
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("google_genai").setLevel(logging.WARNING)

    root_logger._quiz_configured = True
