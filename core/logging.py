"""
로깅 설정

CLI 실행마다 한 번 호출. 콘솔(stderr)과 일 단위 롤링 파일에 기록.
stdout은 명령 결과 JSON 전용이므로 로그를 쓰지 않음.

    from core.logging import setup_logging
    setup_logging("workflow")
"""

import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from core.constants import Paths


LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_BACKUP_COUNT = 7

# 요청/프레임 단위로 로그를 쏟아내는 라이브러리 (WARNING 이상만)
NOISY_LOGGERS = (
    "aiosqlite",
    "httpcore",
    "httpx",
    "websockets",
    "asyncio",
    "xrpl",
)


def get_log_file_path(process_name: str, log_dir: Path | None = None) -> Path:
    """<log_dir>/<process_name>.log"""
    return (log_dir or Paths.LOGS_DIR) / f"{process_name}.log"


def _file_handler(log_file: Path, level: int) -> TimedRotatingFileHandler:
    handler = TimedRotatingFileHandler(
        filename=log_file,
        when="midnight",
        backupCount=LOG_FILE_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.suffix = "%Y-%m-%d"
    handler.setLevel(level)
    return handler


def setup_logging(
    process_name: str,
    console_level: int = logging.INFO,
    file_level: int = logging.INFO,
    log_dir: Path | None = None,
) -> logging.Logger:
    """루트 로거 구성

    다시 호출하면 기존 핸들러를 교체 (중복 출력 없음).

    Args:
        process_name: 로그 파일 이름
        console_level: stderr 레벨
        file_level: 파일 레벨
        log_dir: 로그 디렉토리 (기본 Paths.LOGS_DIR)

    Returns:
        루트 Logger
    """
    log_file = get_log_file_path(process_name, log_dir)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(logging.DEBUG)
    for handler in (console, _file_handler(log_file, file_level)):
        handler.setFormatter(formatter)
        root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root.info(f"Logging ready: {process_name} → {log_file}")
    return root
