"""
日志管理模块：分级日志、按启动实例命名文件、按天数/总量自动清理。

所有模块通过 get_logger(__name__) 获取 logger，消息前缀用方括号标注组件，例如
``[automation] question 3/10 answered``。
"""
import logging
import os
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

DEFAULT_LEVEL = "INFO"
DEFAULT_MAX_SIZE_MB = 50
DEFAULT_MAX_AGE_DAYS = 14
DEFAULT_MIN_KEEP_MB = 5
LOG_DIR_NAME = "app"

_FORMAT = "%(asctime)s.%(msecs)03d | %(levelname)s | %(name)s | %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


class LogManager:
    """
    控制台 + 文件双输出；文件名取进程启动时间，同一进程内所有 logger 共用一个文件。
    设置 ``GENFUZE_LOG_LEVEL`` 环境变量可临时覆盖配置里的 level；
    ``file_output: false`` 时只输出到控制台（测试环境用）。
    """

    def __init__(self, config: dict[str, Any] | None = None):
        config = config or {}
        base = Path(__file__).resolve().parent.parent.parent
        self.log_dir = Path(config["log_dir"]) if config.get("log_dir") else base / "logs" / LOG_DIR_NAME

        self.max_size_mb = int(config.get("max_size_mb", DEFAULT_MAX_SIZE_MB))
        self.max_age_days = int(config.get("max_age_days", DEFAULT_MAX_AGE_DAYS))
        self.min_keep_mb = int(config.get("min_keep_mb", DEFAULT_MIN_KEEP_MB))
        self.console_output = bool(config.get("console_output", True))
        self.file_output = bool(config.get("file_output", True))
        level_name = (os.getenv("GENFUZE_LOG_LEVEL") or config.get("level") or DEFAULT_LEVEL).upper()
        self.level = getattr(logging, level_name, logging.INFO)

        self._run_log_path: Path | None = None
        self._formatter = logging.Formatter(_FORMAT, datefmt=_DATEFMT)

    def _run_file(self) -> Path:
        if self._run_log_path is None:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            self._run_log_path = self.log_dir / datetime.now().strftime("genfuze_%Y-%m-%d_%H-%M-%S.log")
        return self._run_log_path

    def get_logger(self, name: str) -> logging.Logger:
        logger = logging.getLogger(name)
        if logger.handlers:
            return logger

        logger.setLevel(self.level)
        logger.propagate = False

        if self.console_output:
            ch = logging.StreamHandler()
            ch.setLevel(self.level)
            ch.setFormatter(self._formatter)
            logger.addHandler(ch)

        if self.file_output:
            fh = logging.FileHandler(self._run_file(), encoding="utf-8")
            fh.setLevel(self.level)
            fh.setFormatter(self._formatter)
            logger.addHandler(fh)

        return logger

    def cleanup(self) -> dict[str, Any]:
        """
        总量低于 min_keep_mb 时不动；否则先删超龄文件，再从最旧开始删到不超过 max_size_mb。
        当前进程正在写的文件永远保留。
        """
        report: dict[str, Any] = {"deleted_by_age": [], "deleted_by_size": [], "remaining_mb": 0.0}
        if not self.log_dir.exists():
            return report

        files = sorted(
            (f for f in self.log_dir.glob("*.log") if f.is_file() and f != self._run_log_path),
            key=lambda p: p.stat().st_mtime,
        )
        total = sum(f.stat().st_size for f in files)
        if total < self.min_keep_mb * 1024 * 1024:
            report["remaining_mb"] = round(total / (1024 * 1024), 3)
            return report

        cutoff = (datetime.now() - timedelta(days=self.max_age_days)).timestamp()
        kept: list[Path] = []
        for f in files:
            if f.stat().st_mtime < cutoff:
                f.unlink(missing_ok=True)
                report["deleted_by_age"].append(f.name)
            else:
                kept.append(f)

        budget = self.max_size_mb * 1024 * 1024
        while kept and sum(f.stat().st_size for f in kept) > budget:
            oldest = kept.pop(0)
            oldest.unlink(missing_ok=True)
            report["deleted_by_size"].append(oldest.name)

        report["remaining_mb"] = round(sum(f.stat().st_size for f in kept) / (1024 * 1024), 3)
        return report


_manager: LogManager | None = None


def _logging_section() -> dict[str, Any]:
    # 延迟导入：config.settings 不依赖本模块，这里只读其已合并好的原始配置
    from config.settings import _RAW_CONFIG
    return dict(_RAW_CONFIG.get("logging") or {})


def init_logging(config: dict[str, Any] | None = None) -> LogManager:
    """显式初始化（脚本入口、测试里用）；不传 config 时读取 genfuze_config.json 的 logging 段."""
    global _manager
    _manager = LogManager(config if config is not None else _logging_section())
    return _manager


def get_logger(name: str) -> logging.Logger:
    if _manager is None:
        init_logging()
    return _manager.get_logger(name)


def cleanup_logs() -> dict[str, Any]:
    if _manager is None:
        init_logging()
    return _manager.cleanup()
