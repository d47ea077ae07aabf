"""日志：get_logger(__name__) 取 logger，cleanup_logs() 按天数/总量清理 logs/app。"""
from .log_manager import LogManager, cleanup_logs, get_logger, init_logging

__all__ = ["LogManager", "get_logger", "init_logging", "cleanup_logs"]
