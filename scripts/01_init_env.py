#!/usr/bin/env python
"""初始化环境：目录、数据库表、provider 与邮件配置检查"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from config.settings import settings
from genfuze.db.engine import init_db
from genfuze.llm import get_llm_service
from genfuze.log import get_logger
from genfuze.notify import get_email_service

logger = get_logger(__name__)


def main():
    settings.path.ensure_dirs()
    settings.print_info()

    logger.info("[1/3] 初始化数据库...")
    init_db()
    logger.info("数据库就绪 (storage=%s)", settings.storage.backend)

    logger.info("[2/3] 检查 LLM provider...")
    configured = get_llm_service().configured_providers()
    if configured:
        logger.info("已配置: %s", ", ".join(configured))
    else:
        logger.warning("没有任何 provider 配置了 API key（GEMINI_API_KEY / OPENAI_API_KEY / ...）")

    logger.info("[3/3] 检查邮件服务...")
    if get_email_service().is_configured:
        logger.info("SMTP 已配置: %s:%s", settings.email.host, settings.email.port)
    else:
        logger.info("SMTP 未配置，邮件通知将被跳过")


if __name__ == "__main__":
    main()
