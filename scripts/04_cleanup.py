#!/usr/bin/env python3
"""
清理脚本：过期的 refresh token 会话、过期的 token 吊销记录、旧日志文件。

服务运行时会每 24 小时自动清理一次 refresh token 会话；这个脚本用于离线或 cron。

用法：
    python scripts/04_cleanup.py            # 全部清理
    python scripts/04_cleanup.py --no-logs  # 不动 logs/app
"""

import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from config.settings import settings
from genfuze.auth.tokens import purge_expired_revocations
from genfuze.db.engine import init_db
from genfuze.log import cleanup_logs
from genfuze.storage import get_store


def main():
    parser = argparse.ArgumentParser(description="清理过期会话 / 吊销记录 / 日志")
    parser.add_argument("--no-logs", action="store_true", help="不清理日志文件")
    args = parser.parse_args()

    init_db()
    sessions = get_store().delete_expired_user_sessions()
    print(f"过期 refresh token 会话: {sessions} 条 ({settings.storage.backend} storage)")

    revoked = purge_expired_revocations()
    print(f"过期吊销记录: {revoked} 条")

    if not args.no_logs:
        report = cleanup_logs()
        print(f"日志: 按时间删除 {len(report['deleted_by_age'])} 个, "
              f"按大小删除 {len(report['deleted_by_size'])} 个, 剩余 {report['remaining_mb']} MB")


if __name__ == "__main__":
    main()
