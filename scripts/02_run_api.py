#!/usr/bin/env python3
"""
启动 Genfuze.ai Q&A API 服务

用法:
  python scripts/02_run_api.py
  python scripts/02_run_api.py --port 5000 --host 0.0.0.0
  python scripts/02_run_api.py --reload
"""

import argparse
import sys
from pathlib import Path

# 项目根目录加入 path
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def main() -> None:
    from config.settings import settings
    parser = argparse.ArgumentParser(description="Run Genfuze.ai Q&A API")
    parser.add_argument("--host", default=settings.api.host, help="Bind host")
    parser.add_argument("--port", type=int, default=settings.api.port, help="Bind port")
    parser.add_argument("--reload", action="store_true", help="Enable reload (dev)")
    args = parser.parse_args()

    settings.print_info()

    import uvicorn

    # 浏览器自动化在进程内只允许一个浏览器，固定单 worker
    if args.reload:
        uvicorn.run("genfuze.api.server:app", host=args.host, port=args.port, reload=True)
    else:
        from genfuze.api.server import app
        uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
