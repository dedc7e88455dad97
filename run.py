# run.py
"""
run.py
标准 Flask 服务启动脚本（给开发者 / 运维 / CLI 用）
仅用于本地 / 内网启动；生产环境请用 gunicorn 加载 partsdesk.app_factory:create_app()
"""
import os

from partsdesk.app_factory import create_app
from partsdesk.config import Config
from partsdesk.db.auto_init import auto_init
from partsdesk.logger import get_logger

logger = get_logger("run")


def main():
    Config.validate()

    # 1️启动前初始化数据库
    auto_init()

    # 2️创建 Flask app
    app = create_app()
    logger.info(f"DB URL: {Config.DATABASE_URL}")

    # 3️启动参数
    debug = os.getenv("FLASK_DEBUG", "0") == "1"

    # 4️启动服务
    app.run(host=Config.HOST, port=Config.PORT, debug=debug, use_reloader=False)


if __name__ == "__main__":
    main()
