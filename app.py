from flask import Flask, jsonify
from flask_cors import CORS
from extensions import db, migrate
from dotenv import load_dotenv
import click
import logging
import os
from flask.logging import default_handler

# 提前导入模型注册函数（明确显示依赖关系）
from models import register_models

from blueprints.mining import mining_bp
from blueprints.users import users_bp
from blueprints.invite import invite_bp
from utils.log import LOG_FORMAT, set_level

load_dotenv()


def _env_bool(name, default='False'):
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes')


def create_app(config=None):
    app = Flask(__name__)

    # CORS 允许前端携带 Cookie
    CORS(app, supports_credentials=True)

    # ===== 配置 =====
    app.config.update(
        SECRET_KEY=os.getenv('SECRET_KEY'),
        JWT_SECRET=os.getenv('JWT_SECRET'),
        SQLALCHEMY_DATABASE_URI=os.getenv('DB_URI', 'sqlite:///mining.db'),
        SQLALCHEMY_TRACK_MODIFICATIONS=False,
        # claim 等写操作遇到并发冲突时的重试
        MINING_MAX_ATTEMPTS=int(os.getenv('MINING_MAX_ATTEMPTS', '5')),
        MINING_RETRY_BACKOFF=float(os.getenv('MINING_RETRY_BACKOFF', '0.05')),
        # 挖矿中再次 start 是否重置计时（会放弃未领取的收益）
        MINING_RESTART_RESETS_CLOCK=_env_bool('MINING_RESTART_RESETS_CLOCK'),
        LOG_LEVEL=os.getenv('LOG_LEVEL', 'INFO').upper(),
    )
    if config:
        app.config.update(config)

    if not app.config.get('JWT_SECRET'):
        raise RuntimeError('JWT_SECRET is not configured')

    app.logger.setLevel(app.config['LOG_LEVEL'])
    set_level(app.config['LOG_LEVEL'])
    default_handler.setFormatter(logging.Formatter(LOG_FORMAT))

    # ===== 初始化扩展 =====
    db.init_app(app)
    migrate.init_app(app, db)

    with app.app_context():
        register_models()  # 确保在应用上下文中注册

    # ===== 注册蓝图 =====
    blueprints = [
        mining_bp,
        users_bp,
        invite_bp,
    ]
    for bp in blueprints:
        app.register_blueprint(bp)

    # 健康检查
    @app.route('/')
    def health_check():
        return jsonify({'status': 'healthy'})

    @app.cli.command('issue-token')
    @click.argument('user_id')
    @click.option('--expires-in', default=3600, show_default=True, help='Token lifetime in seconds')
    def issue_token(user_id, expires_in):
        """Mint a development JWT for USER_ID."""
        from utils.auth_utils import create_access_token
        click.echo(create_access_token(user_id, expires_in=expires_in))

    return app


if __name__ == '__main__':
    app = create_app()
    with app.app_context():
        db.create_all()
    app.run(host='0.0.0.0', port=5000)
