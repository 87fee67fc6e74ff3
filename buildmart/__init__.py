import logging
import colorlog
from flask import Flask, jsonify
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError
from werkzeug.exceptions import HTTPException
from config import config
from buildmart.extensions import db, migrate, login_manager, cache
from buildmart.exceptions import BuildMartException

from buildmart import commands


def create_app(config_name='default'):
    """BuildMart 应用工厂函数"""
    app = Flask(__name__)

    # 1. 加载配置
    app.config.from_object(config[config_name])
    config[config_name].init_app(app)

    # 2. 初始化扩展
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    cache.init_app(app)

    # 3. 配置日志
    configure_logging(app)

    # 4. 注册蓝图 (Blueprints)
    register_blueprints(app)

    # 5. 注册全局错误处理
    register_error_handlers(app)

    # 6. 注册 CLI 命令
    register_commands(app)

    return app


def register_blueprints(app):
    """注册所有业务模块蓝图"""
    # 认证蓝图
    from buildmart.blueprints.auth import auth_bp
    app.register_blueprint(auth_bp, url_prefix='/api/auth')

    # 商品目录蓝图
    from buildmart.blueprints.catalog import catalog_bp
    app.register_blueprint(catalog_bp, url_prefix='/api/products')

    # 买家订单蓝图
    from buildmart.blueprints.orders import orders_bp
    app.register_blueprint(orders_bp, url_prefix='/api/orders')

    # 经销商工作台蓝图
    from buildmart.blueprints.distributor import distributor_bp
    app.register_blueprint(distributor_bp, url_prefix='/api/distributor')

    # 管理后台蓝图
    from buildmart.blueprints.admin import admin_bp
    app.register_blueprint(admin_bp, url_prefix='/api/admin')

    # 支付回调蓝图
    from buildmart.blueprints.payments import payments_bp
    app.register_blueprint(payments_bp, url_prefix='/api/payments')


def register_error_handlers(app):
    """所有错误统一返回 JSON"""

    @app.errorhandler(BuildMartException)
    def handle_business_error(e):
        return jsonify(e.to_dict()), e.code

    @app.errorhandler(StaleDataError)
    def handle_stale_data(e):
        db.session.rollback()
        app.logger.warning(f'Concurrent update rejected: {e}')
        return jsonify({
            'success': False,
            'error': 'ConflictError',
            'code': 409,
            'message': 'Order was modified by another request. Please retry.'
        }), 409

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(e):
        db.session.rollback()
        app.logger.warning(f'Integrity error: {e.orig}')
        return jsonify({
            'success': False,
            'error': 'ConflictError',
            'code': 409,
            'message': 'Resource conflicts with existing data'
        }), 409

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify({
            'success': False,
            'error': e.name.replace(' ', ''),
            'code': e.code,
            'message': e.description
        }), e.code

    @app.errorhandler(Exception)
    def internal_server_error(e):
        db.session.rollback()
        app.logger.exception(f'Unhandled error: {e}')
        return jsonify({
            'success': False,
            'error': 'ServerError',
            'code': 500,
            'message': 'Internal server error'
        }), 500

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({
            'success': False,
            'error': 'AuthenticationError',
            'code': 401,
            'message': 'Authentication required'
        }), 401


def register_commands(app):
    """注册 Flask CLI 命令"""
    app.cli.add_command(commands.status)
    app.cli.add_command(commands.forge)
    app.cli.add_command(commands.create_admin)
    app.cli.add_command(commands.create_distributor)
    app.cli.add_command(commands.reset_admin_password)


def configure_logging(app):
    """配置彩色控制台日志，提升开发体验"""
    if app.debug:
        handler = logging.StreamHandler()
        handler.setLevel(logging.INFO)

        formatter = colorlog.ColoredFormatter(
            "%(log_color)s[%(asctime)s] %(levelname)-8s%(reset)s %(blue)s%(message)s",
            datefmt="%H:%M:%S",
            reset=True,
            log_colors={
                'DEBUG':    'cyan',
                'INFO':     'green',
                'WARNING':  'yellow',
                'ERROR':    'red',
                'CRITICAL': 'red,bg_white',
            },
            style='%'
        )
        handler.setFormatter(formatter)
        app.logger.addHandler(handler)
        app.logger.setLevel(logging.INFO)
