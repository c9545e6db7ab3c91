from flask import Flask, current_app
from werkzeug.exceptions import HTTPException
from flask_jwt_extended import JWTManager
from dotenv import load_dotenv
from typing import Optional, Dict, Any
import logging
import os

load_dotenv()

jwt = JWTManager()


def create_app(config: Optional[Dict[str, Any]] = None):
    app = Flask(__name__)

    app.config['JWT_SECRET_KEY'] = os.getenv('JWT_SECRET_KEY', 'dev-secret')
    app.config['STORE_BACKEND'] = os.getenv('STORE_BACKEND', 'sql')
    app.config['DATABASE_URL'] = os.getenv('DATABASE_URL', 'sqlite:///dev.db')
    app.config['STORE_CREATE_SCHEMA'] = os.getenv('STORE_CREATE_SCHEMA', '').lower() in ('1', 'true', 'yes')
    app.config['FIREBASE_CREDENTIALS'] = os.getenv('FIREBASE_CREDENTIALS') or os.getenv('GOOGLE_APPLICATION_CREDENTIALS') or os.getenv('FIREBASE_SERVICE_ACCOUNT')
    app.config['FIREBASE_PROJECT_ID'] = os.getenv('FIREBASE_PROJECT_ID')
    app.config['FUNCTIONS_BASE_URL'] = os.getenv('FUNCTIONS_BASE_URL')
    app.config['FUNCTIONS_REGION'] = os.getenv('FUNCTIONS_REGION', 'asia-southeast1')
    app.config['FUNCTIONS_AUTH_TOKEN'] = os.getenv('FUNCTIONS_AUTH_TOKEN')
    app.config['FUNCTIONS_TIMEOUT'] = os.getenv('FUNCTIONS_TIMEOUT', '30')
    app.config['LOG_LEVEL'] = os.getenv('LOG_LEVEL', 'INFO')

    if config:
        # allow tests or callers to override default config values
        app.config.update(config)

    level = getattr(logging, str(app.config['LOG_LEVEL']).upper(), logging.INFO)
    app.logger.setLevel(level)
    logging.getLogger('dentpal').setLevel(level)

    # Document store and functions client are app-scoped, never module globals
    from .store import build_store
    from .services.functions import FunctionsClient
    app.extensions['document_store'] = build_store(app.config)
    app.extensions['functions_client'] = FunctionsClient.from_config(app.config)

    jwt.init_app(app)

    from .routes.iam import iam_bp
    from .routes.users import users_bp
    from .routes.sellers import sellers_bp
    from .routes.orders import orders_bp
    from .routes.withdrawals import wd_bp
    from .routes.policies import policies_bp
    from .routes.categories import cat_bp
    from .routes.warranty import warranty_bp
    from .routes.compliance import compliance_bp
    from .routes.reports import rpt_bp
    from .routes.inventory import inventory_bp
    app.register_blueprint(iam_bp, url_prefix='/iam')
    app.register_blueprint(users_bp, url_prefix='/users')
    app.register_blueprint(sellers_bp, url_prefix='/sellers')
    app.register_blueprint(orders_bp, url_prefix='/orders')
    app.register_blueprint(wd_bp, url_prefix='/withdrawals')
    app.register_blueprint(policies_bp, url_prefix='/policies')
    app.register_blueprint(cat_bp, url_prefix='/categories')
    app.register_blueprint(warranty_bp, url_prefix='/warranty')
    app.register_blueprint(compliance_bp, url_prefix='/compliance')
    app.register_blueprint(rpt_bp, url_prefix='/reports')
    app.register_blueprint(inventory_bp, url_prefix='/inventory')

    @app.route('/healthz')
    def health():
        return {'status': 'ok', 'store': app.config['STORE_BACKEND']}

    from .services.functions import FunctionsError, FunctionsConfigError
    from .store import DocumentNotFound

    def _error(status: int, title: str, detail: str):
        return {'error': {'status': status, 'title': title, 'detail': detail}}, status

    # Unified error handler producing standardized JSON shape
    @app.errorhandler(Exception)
    def handle_errors(e):  # type: ignore
        if isinstance(e, HTTPException):
            return _error(e.code, e.name, e.description)
        if isinstance(e, DocumentNotFound):
            return _error(404, 'Not Found', f'{e.collection} {e.doc_id} not found')
        if isinstance(e, FunctionsConfigError):
            app.logger.error('Functions client misconfigured: %s', e)
            return _error(503, 'Service Unavailable', str(e))
        if isinstance(e, FunctionsError):
            return _error(502, 'Bad Gateway', e.message)
        # Unhandled exception
        app.logger.exception('Unhandled exception')
        return _error(500, 'Internal Server Error', 'Unexpected error')

    return app


def shutdown(app: Flask):
    """Release the app-scoped clients (store connections, listeners, HTTP session)."""
    store = app.extensions.pop('document_store', None)
    if store is not None:
        store.close()
    functions = app.extensions.pop('functions_client', None)
    if functions is not None:
        functions.close()


def get_store():
    return current_app.extensions['document_store']


def get_functions():
    return current_app.extensions['functions_client']
