import logging

from flask import Flask, jsonify

from ..config import get_config
from ..logging_setup import configure_logging


def _register_error_handlers(app: Flask) -> None:
    def api_error(status_code: int, message: str):
        return jsonify({"error": message, "status": status_code}), status_code

    @app.errorhandler(400)
    def bad_request(error):  # type: ignore
        return api_error(400, 'Bad Request')

    @app.errorhandler(404)
    def not_found(error):  # type: ignore
        return api_error(404, 'Not Found')

    @app.errorhandler(405)
    def method_not_allowed(error):  # type: ignore
        return api_error(405, 'Method Not Allowed')

    @app.errorhandler(500)
    def server_error(error):  # type: ignore
        return api_error(500, 'Internal Server Error')


def create_app(config_name: str = 'development') -> Flask:
    app = Flask(__name__)

    cfg = get_config(config_name)
    app.config.from_object(cfg)

    from .routes import reports_bp  # type: ignore
    app.register_blueprint(reports_bp)

    @app.get('/health')
    def health_check():
        return {"status": "ok"}

    configure_logging(cfg)
    _register_error_handlers(app)
    logging.getLogger(__name__).debug("Report sink created (%s)", cfg.ENV)
    return app
