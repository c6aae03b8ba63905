from flask import Flask
from flask_migrate import Migrate

from config import Config
from models import db, login_manager


migrate = Migrate()


def create_app(config_object=Config, overrides: dict | None = None) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_object)
    if overrides:
        app.config.update(overrides)

    # -------------------------
    # Extensões
    # -------------------------
    db.init_app(app)
    migrate.init_app(app, db)

    # Sessão vem do cookie assinado (request_loader), não da sessão do Flask
    login_manager.init_app(app)
    login_manager.session_protection = None

    # -------------------------
    # Importar modelos (Alembic)
    # -------------------------
    from models.company import Company  # noqa: F401
    from models.user import User  # noqa: F401
    from models.quote import Quote, QuoteItem  # noqa: F401
    from models.catalog import ProductCatalog  # noqa: F401
    from models.share import Share  # noqa: F401

    # -------------------------
    # Blueprints
    # -------------------------
    from routes.auth import auth_bp
    from routes.quotes import quotes_bp
    from routes.catalog import catalog_bp
    from routes.shares import shares_bp
    from routes.admin import admin_bp

    blueprints = [
        auth_bp,

        # Operação
        quotes_bp,
        catalog_bp,
        shares_bp,

        # Admin
        admin_bp,
    ]

    for bp in blueprints:
        app.register_blueprint(bp)

    # -------------------------
    # Logging + tratamento global de erros
    # -------------------------
    import os
    import logging
    from logging.handlers import RotatingFileHandler
    from flask import jsonify, request
    from werkzeug.exceptions import HTTPException

    from services.errors import ServiceError

    log_dir = app.config["LOG_DIR"]
    os.makedirs(log_dir, exist_ok=True)

    if not any(isinstance(h, RotatingFileHandler) for h in app.logger.handlers):
        file_handler = RotatingFileHandler(
            os.path.join(log_dir, "app.log"),
            maxBytes=2_000_000,
            backupCount=5,
            encoding="utf-8",
            delay=True,
        )
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
        ))
        app.logger.addHandler(file_handler)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    @app.errorhandler(ServiceError)
    def _handle_service_error(e: ServiceError):
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(HTTPException)
    def _handle_http(e: HTTPException):
        return jsonify({"error": e.description, "code": e.name.lower().replace(" ", "_")}), e.code

    @app.errorhandler(500)
    def _handle_500(e):
        app.logger.exception("Erro 500 não tratado: %s %s", request.method, request.path)
        return jsonify({"error": "Erro interno", "code": "internal_error"}), 500

    return app


if __name__ == "__main__":
    app = create_app()
    # Debug controlado por config / variáveis de ambiente
    app.run(debug=app.config.get("DEBUG", False))
