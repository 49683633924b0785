import logging
import os

from flasgger import Swagger
from flask import Flask
from flask_cors import CORS

from physiocare.api.dashboard.advanced_stats import dashboard_bp
from physiocare.api.dashboard.reports import reports_bp
from physiocare.api.portal.dashboard import portal_bp
from physiocare.config import Config, describe_database
from physiocare.errors import register_error_handlers
from physiocare.extensions import db
from physiocare.routes.appointments import appointments_bp
from physiocare.routes.auth import auth_bp
from physiocare.routes.exercises import exercises_bp
from physiocare.routes.invoices import invoices_bp
from physiocare.routes.notes import notes_bp
from physiocare.routes.patients import patients_bp
from physiocare.routes.products import products_bp
from physiocare.routes.settings import settings_bp
from physiocare.routes.staff import staff_bp
from physiocare.services.identity import IDENTITY_KEY, IdentityProvider
from physiocare.services.store import STORE_FACTORY_KEY, default_store_factory
from swagger__config import SWAGGER_CONFIG, SWAGGER_TEMPLATE

BLUEPRINTS = [
    auth_bp,
    staff_bp,
    patients_bp,
    notes_bp,
    appointments_bp,
    invoices_bp,
    products_bp,
    exercises_bp,
    settings_bp,
    dashboard_bp,
    reports_bp,
    portal_bp,
]


def create_app(config_overrides=None, store_factory=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))
    app.logger.info(f"Database: {describe_database(app.config['SQLALCHEMY_DATABASE_URI'])}")

    CORS(app, origins=app.config.get("CORS_ORIGINS") or "*")
    db.init_app(app)

    swagger_template = SWAGGER_TEMPLATE.copy()
    swagger_template["host"] = os.environ.get("API_HOST", "127.0.0.1:3000")
    Swagger(app, config=SWAGGER_CONFIG, template=swagger_template)

    app.extensions[STORE_FACTORY_KEY] = store_factory or default_store_factory
    app.extensions[IDENTITY_KEY] = IdentityProvider.from_app(app)

    register_error_handlers(app)

    for bp in BLUEPRINTS:
        app.register_blueprint(bp)
        app.logger.debug(f"Blueprint {bp.name} registered")

    @app.route("/")
    def home():
        """
        Root endpoint - API status
        ---
        tags:
          - Utility
        responses:
          200:
            description: API is running
        """
        return {"success": True, "message": "PhysioCare backend is running!"}, 200

    @app.route("/api/test")
    def api_test():
        """
        Liveness check
        ---
        tags:
          - Utility
        responses:
          200:
            description: Backend is reachable
        """
        return {"success": True, "message": "Backend is connected!"}, 200

    if app.config.get("ENABLE_SCHEDULER"):
        from physiocare.scheduler import init_scheduler

        init_scheduler(app)

    app.logger.info(f"Total routes registered: {len(list(app.url_map.iter_rules()))}")
    return app


app = create_app()


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 3000))
    app.run(
        host="0.0.0.0", port=port, debug=os.environ.get("FLASK_ENV") != "production"
    )
