from flask import Flask, jsonify
from .config import Config
from .extensions import db, migrate, jwt, mail
from .routes import auth, admin, certification, courses, progress, webhooks
from .services import ProviderError
from .workflow.errors import WorkflowError
from flask_cors import CORS
from werkzeug.middleware.proxy_fix import ProxyFix


def register_error_handlers(app):
    @app.errorhandler(WorkflowError)
    def handle_workflow_error(error):
        app.logger.info(f"Workflow error: {error}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(ProviderError)
    def handle_provider_error(error):
        app.logger.error(f"Provider error: {error}")
        return jsonify(error.to_dict()), error.status_code


def create_app(config_class=Config):
    app = Flask(__name__)
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1)
    CORS(app, resources={r"/*": {"origins": "*"}})
    app.config.from_object(config_class)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    jwt.init_app(app)
    mail.init_app(app)

    register_error_handlers(app)

    # Register blueprints
    app.register_blueprint(auth.bp, url_prefix="/auth")
    app.register_blueprint(courses.bp, url_prefix="/courses")
    app.register_blueprint(progress.bp, url_prefix="/progress")
    app.register_blueprint(certification.bp, url_prefix="/certification")
    app.register_blueprint(admin.bp, url_prefix="/admin")
    app.register_blueprint(webhooks.bp, url_prefix="/webhooks")

    return app
