from flask import Flask, jsonify
from flask_migrate import Migrate
from .extensions import db, login_manager, rq
from .errors import ConcurrentUpdateError, DocumentNotFound, PersistenceError, PortalError, ValidationError
from .services.store import init_store

migrate = Migrate()


def _error_response(e):
    if isinstance(e, ValidationError):
        return jsonify({"error": str(e), "field": e.field}), 400
    if isinstance(e, DocumentNotFound):
        return jsonify({"error": str(e)}), 404
    if isinstance(e, ConcurrentUpdateError):
        return jsonify({"error": str(e)}), 409
    if isinstance(e, PersistenceError):
        return jsonify({"error": "storage unavailable, please retry"}), 503
    return jsonify({"error": str(e)}), 400


def create_app(config_object='config.Config'):
    app = Flask(__name__)
    app.config.from_object(config_object)

    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    rq.init_app(app)

    @login_manager.user_loader
    def load_user(user_id):
        from .models.user import User
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({"error": "login required"}), 401

    @app.errorhandler(PortalError)
    def handle_portal_error(e):
        if not isinstance(e, ValidationError):
            app.logger.warning('request failed: %s', e)
        return _error_response(e)

    # register models on the metadata before anything calls create_all
    from . import models  # noqa: F401
    init_store(app)

    from .blueprints.auth import bp as auth_bp
    app.register_blueprint(auth_bp, url_prefix="/auth")

    from .blueprints.interviews import bp as interviews_bp
    app.register_blueprint(interviews_bp, url_prefix="/interviews")

    from .blueprints.grades import bp as grades_bp
    app.register_blueprint(grades_bp, url_prefix="/grades")

    @app.get('/health')
    def health():
        return jsonify({"status": "ok", "store": app.config.get('STORE_BACKEND', 'sql')})

    return app
