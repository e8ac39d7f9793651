"""Routes package - Blueprint registration."""
from centralization.routes.main import main_bp
from centralization.routes.auth import auth_bp
from centralization.routes.users import users_bp
from centralization.routes.reports import reports_bp


def register_blueprints(app):
    """Register all blueprints with the Flask app."""
    app.register_blueprint(main_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(reports_bp)
