import logging
import os

from flask import Flask
from app.extensions import db, login_manager
from app.errors import error_response, register_error_handlers
from config import Config


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    logging.basicConfig(
        level=app.config.get('LOG_LEVEL', 'INFO'),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )
    logging.getLogger().setLevel(app.config.get('LOG_LEVEL', 'INFO'))

    os.makedirs(app.instance_path, exist_ok=True)

    # Initialize extensions
    db.init_app(app)
    login_manager.init_app(app)

    # User loader for Flask-Login
    from app.models import User

    @login_manager.user_loader
    def load_user(user_id):
        user = db.session.get(User, int(user_id))
        if user and user.is_active:
            return user
        return None

    @login_manager.unauthorized_handler
    def unauthorized():
        return error_response('Not authorized, please log in', 401)

    register_error_handlers(app)

    # Register blueprints
    from app.routes.auth import auth_bp
    from app.routes.users import users_bp
    from app.routes.payments import payments_bp
    from app.routes.loans import loans_bp
    from app.routes.dues import dues_bp
    from app.routes.levies import levies_bp
    from app.routes.pledges import pledges_bp
    from app.routes.donations import donations_bp
    from app.routes.transactions import transactions_bp
    from app.routes.accounting import accounting_bp
    from app.routes.reports import reports_bp

    app.register_blueprint(auth_bp, url_prefix='/api/auth')
    app.register_blueprint(users_bp, url_prefix='/api/users')
    app.register_blueprint(payments_bp, url_prefix='/api/payments')
    app.register_blueprint(loans_bp, url_prefix='/api/loans')
    app.register_blueprint(dues_bp, url_prefix='/api/dues')
    app.register_blueprint(levies_bp, url_prefix='/api/levies')
    app.register_blueprint(pledges_bp, url_prefix='/api/pledges')
    app.register_blueprint(donations_bp, url_prefix='/api/donations')
    app.register_blueprint(transactions_bp, url_prefix='/api/transactions')
    app.register_blueprint(accounting_bp, url_prefix='/api/accounting')
    app.register_blueprint(reports_bp, url_prefix='/api/reports')

    from app.cli import register_commands
    register_commands(app)

    with app.app_context():
        db.create_all()
        app.logger.debug("Database tables created")

    return app
