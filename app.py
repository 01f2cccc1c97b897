from flask import Flask
from flask_login import LoginManager
from flask_migrate import Migrate
from models import db, MainUser
from routes import init_routes
from config import Config
from money import format_rupiah, format_percent
from midtrans import MidtransClient
from utils import seed_default_settings
import logging

migrate = Migrate()


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    logging.basicConfig(level=logging.DEBUG if app.debug else logging.INFO)

    # Init DB
    db.init_app(app)
    with app.app_context():
        db.create_all()
        seed_default_settings()

    # Init Flask-Login
    login_manager = LoginManager()
    login_manager.login_view = "login"
    login_manager.init_app(app)

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(MainUser, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return {"status": "error", "message": "Silakan login terlebih dahulu"}, 401

    # Filter Rupiah
    app.jinja_env.filters["rupiah"] = format_rupiah
    app.jinja_env.filters["percent"] = format_percent

    migrate.init_app(app, db)

    # Payment gateway QRIS
    app.extensions["midtrans"] = MidtransClient.from_config(app.config)

    # Register all routes
    init_routes(app)
    return app


if __name__ == "__main__":
    create_app().run(debug=True)
