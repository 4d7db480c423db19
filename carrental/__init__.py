import logging

from flask import Flask, jsonify, request

from .config import Config
from .controllers.auth import bp as auth_bp
from .controllers.rentals import bp as rentals_bp
from .controllers.staff import bp as staff_bp
from .controllers.views import bp as views_bp
from .exceptions import RentalError
from .models.store import Store

log = logging.getLogger(__name__)


def create_app(config_object=Config, overrides=None):
    app = Flask(__name__)
    app.config.from_object(config_object)
    if overrides:
        app.config.update(overrides)

    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    Store.instance(app.config["RENTAL_DATA_PATH"])  # load data.pkl or init default
    app.register_blueprint(auth_bp)
    app.register_blueprint(views_bp)
    app.register_blueprint(rentals_bp)
    app.register_blueprint(staff_bp)

    @app.errorhandler(RentalError)
    def handle_rental_error(err: RentalError):
        log.info("%s %s -> %s (%s)", request.method, request.path, err.status_code, err.reason)
        return jsonify(err.to_dict()), err.status_code

    return app
