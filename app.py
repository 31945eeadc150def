from flask import Flask

from dispenser.routes import dispenser_bp
from dispenser.runtime import DispenserRuntime
from system.log_utils import debug


def create_app(runtime: DispenserRuntime) -> Flask:
    app = Flask(__name__)
    app.extensions["dispenser"] = runtime
    app.register_blueprint(dispenser_bp)
    debug("[HTTP] routes registered")
    return app
