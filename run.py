# run.py
import atexit
import sys

from waitress import serve

from app import create_app
from dispenser.runtime import DispenserRuntime
from system.config import DEFAULT_CONFIG_FILE, Config
from system.errors import ConfigError
from system.log_utils import error, info

HOST = "0.0.0.0"
PORT = 8000


def main() -> int:
    # Use CLI arg if provided, else ./config.yaml
    config_file = sys.argv[1] if len(sys.argv) > 1 and sys.argv[1] else DEFAULT_CONFIG_FILE
    info("starting service", version="1.0.0", config=config_file)

    try:
        config = Config.load(config_file)
    except ConfigError as e:
        error(f"[CONFIG] {e}")
        return 1

    runtime = DispenserRuntime(config)
    runtime.start()
    atexit.register(runtime.shutdown)

    app = create_app(runtime)
    info(f"Serving via Waitress on http://{HOST}:{PORT}")
    # Trigger requests block for a full cycle; keep spare threads for status/payment calls
    serve(app, host=HOST, port=PORT, threads=8)
    return 0


if __name__ == "__main__":
    sys.exit(main())
