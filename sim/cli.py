import os
import socket

from sim.server import PORT, start_server


def get_primary_ip() -> str:
    """Best-effort detection of the primary IPv4 address for outbound traffic."""
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
            # Doesn't need to be reachable; no packets are sent
            s.connect(("8.8.8.8", 80))
            return s.getsockname()[0]
    except OSError:
        try:
            return socket.gethostbyname(socket.gethostname())
        except OSError:
            return "127.0.0.1"


def main():
    port = int(os.environ.get("SIM_PORT", PORT))
    api_key = os.environ.get("SIM_API_KEY", "")
    host_ip = get_primary_ip()

    print("[SIMULATOR CLI] Starting device API simulator (Ctrl+C to stop)")
    print(f"[SIMULATOR CLI] Hostname: {socket.gethostname()}")
    print(f"[SIMULATOR CLI] Base URL: http://{host_ip}:{port}")
    print(f"[SIMULATOR CLI] API key:  {'<any>' if not api_key else 'required'}")
    print("-----------------------------------------------------------")
    print("Set BAENDAELI_URL in config.yaml to the base URL above.")
    print(f"Queue commands with: curl -X POST http://{host_ip}:{port}/sim/commands "
          "-H 'Content-Type: application/json' -d '{\"command\": \"extend\", \"duration_ms\": 500}'")

    try:
        start_server(port=port, api_key=api_key)
    except KeyboardInterrupt:
        print("\n[SIMULATOR CLI] Shutting down...")


if __name__ == "__main__":
    main()
