"""Web API for modpack-editor."""

import argparse

from ..config import EditorConfig
from ..service import ModpackEditorService


def create_and_run(service: ModpackEditorService, host: str = "127.0.0.1", port: int = 8080):
    """Create and run the Flask app."""
    from .app import create_app

    app = create_app(service)
    app.run(host=host, port=port, debug=False, threaded=True)


def main():
    """Standalone entry point for modpack-editor-web."""
    parser = argparse.ArgumentParser(description="modpack-editor web API")
    parser.add_argument("--port", type=int, default=8080, help="Port (default 8080)")
    parser.add_argument("--ip", default="127.0.0.1", help="Address to listen on")
    args = parser.parse_args()

    service = ModpackEditorService(EditorConfig.from_env())
    service.open_last_pack()
    create_and_run(service, host=args.ip, port=args.port)
