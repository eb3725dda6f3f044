"""Flask application - ajax routes used by the editor UI."""

import logging

from flask import Flask, jsonify, request

from ..api import RemoteError
from ..modinfo import ModInfo
from ..pack import PackError
from ..reconcile import InvalidPlacement, ReconciliationError
from ..service import ModpackEditorService

logger = logging.getLogger(__name__)


def create_app(service: ModpackEditorService) -> Flask:
    app = Flask(__name__)
    app.config["SERVICE"] = service

    def error(e: Exception):
        return jsonify({"ErrorMessage": str(e)}), 400

    def pack_response(pack):
        return jsonify({"Modpack": pack.to_dict() if pack is not None else None})

    def folder_arg() -> str:
        data = request.get_json(silent=True) or {}
        folder = data.get("Folder", "")
        if not folder:
            raise PackError("Folder is required")
        return folder

    @app.route("/ajax/getCurrentPackDetails", methods=["GET", "POST"])
    def get_current_pack_details():
        return pack_response(service.current_pack())

    @app.route("/ajax/loadModpackFolder", methods=["POST"])
    def load_modpack_folder():
        try:
            return pack_response(service.load_pack(folder_arg()))
        except PackError as e:
            return error(e)

    @app.route("/ajax/createModpackFolder", methods=["POST"])
    def create_modpack_folder():
        try:
            return pack_response(service.create_pack(folder_arg()))
        except PackError as e:
            return error(e)

    @app.route("/ajax/saveModpack", methods=["POST"])
    def save_modpack():
        data = request.get_json(silent=True) or {}
        try:
            mods = {
                int(pid): ModInfo.from_dict(mod)
                for pid, mod in (data.get("Mods") or {}).items()
            }
        except (TypeError, ValueError, AttributeError) as e:
            return error(ValueError(f"Invalid mod list: {e}"))

        try:
            service.save_pack(mods)
        except (PackError, InvalidPlacement, ReconciliationError, RemoteError) as e:
            logger.warning("Save failed: %s", e)
            return error(e)
        return jsonify({})

    return app
