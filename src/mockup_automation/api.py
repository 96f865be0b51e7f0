"""REST API that starts mockup automation runs and reports their progress."""

import logging
import os

from flask import Flask, jsonify, request
from flask_cors import CORS

from .config import Settings
from .errors import LauncherBusyError
from .launcher import JobLauncher, JobRequest
from .utils import setup_logging


logger = logging.getLogger("MockupAutomation.API")


def create_app(launcher: JobLauncher = None, settings: Settings = None) -> Flask:
    """Build the Flask app around one launcher instance."""
    settings = settings or Settings.from_env()
    launcher = launcher or JobLauncher(default_profile_dir=str(settings.profile_dir))

    app = Flask(__name__)
    CORS(app)  # Enable CORS for the web UI
    app.extensions["mockup_launcher"] = launcher

    @app.route("/api/health", methods=["GET"])
    def health():
        """Health check endpoint."""
        return jsonify({"status": "ok", "server": "automation-server"})

    @app.route("/api/runs", methods=["POST"])
    def start_run():
        """
        Start one automation run.

        Request Body:
            {
                "color": "blue",
                "design": "watercolor floral pattern",
                "designUrl": "https://...",        (optional)
                "inspirationId": "abc123",         (optional, takes priority)
                "headless": true                   (optional)
            }

        Response:
            {"success": true, "runId": "...", "message": "..."}
        """
        data = request.get_json(silent=True) or {}
        try:
            job = JobRequest.from_payload(data)
        except ValueError as e:
            return jsonify({"success": False, "message": str(e)}), 400

        try:
            handle = launcher.start(job)
        except LauncherBusyError as e:
            return jsonify({"success": False, "message": str(e)}), 409
        except OSError as e:
            logger.error(f"Failed to start run: {e}")
            return jsonify({"success": False, "message": str(e)}), 500

        return jsonify({
            "success": True,
            "runId": handle.run_id,
            "message": "Automation started. Browser window should open shortly.",
        })

    @app.route("/api/runs/<run_id>", methods=["GET"])
    def run_status(run_id):
        handle = launcher.get(run_id)
        if handle is None:
            return jsonify({"success": False, "message": f"Unknown run: {run_id}"}), 404
        return jsonify({"success": True, **handle.snapshot()})

    @app.route("/api/runs/<run_id>/stop", methods=["POST"])
    def stop_run(run_id):
        handle = launcher.get(run_id)
        if handle is None:
            return jsonify({"success": False, "message": f"Unknown run: {run_id}"}), 404
        stopped = handle.terminate()
        return jsonify({
            "success": True,
            "stopped": stopped,
            "message": "Run stopped" if stopped else "Run had already finished",
        })

    @app.route("/api/runs/<run_id>", methods=["DELETE"])
    def forget_run(run_id):
        handle = launcher.get(run_id)
        if handle is None:
            return jsonify({"success": False, "message": f"Unknown run: {run_id}"}), 404
        if not launcher.forget(run_id):
            return jsonify({"success": False, "message": "Run is still in progress"}), 409
        return jsonify({"success": True})

    return app


def serve():
    """Run the API server (PORT, default 3000)."""
    settings = Settings.from_env()
    setup_logging("logs/api.log", settings.log_level)
    port = int(os.getenv("PORT", "3000"))
    logger.info(f"Automation server listening on http://localhost:{port}")
    create_app(settings=settings).run(host="0.0.0.0", port=port, debug=False)


if __name__ == "__main__":
    serve()
