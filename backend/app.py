import logging
import os
from typing import Optional

from flask import Flask, jsonify
from db import Database
from cli import register_commands
from routes.facilities import bp as facilities_bp
from services.facility_service import FacilityRetrievalError

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

def create_app(database: Optional[Database] = None) -> Flask:
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = Flask(__name__)
    app.extensions["database"] = database if database is not None else Database()

    @app.get("/health")
    def health():
        return {"ok": True}

    app.register_blueprint(facilities_bp)
    register_commands(app)

    @app.errorhandler(400)
    def bad_request(e):
        return jsonify(error=str(getattr(e, "description", e))), 400

    @app.errorhandler(FacilityRetrievalError)
    def retrieval_failed(e):
        # 細節已在 service 層記錄，這裡只回通用訊息
        return jsonify(error=e.message), 500

    @app.errorhandler(500)
    def internal_error(_e):
        return jsonify(error="internal server error"), 500

    return app

if __name__ == "__main__":
    database = Database()
    app = create_app(database)
    try:
        app.run(host="0.0.0.0", port=int(os.getenv("PORT", "5000")))
    finally:
        database.dispose()
