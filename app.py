from flask import Flask, jsonify

from config import Config
from models import db
from routes.contacts import contacts_bp
from routes.groups import groups_bp
from routes.ledger import ledger_bp
from routes.reports import reports_bp
from routes.settlements import settlements_bp


# --------------------------------------------------
# APP SETUP
# --------------------------------------------------

def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    db.init_app(app)

    for blueprint in (ledger_bp, groups_bp, settlements_bp, contacts_bp, reports_bp):
        app.register_blueprint(blueprint)

    @app.route("/api/health")
    def health():
        return jsonify({"status": "ok"})

    return app


if __name__ == "__main__":
    app = create_app()
    app.run(debug=True)
