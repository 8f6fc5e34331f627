"""
SMS Template Sandbox

A local stand-in for the remote template service. Point the client's
``base_url`` at it to try add/modify/delete/get without a real account.
"""

import os
from flask import Flask, jsonify
from blueprints.templates import templates_bp
from sms_template.logging_config import setup_logging, get_logger


def create_app():
    """Create and configure the Flask application"""
    # Set up logging first
    setup_logging()
    logger = get_logger(__name__)

    logger.info("Creating Flask application")

    app = Flask(__name__)

    app.register_blueprint(templates_bp)
    logger.info("Registered template blueprint")

    @app.route('/health')
    def health_check():
        logger.debug("Health check requested")
        return jsonify({"status": "healthy"})

    logger.info("Flask application created successfully")
    return app


if __name__ == '__main__':
    app = create_app()
    logger = get_logger(__name__)

    # Get configuration from environment
    host = os.environ.get('HOST', '127.0.0.1')
    port = int(os.environ.get('PORT', 5000))
    debug = os.environ.get('DEBUG', 'false').lower() == 'true'

    logger.info(f"Starting SMS template sandbox on {host}:{port} (debug={debug})")
    app.run(host=host, port=port, debug=debug)
