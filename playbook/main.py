"""
Playbook Studio - Flask Application

Copyright (c) 2025 Playbook Studio. All Rights Reserved.
This software is proprietary and confidential. Unauthorized copying, modification,
distribution, or use of this software, via any medium, is strictly prohibited.
"""

from flask import Flask, request, jsonify
import os
import sys

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from .config import MAX_CONTENT_LENGTH, SHARING_SERVICE_URL, SHARING_TIMEOUT_SECONDS
from .logging_config import setup_logging
from .routes import bp
from .sharing import SharingClient


def create_app(sharing_client=None):
    """Create and configure the Flask application"""
    setup_logging()

    app = Flask(__name__)

    app.json.ensure_ascii = False
    app.json.sort_keys = False
    app.config['MAX_CONTENT_LENGTH'] = MAX_CONTENT_LENGTH

    # Share links are optional; without a client exports are never shared
    if sharing_client is None and SHARING_SERVICE_URL:
        sharing_client = SharingClient(SHARING_SERVICE_URL, timeout=SHARING_TIMEOUT_SECONDS)
    app.extensions['sharing_client'] = sharing_client

    # Handle reverse proxy headers (X-Forwarded-*)
    from werkzeug.middleware.proxy_fix import ProxyFix
    num_proxies = int(os.environ.get('PROXY_FIX_NUM_PROXIES', '0'))
    if num_proxies > 0:
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=num_proxies, x_proto=num_proxies, x_host=num_proxies)
        app.logger.info(f"ProxyFix enabled with {num_proxies} proxy(ies)")

    app.register_blueprint(bp)

    # Health check endpoint for load balancers and monitoring
    @app.route('/health', methods=['GET'])
    def health_check():
        return jsonify({
            'status': 'healthy',
            'service': 'Playbook Studio'
        }), 200

    @app.errorhandler(500)
    def handle_500_error(e):
        """Return JSON for API errors - sanitized to prevent information leakage"""
        app.logger.error(f"500 error on {request.path}: {e}", exc_info=True)
        return jsonify({
            'success': False,
            'errors': ['An internal error occurred. Please try again later.']
        }), 500

    @app.errorhandler(404)
    def handle_404_error(e):
        return jsonify({
            'success': False,
            'errors': ['Endpoint not found']
        }), 404

    @app.errorhandler(400)
    def handle_400_error(e):
        description = str(e.description) if hasattr(e, 'description') else str(e)
        return jsonify({
            'success': False,
            'errors': [description or 'Bad request']
        }), 400

    @app.errorhandler(413)
    def handle_413_error(e):
        limit_mb = MAX_CONTENT_LENGTH // (1024 * 1024)
        return jsonify({
            'success': False,
            'errors': [f'Request too large. Maximum size is {limit_mb}MB']
        }), 413

    return app


def main():
    """Main entry point - Development only"""
    # Prevent running Flask dev server in production
    flask_env = os.environ.get('FLASK_ENV', '').strip().lower()
    if flask_env == 'production':
        print("ERROR: Flask development server cannot run in production mode.")
        print("Use gunicorn or another production WSGI server instead:")
        print("  gunicorn -c gunicorn.conf.py wsgi:app")
        sys.exit(1)

    app = create_app()

    port = int(os.environ.get('PORT', 8080))
    print("Playbook Studio starting in DEVELOPMENT mode...")
    print(f"Listening on http://127.0.0.1:{port}")
    print("Press Ctrl+C to stop the application")
    print()
    print("WARNING: This is the development server. For production, use:")
    print("  gunicorn -c gunicorn.conf.py wsgi:app")

    try:
        app.run(host='127.0.0.1', port=port, debug=False)
    except KeyboardInterrupt:
        print("\nShutting down Playbook Studio...")


if __name__ == '__main__':
    main()
