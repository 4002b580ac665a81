from flask import Blueprint, current_app, jsonify
from datetime import datetime, timezone
import time

main = Blueprint('main', __name__)

_started_at = time.monotonic()


@main.route('/')
def index():
    return jsonify({
        'message': 'Quiz socket server',
        'status': 'running',
        'port': current_app.config.get('PORT'),
    })


@main.route('/health')
def health():
    return jsonify({
        'status': 'ok',
        'uptime': round(time.monotonic() - _started_at, 3),
        'timestamp': datetime.now(timezone.utc).isoformat(),
    })


@main.after_app_request
def set_security_headers(response):
    response.headers.setdefault('X-Content-Type-Options', 'nosniff')
    response.headers.setdefault('X-Frame-Options', 'SAMEORIGIN')
    response.headers.setdefault('Referrer-Policy', 'no-referrer')
    return response


@main.app_errorhandler(500)
def internal_error(err):
    current_app.logger.error(f"[http-error] unhandled: {getattr(err, 'original_exception', err)!r}")
    return jsonify({'error': 'Internal Server Error'}), 500
