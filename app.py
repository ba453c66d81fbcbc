#!/usr/bin/env python3
"""
TaleShelf - Main Application Entry Point
Run with: python app.py [--port <port>] [--data-dir <dir>]
"""

import argparse
import logging
import secrets
import signal
import sys
from pathlib import Path

from flask import Flask
from flask_socketio import SocketIO

from config import LOG_LEVEL, MAX_UPLOAD_BYTES, STORAGE_FILE
from data import create_catalog
from routes import register_routes
from socket_handlers import register_socket_handlers
from storage import JsonFileStorage


def create_app(storage=None, seed=True, secret_key=None):
    """Create and configure the Flask application and its Socket.IO server."""
    app = Flask(__name__)
    app.config['SECRET_KEY'] = secret_key or secrets.token_hex(32)
    app.config['MAX_CONTENT_LENGTH'] = MAX_UPLOAD_BYTES

    if storage is None:
        storage = JsonFileStorage(STORAGE_FILE)
    app.extensions['taleshelf'] = create_catalog(storage, seed=seed)

    socketio = SocketIO(app, cors_allowed_origins="*")
    register_routes(app)
    register_socket_handlers(socketio, app)
    return app, socketio


def signal_handler(sig, frame):
    """Handle Ctrl+C gracefully"""
    print("\n\nShutting down gracefully...")
    sys.exit(0)


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='TaleShelf - story catalog')
    parser.add_argument('--port', type=int, default=5000, help='Port to listen on')
    parser.add_argument('--data-dir', type=Path, default=None,
                        help='Directory holding storage.json (default: taleshelf_data)')
    args = parser.parse_args()

    logging.basicConfig(level=LOG_LEVEL, format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    storage_file = args.data_dir / 'storage.json' if args.data_dir else STORAGE_FILE
    app, socketio = create_app(storage=JsonFileStorage(storage_file))

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    print("\n" + "="*60)
    print("  TALESHELF - Story Catalog")
    print("="*60)
    print(f"\n  Storage file: {storage_file}")
    print(f"\n  API:          http://localhost:{args.port}/api/stories")
    print("\n  Press Ctrl+C to stop")
    print("="*60 + "\n")

    try:
        socketio.run(app, host='0.0.0.0', port=args.port, debug=False, allow_unsafe_werkzeug=True)
    except KeyboardInterrupt:
        print("\n\nShutting down gracefully...")
    except SystemExit:
        pass
