from flask import Flask, jsonify
from flask_jwt_extended import JWTManager
from flask_cors import CORS
from pymongo import MongoClient
from pymongo.errors import PyMongoError
from config import config
import os
from datetime import datetime

jwt = JWTManager()

# MongoDB client is set up by create_app
mongo_client = None
mongo_db = None


class MongoWrapper:
    """Flask-PyMongo-like access to the current database"""
    @property
    def db(self):
        return mongo_db

    @property
    def cx(self):
        return mongo_client


mongo = MongoWrapper()


def connect_mongo(app):
    """Open the MongoDB connection configured on ``app``; leave it unset on failure."""
    global mongo_client, mongo_db

    if not app.config.get('MONGO_CONNECT', True):
        app.logger.info('[OK] MongoDB connection skipped (MONGO_CONNECT is off)')
        return

    db_name = app.config.get('MONGO_DBNAME', 'qbank_database')
    try:
        mongo_client = MongoClient(app.config['MONGO_URI'], serverSelectionTimeoutMS=5000)
        mongo_client.admin.command('ping')
        mongo_db = mongo_client[db_name]
        app.logger.info(f"[OK] MongoDB connected: {db_name}")
    except PyMongoError as e:
        app.logger.error(f"[ERROR] MongoDB connection failed: {e}")
        mongo_client = None
        mongo_db = None


def register_error_handlers(app):
    @app.errorhandler(413)
    def file_too_large(e):
        limit = app.config.get('MAX_UPLOAD_MB')
        return jsonify({'error': f'File too large. Maximum size: {limit}MB'}), 413

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({'error': 'Not found'}), 404


def create_app(config_name=None):
    """Application factory"""
    app = Flask(__name__)

    config_name = config_name or os.environ.get('FLASK_ENV', 'default')
    app.config.from_object(config[config_name])

    connect_mongo(app)
    jwt.init_app(app)

    from qbank.admin import bp as admin_bp
    app.register_blueprint(admin_bp, url_prefix='/api/admin')

    from qbank.study import bp as study_bp
    app.register_blueprint(study_bp, url_prefix='/api/study')

    CORS(app, resources={r"/api/*": {
        "origins": app.config['CORS_ORIGINS'],
        "allow_headers": app.config['CORS_ALLOW_HEADERS'],
        "methods": app.config['CORS_METHODS'],
        "supports_credentials": app.config['CORS_SUPPORTS_CREDENTIALS']
    }})

    register_error_handlers(app)

    if mongo_db is not None:
        with app.app_context():
            from qbank.utils.init_db import initialize_database
            initialize_database()

    @app.route('/')
    def index():
        return {
            'message': 'Question Bank API',
            'status': 'active',
            'version': '1.0.0',
            'frontend_url': app.config['FRONTEND_URL']
        }

    @app.route('/api/health')
    def health_check():
        return {
            'status': 'healthy',
            'database': 'connected' if mongo_db is not None else 'disconnected',
            'import_batch_size': app.config.get('IMPORT_BATCH_SIZE'),
            'timestamp': datetime.utcnow().isoformat()
        }

    app.logger.info('[OK] Question Bank API ready')
    return app
