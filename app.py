from flask import Flask, render_template, redirect, url_for, g
from models import (
    db,
    Player,
    Court,
    init_default_data,
    ensure_schema_integrity,
    ranked_players,
)
import logging
import os
from blueprints.auth import auth_bp, load_current_user
from blueprints.ladder import ladder_bp
from blueprints.admin import admin_bp
from blueprints.courts import courts_bp, api_bp
from blueprints.public import public_bp

logging.basicConfig(
    level=os.environ.get('LOG_LEVEL', 'INFO').upper(),
    format='%(asctime)s %(levelname)s [%(name)s] %(message)s',
)
logger = logging.getLogger(__name__)

app = Flask(__name__)

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

# Configuration
app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'clubladder')
app.config['MEMBER_USERNAME'] = os.environ.get('MEMBER_USERNAME', 'member')
app.config['MEMBER_PASSWORD'] = os.environ.get('MEMBER_PASSWORD', 'club2024')
app.config['DEFAULT_ADMIN_EMAIL'] = os.environ.get('ADMIN_EMAIL', 'admin@clubladder.local')

# Database configuration - supports both local SQLite and remote PostgreSQL
DATABASE_URL = os.environ.get('DATABASE_URL')

sqlite_path = None

if DATABASE_URL:
    # Heroku PostgreSQL URL fix (postgres:// → postgresql://)
    if DATABASE_URL.startswith('postgres://'):
        DATABASE_URL = DATABASE_URL.replace('postgres://', 'postgresql://', 1)
    app.config['SQLALCHEMY_DATABASE_URI'] = DATABASE_URL
else:
    # Fallback to SQLite for local development
    default_sqlite_dir = os.path.join(BASE_DIR, 'instance')
    os.makedirs(default_sqlite_dir, exist_ok=True)
    sqlite_path = os.environ.get('SQLITE_PATH', os.path.join(default_sqlite_dir, 'clubladder.db'))
    app.config['SQLALCHEMY_DATABASE_URI'] = f'sqlite:///{sqlite_path}'

app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
if not app.config['SQLALCHEMY_DATABASE_URI'].startswith('sqlite'):
    app.config['SQLALCHEMY_ENGINE_OPTIONS'] = {
        'pool_pre_ping': True,
        'pool_recycle': 300,
    }

db.init_app(app)

with app.app_context():
    is_new_db = False
    if sqlite_path:
        is_new_db = not os.path.exists(sqlite_path)

    db.create_all()
    ensure_schema_integrity()

    # Seed defaults only if database was freshly created or critical records missing
    if is_new_db or not Player.query.filter_by(is_admin=True).first() or not Court.query.first():
        init_default_data()

    logger.info('Database initialized (%s)', 'new' if is_new_db else 'existing')

# Register blueprints
app.register_blueprint(auth_bp)
app.register_blueprint(ladder_bp)
app.register_blueprint(admin_bp)
app.register_blueprint(courts_bp)
app.register_blueprint(api_bp)
app.register_blueprint(public_bp)


@app.before_request
def before_request():
    """Load current player before every request to ANY route"""
    load_current_user()


@app.route('/')
def index():
    """Home page: ladder preview for visitors, dashboards for players."""
    player = getattr(g, 'current_user', None)
    if player:
        if player.is_admin:
            return redirect(url_for('admin.panel'))
        return redirect(url_for('ladder.dashboard'))

    ladder = ranked_players()
    return render_template(
        'index.html',
        top_players=ladder[:10],
        total_players=len(ladder),
    )


if __name__ == "__main__":
    app.run(debug=True, port=5000)
