"""Application-wide Flask extensions."""

from flask_login import LoginManager
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

# Unbound handles; create_app() wires them to the app it builds so tests can
# make as many apps as they like.
db = SQLAlchemy()
migrate = Migrate()
login_manager = LoginManager()
