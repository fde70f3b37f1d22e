from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_wtf.csrf import CSRFProtect
from flask_babel import Babel
from flask_security import Security, SQLAlchemyUserDatastore
from flask_mail import Mail

# Initialize extensions (will be initialized in app factory)
db = SQLAlchemy()
migrate = Migrate()
csrf = CSRFProtect()
babel = Babel()
security = Security()
mail = Mail()

# Will be set after models are imported
user_datastore = None

def init_extensions(app):
    """Initialize Flask extensions"""
    global user_datastore

    db.init_app(app)
    migrate.init_app(app, db)
    csrf.init_app(app)

    # Initialize Babel with locale selector
    from foodshare.utils import get_locale
    import os

    # Get absolute path to translations directory
    root_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    translations_dir = os.path.join(root_dir, 'babel', 'translations')
    app.config['BABEL_TRANSLATION_DIRECTORIES'] = translations_dir

    babel.init_app(app, locale_selector=get_locale)

    # Flask-Mail handles SMTP connections internally
    mail.init_app(app)

    # Flask-Security needs the models; create_app initializes it with the signup form
    from foodshare.models import User, Role
    user_datastore = SQLAlchemyUserDatastore(db, User, Role)
