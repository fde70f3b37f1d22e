import os
from datetime import timedelta
from flask import Flask
from flask_security.signals import user_registered
from foodshare.config import config
from foodshare.extensions import init_extensions
from foodshare.forms import SignupForm
from foodshare.core import register_cli_commands, register_context_processors, register_error_handlers, setup_logging


def create_app(config_name=None):
    """Application factory pattern"""
    # Templates and static files live next to the package
    root_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    template_dir = os.path.join(root_dir, 'templates')
    static_dir = os.path.join(root_dir, 'static')

    app = Flask(__name__,
                template_folder=template_dir,
                static_folder=static_dir)

    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'development')
    app.config.from_object(config.get(config_name, config['default']))

    app.permanent_session_lifetime = timedelta(days=1)
    os.makedirs(app.config['UPLOAD_FOLDER'], exist_ok=True)

    init_extensions(app)

    # Setup Flask-Security with the signup form carrying profile fields
    from foodshare.extensions import user_datastore, security
    security.init_app(app, user_datastore, register_form=SignupForm)

    @user_registered.connect_via(app)
    def on_user_registered(sender, user, form_data, **kwargs):
        """Create the profile and assign the role chosen at signup"""
        from foodshare.extensions import db
        from foodshare.services.profiles import assign_role, upsert_profile

        role = assign_role(user, form_data.get('role'))
        db.session.commit()
        upsert_profile(
            user,
            name=form_data.get('name'),
            organization=form_data.get('organization'),
            phone=form_data.get('phone')
        )
        app.logger.info(f'Registered {user.email} as {role.name}')

    from foodshare.routes import main, donor, receiver, geomap, admin, profile
    app.register_blueprint(main.bp)
    app.register_blueprint(donor.bp)
    app.register_blueprint(receiver.bp)
    app.register_blueprint(geomap.bp)
    app.register_blueprint(admin.bp)
    app.register_blueprint(profile.bp)

    register_cli_commands(app)
    register_context_processors(app)
    register_error_handlers(app)
    setup_logging(app)

    return app
