"""
Error handlers for the application
"""
from flask import render_template, request
from foodshare.errors import AuthorizationError
from foodshare.extensions import db


def register_error_handlers(app):
    """Register error handlers"""
    @app.errorhandler(404)
    def not_found_error(error):
        app.logger.warning(f'404 error: {request.url}')
        return render_template('errors/404.html'), 404

    @app.errorhandler(500)
    def internal_error(error):
        db.session.rollback()
        app.logger.error(f'500 error: {str(error)}', exc_info=True)
        return render_template('errors/500.html'), 500

    @app.errorhandler(403)
    def forbidden_error(error):
        app.logger.warning(f'403 error: {request.url}')
        return render_template('errors/403.html'), 403

    @app.errorhandler(AuthorizationError)
    def authorization_error(error):
        app.logger.warning(f'Authorization refused ({error.reason.value}): {request.url}')
        return render_template('errors/403.html', message=error.message), 403
