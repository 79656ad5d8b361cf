from .auth import auth_bp
from .content import content_bp
from .upload import upload_bp
from .sections import sections_bp
from .debug import debug_bp

def register_blueprints(app):
    """Register all blueprints with the Flask app."""
    app.register_blueprint(auth_bp, url_prefix='/auth')
    app.register_blueprint(content_bp, url_prefix='/content')
    app.register_blueprint(upload_bp, url_prefix='/upload')
    app.register_blueprint(sections_bp, url_prefix='/sections')
    app.register_blueprint(debug_bp, url_prefix='/debug')
