"""Production entry point, e.g. ``gunicorn wsgi:app``.

Configuration is read from the environment by ``create_app``; importing
this module without ``SECRET_KEY`` set raises.
"""
from app import create_app

app, limiter = create_app()
