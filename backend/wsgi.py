# backend/wsgi.py
from bevstock import create_app

app = create_app()
