# backend/wsgi.py
from retailhub import create_app

app = create_app()
