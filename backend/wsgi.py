# backend/wsgi.py
from matpro import create_app

app = create_app()
