# backend/wsgi.py
from shopsync import create_app

app = create_app()
