# backend/wsgi.py
from tradedesk import create_app

app = create_app()
