"""
Production WSGI entry point for Render or Gunicorn.

Gunicorn imports this file and looks for a top-level variable named `app`.
Each worker process starts its own reminder scheduler; the compare-and-update
claim on every due window keeps overlapping sweeps from double-sending.

Usage (Render / CLI):
    gunicorn -w 2 -k gthread -b 0.0.0.0:$PORT wsgi:app
"""

from plantcare import create_app

# Gunicorn looks for a top-level 'app' variable here.
app = create_app()
