"""
Local development entry point.

Creates the Flask app via create_app() and runs the dev server with the
in-memory garden store unless GARDEN_BACKEND says otherwise.
"""

import os

# Allow overriding config via environment variable for dev/test flexibility
os.environ.setdefault("APP_CONFIG", "plantcare.config.DevConfig")

from plantcare import create_app  # noqa: E402

app = create_app()

if __name__ == "__main__":
    # use_reloader=False keeps a single reminder scheduler in the dev process
    app.run(
        host="0.0.0.0",
        port=int(os.getenv("PORT", 5000)),
        debug=os.getenv("FLASK_DEBUG", "1") == "1",
        use_reloader=False,
    )
