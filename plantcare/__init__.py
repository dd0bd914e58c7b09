"""
Application factory and global configuration.

Creates the Flask app, applies security headers, configures rate limiting,
wires the garden store and reminder engine, starts the reminder scheduler and
registers blueprints and CLI commands. Startup/config concerns stay here;
domain logic lives in plantcare.services.
"""

from __future__ import annotations
import atexit
import os
from flask import Flask, Response
from dotenv import load_dotenv  # <-- ensure .env is loaded for local dev
from .constants import STRATEGY_TIMER, SWEEP_JOB_ID
from .extensions import limiter
from .routes.garden import garden_bp
from .routes.cron import cron_bp
from .services import garden, supabase_client


def _validate_production_security(app: Flask, cfg_path: str) -> None:
    """
    Validate critical settings in production environments.

    Raises RuntimeError if production requirements are not met, so the app
    never starts with an insecure or half-configured reminder pipeline.

    Checks:
    - SESSION_COOKIE_SECURE must be True
    - SECRET_KEY must be set and >= 32 characters
    - DEBUG must be False
    - CRON_SECRET must be set when the sweep is driven by the cron endpoint
    """
    is_production = "ProdConfig" in cfg_path
    is_test = app.config.get("TESTING", False)

    if not is_production or is_test:
        return

    errors = []

    if not app.config.get("SESSION_COOKIE_SECURE", False):
        errors.append("SESSION_COOKIE_SECURE must be True in production.")

    secret_key = app.config.get("SECRET_KEY", "")
    if not secret_key:
        errors.append(
            "SECRET_KEY is not set. Set FLASK_SECRET_KEY environment variable. "
            "Generate with: python -c 'import secrets; print(secrets.token_hex(32))'"
        )
    elif len(secret_key) < 32:
        errors.append(f"SECRET_KEY is too weak ({len(secret_key)} chars). Must be at least 32 characters.")

    if app.config.get("DEBUG", False):
        errors.append("DEBUG must be False in production.")

    if (app.config.get("REMINDER_STRATEGY") != STRATEGY_TIMER
            and not app.config.get("REMINDER_SCHEDULER_ENABLED", True)
            and not app.config.get("CRON_SECRET")):
        errors.append(
            "CRON_SECRET must be set when watering reminders are driven by the cron endpoint "
            "(REMINDER_SCHEDULER_ENABLED=false)."
        )

    if errors:
        error_msg = "\n\n[ERROR] PRODUCTION CONFIGURATION VALIDATION FAILED:\n\n" + "\n\n".join(f"  * {err}" for err in errors)
        raise RuntimeError(error_msg)

    app.logger.info("[OK] Production configuration validation passed")


def _start_reminder_scheduler(app: Flask, context: garden.GardenContext, scheduler) -> None:
    """Start the background scheduler for whichever reminder strategy is active."""
    engine = context.engine

    if engine.strategy == STRATEGY_TIMER:
        scheduler.start()
        # Timers only live in memory; rebuild them from persisted due dates
        engine.restore()
        app.logger.info("[Scheduler] Per-plant watering timers restored")
    else:
        # Wrapper ensures Flask app context is available in the job thread
        def run_watering_sweep():
            with app.app_context():
                garden.get_context().engine.run_sweep_tick()

        scheduler.add_job(
            func=run_watering_sweep,
            trigger="interval",
            minutes=app.config["REMINDER_SWEEP_MINUTES"],
            id=SWEEP_JOB_ID,
            name="Watering Reminder Sweep",
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        scheduler.start()
        app.logger.info(
            f"[Scheduler] Watering reminder sweep every {app.config['REMINDER_SWEEP_MINUTES']} minutes"
        )

    def _shutdown():
        if engine.strategy == STRATEGY_TIMER:
            engine.shutdown()
        scheduler.shutdown(wait=False)

    # Shutdown scheduler gracefully on app exit
    atexit.register(_shutdown)


def create_app() -> Flask:
    # override=False so production env vars are not overwritten by a stale .env file
    load_dotenv(override=False)

    app = Flask(__name__)

    # Allow APP_CONFIG to override (e.g., plantcare.config.DevConfig)
    cfg_path = os.getenv("APP_CONFIG", "plantcare.config.ProdConfig")
    try:
        app.config.from_object(cfg_path)
    except (ImportError, AttributeError) as e:
        app.logger.warning(f"Could not load config object {cfg_path}: {e}")

    # Module loggers (plantcare.services.*) propagate to app.logger
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    _validate_production_security(app, cfg_path)

    limiter.init_app(app)
    if not app.config.get("RATELIMIT_ENABLED", True):
        limiter.enabled = False

    if not app.secret_key:
        app.secret_key = app.config.get("SECRET_KEY", "")

    supabase_client.init_supabase(app)

    scheduler = None
    if app.config.get("REMINDER_SCHEDULER_ENABLED", True):
        from apscheduler.schedulers.background import BackgroundScheduler
        scheduler = BackgroundScheduler(timezone="UTC")

    context = garden.init_garden(app, scheduler)

    if scheduler is not None:
        try:
            _start_reminder_scheduler(app, context, scheduler)
        except Exception as e:
            app.logger.warning(f"[Scheduler] Failed to start watering reminder scheduler: {e}")

    @app.after_request
    def apply_security_headers(resp: Response) -> Response:
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        resp.headers["X-Frame-Options"] = "DENY"
        if app.config.get("SESSION_COOKIE_SECURE", False):
            resp.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return resp

    # Blueprints
    app.register_blueprint(garden_bp, url_prefix="/api/v1")
    app.register_blueprint(cron_bp, url_prefix="/api/v1")

    # Register CLI commands
    from plantcare.cli import send_watering_reminders_command, watering_schedule_command
    app.cli.add_command(send_watering_reminders_command)
    app.cli.add_command(watering_schedule_command)

    return app
