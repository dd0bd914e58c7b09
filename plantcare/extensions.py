"""
Third-party extensions wiring.

Initializes shared Flask extension instances so blueprints can import
configured objects without circular dependencies.
"""

from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# Limiter is initialized by create_app() with app config for storage/limits.
# The garden API applies @limiter.limit(GARDEN_RATE_LIMIT) to plant creation.

limiter = Limiter(key_func=get_remote_address)
