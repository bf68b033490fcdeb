"""
Vercel entry point for the Servicio Técnico API
"""
import os
import sys

# Make the src/ layout importable without an install step
src_dir = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "src")
if src_dir not in sys.path:
    sys.path.insert(0, src_dir)

# Set environment variables for serverless
os.environ.setdefault("ENVIRONMENT", "production")
os.environ.setdefault("ALERTAS_SWEEP_INTERVAL_SECONDS", "0")  # Vercel Cron hits /cron/alertas instead

from mangum import Mangum

from servicio_tecnico.infrastructure.database import init_database
from servicio_tecnico.main import app

# Lifespan is off in serverless, so the engine is created at import
init_database()

handler = Mangum(app, lifespan="off")
