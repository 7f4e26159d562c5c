# personalizer/main.py
from fastapi import FastAPI

from .logging_setup import setup_logging, get_logger
from .middleware import RequestContextMiddleware
from .exception_handling import register_exception_handlers
from .lifespan import lifespan

from .routers import health, feedback, patterns, scores, prefs, jobs

setup_logging()  # <-- set up logging ASAP
logger = get_logger("personalizer.main")

app = FastAPI(title="Adaptive Personalizer", version="0.1.0", lifespan=lifespan)
app.add_middleware(RequestContextMiddleware)

register_exception_handlers(app)

app.include_router(health.router)
app.include_router(feedback.router)
app.include_router(patterns.router)
app.include_router(scores.router)
app.include_router(prefs.router)
app.include_router(jobs.router)
