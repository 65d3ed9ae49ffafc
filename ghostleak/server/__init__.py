"""FastAPI control surface."""
