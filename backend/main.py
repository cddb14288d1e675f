"""
Ad Alignment Evaluator - Main Application Entry Point
"""

import uvicorn
from app import create_app
from config import config

# Create FastAPI application using app factory
app = create_app()

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=5000, reload=not config.IS_PRODUCTION)
