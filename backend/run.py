#!/usr/bin/env python3
# backend/run.py
"""
Development server runner.

For local development only; production runs uvicorn/gunicorn directly
against tripbooking.main:app.
"""
import os
from pathlib import Path

import uvicorn

backend_dir = Path(__file__).parent
os.chdir(backend_dir)

if __name__ == "__main__":
    print("Starting development server")
    print("Access at: http://localhost:8000")
    print("API Docs: http://localhost:8000/docs")

    uvicorn.run("tripbooking.main:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
